"""Shared helpers for lector."""
