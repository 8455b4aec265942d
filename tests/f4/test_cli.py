"""Tests for the lector CLI."""

import json

import pytest
from typer.testing import CliRunner

from lector.cli.commands import app

runner = CliRunner()


@pytest.fixture
def sample_epub(make_epub):
    return make_epub(
        chapters=[
            ("ch1.xhtml", "Capítulo 1", "<h1 id='c1'>Capítulo 1</h1><p>Geralt llegó a Cintra.</p>"),
            ("ch2.xhtml", "Capítulo 2", "<h1 id='c2'>Capítulo 2</h1><p>Ciri huyó al bosque.</p>"),
        ],
        toc=[
            ("ch1.xhtml#c1", "Capítulo 1", "c1"),
            ("ch2.xhtml#c2", "Capítulo 2", "c2"),
        ],
    )


class TestProcessCommand:
    """Tests for lector process."""

    def test_process_writes_json(self, sample_epub, tmp_path):
        out = tmp_path / "books"
        result = runner.invoke(app, ["process", str(sample_epub), "-o", str(out), "-b", "elfos"])

        assert result.exit_code == 0, result.stdout
        assert "Procesados 4 párrafos, 2 capítulos" in result.stdout
        data = json.loads((out / "elfos.json").read_text(encoding="utf-8"))
        assert [c["title"] for c in data["chapters"]] == ["Capítulo 1", "Capítulo 2"]

    def test_process_with_config_file(self, sample_epub, tmp_path):
        out = tmp_path / "desde-config"
        config = tmp_path / "config.yaml"
        config.write_text(
            f"output:\n  epub_path: '{sample_epub}'\n  output_dir: '{out}'\n  paragraph_id_base: 1\n",
            encoding="utf-8",
        )
        result = runner.invoke(app, ["process", "--config", str(config)])

        assert result.exit_code == 0, result.stdout
        data = json.loads((out / "la-sangre-de-los-elfos.json").read_text(encoding="utf-8"))
        assert data["paragraphs"][0]["id"] == 1

    def test_process_missing_epub(self, tmp_path):
        result = runner.invoke(app, ["process", str(tmp_path / "falta.epub"), "-o", str(tmp_path)])
        assert result.exit_code == 1
        assert "✗" in result.stdout

    def test_process_invalid_epub(self, tmp_path):
        bogus = tmp_path / "roto.epub"
        bogus.write_bytes(b"basura")
        result = runner.invoke(app, ["process", str(bogus), "-o", str(tmp_path)])
        assert result.exit_code == 1
        assert "Error de procesamiento" in result.stdout

    def test_process_bad_config(self, sample_epub, tmp_path):
        result = runner.invoke(
            app, ["process", str(sample_epub), "--config", str(tmp_path / "no.yaml")]
        )
        assert result.exit_code == 1
        assert "Configuración inválida" in result.stdout


class TestInspectCommand:
    """Tests for lector inspect."""

    def test_inspect_valid_output(self, sample_epub, tmp_path):
        runner.invoke(app, ["process", str(sample_epub), "-o", str(tmp_path), "-b", "elfos"])
        result = runner.invoke(app, ["inspect", str(tmp_path / "elfos.json")])

        assert result.exit_code == 0, result.stdout
        assert "Capítulo 2" in result.stdout
        assert "Índice válido" in result.stdout

    def test_inspect_reports_errors(self, tmp_path):
        path = tmp_path / "malo.json"
        path.write_text(
            json.dumps(
                {
                    "id": "malo",
                    "title": "Malo",
                    "paragraphs": [{"id": 0, "text": "Hola", "chapterIndex": 0}],
                    "chapters": [],
                    "totalWords": 1,
                }
            ),
            encoding="utf-8",
        )
        result = runner.invoke(app, ["inspect", str(path)])
        assert result.exit_code == 1
        assert "ningún capítulo" in result.stdout

    def test_inspect_missing_file(self, tmp_path):
        result = runner.invoke(app, ["inspect", str(tmp_path / "nada.json")])
        assert result.exit_code == 1

    def test_inspect_invalid_json(self, tmp_path):
        path = tmp_path / "roto.json"
        path.write_text("{no es json", encoding="utf-8")
        result = runner.invoke(app, ["inspect", str(path)])
        assert result.exit_code == 1
        assert "JSON inválido" in result.stdout
