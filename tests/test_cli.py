import json

from i18n_extract.cli_main import main


def write_project(root):
    src = root / "src"
    src.mkdir()
    (src / "a.js").write_text('const a = "___Hello___";\n', encoding="utf-8")
    (root / "cfg.json").write_text(
        json.dumps({"keyStrategy": "counter", "i18nConfig": {"noImport": True}}),
        encoding="utf-8",
    )
    return src


def test_cli_rewrites_and_writes_translations(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    src = write_project(tmp_path)

    assert main(["src", "--config", "cfg.json", "--output", "out.json"]) == 0

    assert (src / "a.js").read_text(encoding="utf-8") == 'const a = t("k1");\n'
    assert json.loads((tmp_path / "out.json").read_text(encoding="utf-8")) == {"k1": "Hello"}


def test_cli_dry_run_leaves_files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    src = write_project(tmp_path)

    assert main(["src", "--config", "cfg.json", "--output", "out.json", "--dry-run"]) == 0

    assert (src / "a.js").read_text(encoding="utf-8") == 'const a = "___Hello___";\n'
    assert not (tmp_path / "out.json").exists()


def test_cli_missing_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["--config", "nope.json"]) == 2
