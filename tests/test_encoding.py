from i18n_extract.utils.encoding import read_text_safely, write_text_safely


def test_read_strips_bom(tmp_path):
    path = tmp_path / "bom.js"
    path.write_bytes(b"\xef\xbb\xbfconst a = 1;\n")
    assert read_text_safely(path) == "const a = 1;\n"


def test_non_utf8_falls_back_to_detection(tmp_path):
    raw = "const label = 'café crème brûlée, déjà vu, garçon';\n".encode("latin-1")

    path = tmp_path / "legacy.js"
    path.write_bytes(raw)
    text = read_text_safely(path)
    assert text is not None
    assert text.startswith("const label = 'caf")


def test_missing_file_returns_none(tmp_path):
    assert read_text_safely(tmp_path / "missing.js") is None


def test_write_keeps_line_endings(tmp_path):
    path = tmp_path / "out" / "a.js"
    assert write_text_safely(path, "a\r\nb\n")
    assert path.read_bytes() == b"a\r\nb\n"
    assert read_text_safely(path) == "a\r\nb\n"
