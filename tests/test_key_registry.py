import logging

import pytest

from i18n_extract.core.exceptions import ConfigError
from i18n_extract.core.key_registry import KeyRegistry, canonical_value, compile_pattern, slugify
from i18n_extract.core.types import Location


def loc(path="a.js", line=1, column=0):
    return Location(path, line, column)


def test_same_value_twice_gets_one_key_and_one_record():
    registry = KeyRegistry(key_strategy="counter")
    assert registry.resolve("___Hello___", loc(line=1)) == "k1"
    assert registry.resolve("___Hello___", loc(line=5)) == "k1"
    assert len(registry.extracted) == 1
    record = registry.extracted[0]
    assert (record.value, record.key, record.line) == ("Hello", "k1", 1)


def test_existing_value_is_reused_not_minted():
    registry = KeyRegistry(existing={"Hello": "greeting.hello"})
    assert registry.resolve("___Hello___", loc()) == "greeting.hello"
    assert registry.resolve("___Hello___", loc(line=2)) == "greeting.hello"
    assert registry.extracted == []
    assert len(registry.used_existing) == 1
    assert registry.used_existing[0].key == "greeting.hello"

    # reported again for another file
    registry.resolve("___Hello___", loc(path="b.js"))
    assert len(registry.used_existing) == 2


def test_file_scope_records_per_file_global_scope_once():
    per_file = KeyRegistry(scope="file")
    per_file.resolve("___Hi___", loc(path="a.js"))
    per_file.resolve("___Hi___", loc(path="b.js"))
    assert [r.file_path for r in per_file.extracted] == ["a.js", "b.js"]
    assert {r.key for r in per_file.extracted} == {"Hi"}

    shared = KeyRegistry(scope="global")
    shared.resolve("___Hi___", loc(path="a.js"))
    shared.resolve("___Hi___", loc(path="b.js"))
    assert len(shared.extracted) == 1


def test_key_strategies():
    assert KeyRegistry(key_strategy="counter", key_prefix="msg_").resolve("___A___", loc()) == "msg_1"
    assert KeyRegistry(key_strategy="slug").resolve("___Hello, World!___", loc()) == "hello_world"
    hashed = KeyRegistry(key_strategy="hash").resolve("___Hello___", loc())
    assert len(hashed) == 10

    custom = KeyRegistry(generate_key=lambda value, path: f"{path}:{value.upper()}")
    assert custom.resolve("___hi___", loc(path="x.js")) == "x.js:HI"


def test_minted_key_avoids_existing_keys():
    registry = KeyRegistry(existing={"Other": "Bye"})
    assert registry.resolve("___Bye___", loc()) == "Bye_2"


def test_placeholders_are_canonicalized():
    assert canonical_value("Hi ${user.name}, ${count}") == "Hi {arg1}, {arg2}"
    registry = KeyRegistry()
    registry.resolve("___Hi ${name}___", loc())
    assert registry.extracted[0].value == "Hi {arg1}"


def test_non_matching_value_warns(caplog):
    registry = KeyRegistry()
    with caplog.at_level(logging.WARNING):
        assert registry.resolve("plain text", loc()) is None
    assert "does not match" in caplog.text
    assert registry.extracted == []


def test_pattern_requires_capture_group():
    with pytest.raises(ConfigError):
        compile_pattern(r"___.+___")
    with pytest.raises(ConfigError):
        compile_pattern(r"___(.+___")
    with pytest.raises(ConfigError):
        KeyRegistry(scope="project")


def test_records_since_slices_one_transform():
    registry = KeyRegistry()
    registry.resolve("___A___", loc(path="a.js"))
    mark = registry.mark()
    registry.resolve("___B___", loc(path="b.js"))
    extracted, used = registry.records_since(mark, "b.js")
    assert [r.value for r in extracted] == ["B"]
    assert used == []


def test_slugify_fallback():
    assert slugify("!!!") == "key"
