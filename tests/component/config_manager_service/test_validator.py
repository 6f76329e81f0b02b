import pytest

from services.config_manager_service.src.config_values import (
    BoolValue,
    IntValue,
    JsonValue,
    StrValue,
    as_text,
    tag_value,
)
from services.config_manager_service.src.validator import (
    ConfigValidationError,
    bounded_int,
    generate_config_checksum,
    parse_bool,
    parse_identifier,
    parse_int,
    parse_json_object,
    validate_config_structure,
)


def test_parse_int():
    assert parse_int("42") == 42
    assert parse_int(" -3 ") == -3
    with pytest.raises(ConfigValidationError):
        parse_int("4.2")


@pytest.mark.parametrize("text", ["true", "TRUE", "1", "yes", "On", "t", "y"])
def test_parse_bool_true(text):
    assert parse_bool(text) is True


@pytest.mark.parametrize("text", ["false", "0", "no", "OFF", "f", "n"])
def test_parse_bool_false(text):
    assert parse_bool(text) is False


def test_parse_bool_rejects_other_text():
    with pytest.raises(ConfigValidationError):
        parse_bool("maybe")


def test_bounded_int_range():
    convert = bounded_int("cpu.usage.percent", 30, 100)
    assert convert("30") == 30
    assert convert("100") == 100
    with pytest.raises(ConfigValidationError, match=r"cpu.usage.percent must be between \[30,100\]"):
        convert("29")


def test_bounded_int_positive():
    convert = bounded_int("body.maxbytes", 1)
    with pytest.raises(ConfigValidationError, match="must be greater than 0"):
        convert("0")


def test_bounded_int_minimum():
    convert = bounded_int("log.maxburst", 0)
    assert convert("0") == 0
    with pytest.raises(ConfigValidationError, match="can not be less than 0"):
        convert("-1")


def test_parse_identifier():
    assert parse_identifier("") == ""
    assert parse_identifier("a" * 16) == "a" * 16
    assert parse_identifier("A1" * 256) == "A1" * 256
    with pytest.raises(ConfigValidationError, match="length"):
        parse_identifier("a" * 15)
    with pytest.raises(ConfigValidationError, match="letters and numbers"):
        parse_identifier("abcdefgh_ijklmnop")


def test_parse_json_object():
    assert parse_json_object('{"a": 1}') == {"a": 1}
    with pytest.raises(ConfigValidationError):
        parse_json_object("[1]")
    with pytest.raises(ConfigValidationError):
        parse_json_object("{broken")


def test_validate_config_structure():
    validate_config_structure({"a": 1}, {"type": "object"})
    with pytest.raises(ConfigValidationError):
        validate_config_structure("text", {"type": "object"})


def test_checksum_ignores_key_order():
    assert generate_config_checksum({"a": 1, "b": 2}) == generate_config_checksum({"b": 2, "a": 1})
    assert generate_config_checksum({"a": 1}) != generate_config_checksum({"a": 2})


def test_tag_value():
    assert tag_value(None) is None
    assert tag_value(True) == BoolValue(True)
    assert tag_value(7) == IntValue(7)
    assert tag_value("x") == StrValue("x")
    assert tag_value(1.5) == StrValue("1.5")
    assert tag_value({"a": 1}) == JsonValue({"a": 1})
    assert tag_value([1]) == JsonValue([1])


def test_as_text():
    assert as_text(BoolValue(False)) == "false"
    assert as_text(IntValue(12)) == "12"
    assert as_text(StrValue("abc")) == "abc"
    assert as_text(JsonValue({"a": 1})) == '{"a": 1}'
