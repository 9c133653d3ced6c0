#!/usr/bin/env python3
"""
File: config_parser_test.py
Author: Bastian Cerf
Date: 18/08/2025
Description:
    Unit test the configuration parser module.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import pytest
from pytest import approx
import io
import textwrap
from pathlib import Path

# Internal libraries
from common.config_parser import ConfigParser, ConfigError, _SettingSpec, _str_to_bool

########################################################################
#                              Test data                               #
########################################################################

TEST_SCHEMA = """
{
    "section1": {
        "number": {
            "type": "int", 
            "required": true,
            "default": 8
        },
        "flag": {
            "type": "bool",
            "default": false,
            "comment": "Simple flag"
        }
    },
    "section2": {
        "text": {
            "type": "str",
            "default": "This is a default text"
        },
        "floating": {
            "type": "float",
            "default": 3.14,
            "comment": "This is PI",
            "min": 2.1
        }
    }
}
"""

TEST_CONFIG = textwrap.dedent(
    """\
        [section1]
        number = 8
        ; Simple flag
        flag = false

        [section2]
        text = This is a default text
        ; This is PI
        floating = 3.14

    """
)

########################################################################
#                          Setting spec test                           #
########################################################################

### Parsing test


def test_str_to_bool():
    """
    Check the output of the string to bool converting function.
    """
    assert _str_to_bool("true") == True
    assert _str_to_bool("false") == False
    assert _str_to_bool("On") == True
    assert _str_to_bool("ofF") == False
    assert _str_to_bool("1") == True
    assert _str_to_bool("0") == False
    assert _str_to_bool("yEs") == True
    assert _str_to_bool("no") == False

    with pytest.raises(ValueError):
        _str_to_bool("not a bool")


def test_missing_type_raises():
    """
    The `type` field is abolutely required in the schema entry.
    """
    with pytest.raises(ConfigError):
        _SettingSpec("section", "mykey", {})


def test_unknown_type_raises():
    """
    The `type` field must be of `int`, `float`, `str` or `bool`.
    """
    with pytest.raises(ConfigError):
        _SettingSpec("section", "mykey", {"type": "weird"})


def test_extra_field_raises():
    """
    No extra field allowed, it might be a typo the developer didn't see.
    """
    with pytest.raises(ConfigError, match="foo"):
        _SettingSpec("section", "mykey", {"type": "int", "foo": 123})


def test_wrong_field_type_raises():
    """
    An error is raised if a field doesn't hold the expected value type.
    """
    with pytest.raises(ConfigError):
        _SettingSpec("section", "mykey", {"type": "int", "max": "123"})


def test_properties():
    DEFAULT = 3.14
    COMMENT = "This is PI."
    spec = _SettingSpec(
        "section", "pi", {"type": "float", "default": DEFAULT, "comment": COMMENT}
    )
    assert spec.default == approx(DEFAULT)
    assert spec.comment == COMMENT
    assert spec.required is False


### Convert test


def test_required_missing_value():
    spec = _SettingSpec("section", "mykey", {"type": "int", "required": True})
    with pytest.raises(ConfigError, match="required"):
        spec.convert("")


def test_non_required_missing_value():
    spec = _SettingSpec("section", "mykey", {"type": "int", "required": False})
    assert spec.convert("") is None


def test_bool_conversion_true():
    spec = _SettingSpec("section", "flag", {"type": "bool"})
    assert spec.convert("yes") is True


def test_bool_invalid_string():
    spec = _SettingSpec("section", "flag", {"type": "bool"})
    with pytest.raises(ConfigError, match="not a valid bool"):
        spec.convert("maybe")


def test_range_check_greater():
    spec = _SettingSpec("section", "num", {"type": "int", "max": 5})
    with pytest.raises(ConfigError, match="greater"):
        spec.convert("10")


def test_range_check_lower():
    spec = _SettingSpec("section", "num", {"type": "float", "min": 5})
    with pytest.raises(ConfigError, match="lower"):
        spec.convert("4.99")


def test_range_check_bounds_included():
    spec = _SettingSpec("section", "num", {"type": "int", "min": 30, "max": 60})
    assert spec.convert("30") == 30
    assert spec.convert("60") == 60


########################################################################
#                     Configuration parser test                        #
########################################################################


def test_generate_default_config():
    """
    Create a default configuration from a simple schema and compare
    the result with the expected configuration.
    """
    parser = ConfigParser(io.StringIO(TEST_SCHEMA))

    default_config = io.StringIO()
    parser.generate_default(default_config)

    default_config.seek(0)
    assert default_config.read() == TEST_CONFIG


def test_generate_config_not_existing(tmp_path: Path):
    """
    Check that the default configuration is created if the file is not
    existing.
    """
    config_path = tmp_path / "test_config.ini"
    assert not config_path.exists()

    ConfigParser(io.StringIO(TEST_SCHEMA), str(config_path))

    assert config_path.exists()

    with open(config_path, "r", encoding="utf-8") as file:
        assert file.read() == TEST_CONFIG


def test_missing_config_without_default_raises(tmp_path: Path):
    with pytest.raises(ConfigError, match="not found"):
        ConfigParser(
            io.StringIO(TEST_SCHEMA), tmp_path / "missing.ini", gen_default=False
        )


def test_read_config():
    """
    Parse and validate a configuration and read the values.
    """
    parser = ConfigParser(io.StringIO(TEST_SCHEMA), io.StringIO(TEST_CONFIG))

    view = parser.get_view()
    assert view["section1"]["number"] == 8
    assert view["section1"]["flag"] == False
    assert view["section2"]["text"] == "This is a default text"
    assert view["section2"]["floating"] == approx(3.14)


def test_view_is_read_only():
    parser = ConfigParser(io.StringIO(TEST_SCHEMA), io.StringIO(TEST_CONFIG))
    with pytest.raises(TypeError):
        parser.get_view()["section1"]["number"] = 4  # type: ignore


def test_extra_section_raises():
    """
    Test that the configuration validation fails if it contains extra
    sections.
    """
    wrong_config = TEST_CONFIG + "[extra_section]\n"

    with pytest.raises(ConfigError, match="\\+extra_section"):
        ConfigParser(io.StringIO(TEST_SCHEMA), io.StringIO(wrong_config))


def test_missing_section_raises():
    wrong_config = TEST_CONFIG.split("[section2]")[0]

    with pytest.raises(ConfigError, match="-section2"):
        ConfigParser(io.StringIO(TEST_SCHEMA), io.StringIO(wrong_config))


def test_extra_key_raises():
    """
    Test that the configuration validation fails if it contains extra
    keys.
    """
    wrong_config = []
    for line in TEST_CONFIG.splitlines():
        wrong_config.append(line)
        if "[section2]" in line:
            wrong_config.append("random_key = 58")
    wrong_config = "\n".join(wrong_config)

    with pytest.raises(ConfigError, match="\\+random_key"):
        ConfigParser(io.StringIO(TEST_SCHEMA), io.StringIO(wrong_config))


def test_invalid_type_raises():
    """
    Test that the configuration validation fails if a value has not the
    expected type.
    """
    wrong_config = TEST_CONFIG.replace("flag = false", 'flag = "maybe"')

    with pytest.raises(ConfigError, match="not a valid bool"):
        ConfigParser(io.StringIO(TEST_SCHEMA), io.StringIO(wrong_config))


def test_set_value():
    """
    Change a value and verify it is reflected in the previously retrieved
    view.
    """
    parser = ConfigParser(io.StringIO(TEST_SCHEMA), io.StringIO(TEST_CONFIG))

    view = parser.get_view()

    parser.set_value("section2", "floating", 4.68)
    assert view["section2"]["floating"] == approx(4.68)


def test_set_value_file(tmp_path: Path):
    """
    Change a value and verify it has been written in the configuration
    file (.ini).
    """
    config_path = tmp_path / "test_config.ini"

    parser = ConfigParser(io.StringIO(TEST_SCHEMA), str(config_path))
    parser.set_value("section2", "floating", 4.68)

    content = TEST_CONFIG.replace("floating = 3.14", "floating = 4.68")
    with open(config_path, "r", encoding="utf-8") as file:
        assert file.read() == content


def test_set_value_missing_key_raises():
    """
    Check that trying to set a value for a missing key raises.
    """
    parser = ConfigParser(io.StringIO(TEST_SCHEMA), io.StringIO(TEST_CONFIG))

    with pytest.raises(ConfigError, match="Unknown key"):
        parser.set_value("section1", "unexisting", True)


def test_set_wrong_value_raises():
    """
    Check that trying to set a value that doesn't match the schema rules
    raises.
    """
    parser = ConfigParser(io.StringIO(TEST_SCHEMA), io.StringIO(TEST_CONFIG))

    with pytest.raises(ConfigError, match="lower"):
        # This parameter must be greater than 2.1
        parser.set_value("section2", "floating", 1.5)
