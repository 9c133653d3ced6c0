#!/usr/bin/env python3
"""
File: config_parser.py
Author: Bastian Cerf
Date: 12/08/2025
Description:
    Read a configuration file in the .ini format and validate it against
    a JSON schema. A default .ini file can be generated from the schema.

    The schema mirrors the .ini structure: one JSON object per section,
    holding one object per key. A key object accepts:
    - type: int, float, str or bool (mandatory)
    - required: the value cannot be left empty (the key itself is always
        mandatory)
    - default: value written when generating the default file
    - comment: help line written above the key in the default file
    - min/max: inclusive bounds for int and float values

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import configparser
import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Iterable, Optional, TextIO

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """
    General configuration error. It's the only error raised by this
    module.
    """

    def __init__(self, msg: str):
        super().__init__(msg)


def _str_to_bool(s: str) -> bool:
    """
    Convert the given string to a bool.

    Raises:
        ValueError: string doesn't contain a valid boolean.
    """
    s = s.strip().lower()
    if s in {"true", "1", "yes", "on"}:
        return True
    if s in {"false", "0", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean string: {s}")


def _value_to_str(value: Any) -> str:
    """
    Convert a typed value to its .ini literal.

    Raises:
        ValueError: Unsupported type.
    """
    # bool is a subclass of int and must be tested first
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    raise ValueError(f"Unknown type '{type(value).__name__}'")


class _SettingSpec:
    """
    Rules for one key, parsed from its schema object.
    """

    _CONVERTERS: dict[str, Callable[[str], Any]] = {
        "int": int,
        "float": float,
        "str": str,
        "bool": _str_to_bool,
    }

    _FIELDS = {"type", "required", "default", "comment", "min", "max"}

    def __init__(self, section: str, key: str, entry: dict[str, Any]):
        self._where = f"[{section}] {key}"

        if not isinstance(entry, dict):
            raise ConfigError(f"{self._where}: schema entry must be an object.")

        extra = set(entry) - self._FIELDS
        if extra:
            raise ConfigError(
                f"{self._where}: unrecognized field(s) {', '.join(sorted(extra))}."
            )

        vartype = entry.get("type")
        if vartype not in self._CONVERTERS:
            raise ConfigError(f"{self._where}: missing or unknown type '{vartype}'.")

        self.vartype: str = vartype
        self.required: bool = self.__field(entry, "required", (bool,), False)
        self.default: Any = entry.get("default")
        self.comment: Optional[str] = self.__field(entry, "comment", (str,), None)
        self.min: Optional[float] = self.__field(entry, "min", (int, float), None)
        self.max: Optional[float] = self.__field(entry, "max", (int, float), None)

    def __field(
        self, entry: dict[str, Any], name: str, types: tuple[type, ...], default: Any
    ) -> Any:
        if name not in entry:
            return default
        value = entry[name]
        if not isinstance(value, types):
            raise ConfigError(
                f"{self._where}: field '{name}' has type "
                f"'{type(value).__name__}', expected "
                f"{' or '.join(t.__name__ for t in types)}."
            )
        return value

    def convert(self, raw: str) -> Any:
        """
        Validate a raw .ini string and convert it to the declared type.

        Returns:
            Any: The converted value, `None` for an allowed empty value.

        Raises:
            ConfigError: The value breaks a rule.
        """
        if not raw:
            if self.required:
                raise ConfigError(f"{self._where}: value is required.")
            return None

        try:
            value = self._CONVERTERS[self.vartype](raw)
        except ValueError:
            raise ConfigError(
                f"{self._where}: '{raw}' is not a valid {self.vartype}."
            ) from None

        if self.vartype in ("int", "float"):
            if self.min is not None and value < self.min:
                raise ConfigError(f"{self._where}: {value} is lower than {self.min}.")
            if self.max is not None and value > self.max:
                raise ConfigError(
                    f"{self._where}: {value} is greater than {self.max}."
                )
        return value


class ConfigParser:
    """
    Load an .ini configuration, validate it against a JSON schema and
    expose the typed values as a read-only view.
    """

    def __init__(
        self,
        schema: str | Path | TextIO,
        config: Optional[str | Path | TextIO] = None,
        gen_default: bool = True,
    ):
        """
        Args:
            schema (str | Path | TextIO): Schema file (.json) path or
                opened stream.
            config (str | Path | TextIO | None): Configuration file (.ini)
                path or opened stream. `None` only loads the schema.
            gen_default (bool): When `config` is a path to a missing file,
                generate it from the schema defaults.

        Raises:
            ConfigError: Any parsing or validation error.
        """
        self._schema = self.__load_schema(schema)
        self._ini = configparser.ConfigParser(interpolation=None)
        self._data: dict[str, dict[str, Any]] = {}
        self._path: Optional[Path] = None

        if config is None:
            return

        if isinstance(config, (str, Path)):
            self._path = Path(config)
            if not self._path.exists():
                if not gen_default:
                    raise ConfigError(f"Configuration '{self._path}' not found.")
                self.__write_default(self._path)
                logger.info(f"Default configuration created at '{self._path}'.")

        self.load(config)

    @property
    def name(self) -> str:
        return str(self._path) if self._path else "<stream>"

    def __load_schema(
        self, source: str | Path | TextIO
    ) -> dict[str, dict[str, _SettingSpec]]:
        try:
            if isinstance(source, (str, Path)):
                with open(source, encoding="utf-8") as file:
                    raw = json.load(file)
            else:
                raw = json.load(source)
        except (OSError, ValueError) as e:
            raise ConfigError("Unable to read the configuration schema.") from e

        if not isinstance(raw, dict):
            raise ConfigError("The configuration schema must be an object.")

        schema: dict[str, dict[str, _SettingSpec]] = {}
        for section, keys in raw.items():
            if not isinstance(keys, dict):
                raise ConfigError(f"Schema section [{section}] must be an object.")
            schema[section] = {
                key: _SettingSpec(section, key, entry) for key, entry in keys.items()
            }
        return schema

    def load(self, source: str | Path | TextIO):
        """
        Load a configuration and validate it against the schema.

        Raises:
            ConfigError: Reading or validation failed.
        """
        self._ini = configparser.ConfigParser(interpolation=None)
        try:
            if isinstance(source, (str, Path)):
                with open(source, encoding="utf-8") as file:
                    self._ini.read_file(file)
            else:
                self._ini.read_file(source)
        except configparser.Error as e:
            raise ConfigError(f"Unable to parse '{self.name}'.") from e
        except OSError as e:
            raise ConfigError(f"Unable to read '{self.name}'.") from e

        self.__validate()

    @staticmethod
    def __diff(expected: Iterable[str], actual: Iterable[str]) -> list[str]:
        expected, actual = set(expected), set(actual)
        return sorted(f"-{e}" for e in expected - actual) + sorted(
            f"+{e}" for e in actual - expected
        )

    def __validate(self):
        diff = self.__diff(self._schema, self._ini.sections())
        if diff:
            raise ConfigError(f"'{self.name}' sections differ: {', '.join(diff)}.")

        data: dict[str, dict[str, Any]] = {}
        for section, specs in self._schema.items():
            diff = self.__diff(specs, self._ini[section])
            if diff:
                raise ConfigError(
                    f"'{self.name}' section [{section}] differs: {', '.join(diff)}."
                )
            data[section] = {
                key: spec.convert(self._ini[section][key]) for key, spec in specs.items()
            }
        self._data = data

    def generate_default(self, stream: TextIO):
        """
        Write the default configuration inferred from the schema, each
        key preceded by its comment if any.
        """
        for section, specs in self._schema.items():
            stream.write(f"[{section}]\n")
            for key, spec in specs.items():
                if spec.comment:
                    stream.write(f"; {spec.comment}\n")
                value = "" if spec.default is None else _value_to_str(spec.default)
                stream.write(f"{key} = {value}\n")
            stream.write("\n")

    def __write_default(self, path: Path):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as file:
                self.generate_default(file)
        except OSError as e:
            raise ConfigError(f"Unable to create '{path}'.") from e

    def get_view(self) -> MappingProxyType[str, MappingProxyType[str, Any]]:
        """
        Returns:
            MappingProxyType: Read-only view on the typed values. Inner
                mappings reflect later `set_value()` calls.
        """
        return MappingProxyType(
            {section: MappingProxyType(values) for section, values in self._data.items()}
        )

    def set_value(self, section: str, key: str, value: Any):
        """
        Change a value and save the configuration file, if any. The key
        must exist and the value must respect the schema rules.

        Raises:
            ConfigError: Unknown key, invalid value or saving error.
        """
        if section not in self._schema or key not in self._schema[section]:
            raise ConfigError(f"Unknown key '{key}' in section [{section}].")

        try:
            raw = _value_to_str(value)
        except ValueError as e:
            raise ConfigError(str(e)) from e

        converted = self._schema[section][key].convert(raw)
        self._data.setdefault(section, {})[key] = converted
        self._ini.set(section, key, raw)

        if self._path is None:
            return
        try:
            self.__save(self._path)
        except OSError as e:
            raise ConfigError(f"Error saving the configuration '{self._path}'.") from e
        logger.info(f"Configuration saved under '{self._path}'.")

    def __save(self, path: Path):
        """Rewrite the file keeping the schema comments."""
        with open(path, "w", encoding="utf-8") as file:
            for section, specs in self._schema.items():
                file.write(f"[{section}]\n")
                for key, spec in specs.items():
                    if spec.comment:
                        file.write(f"; {spec.comment}\n")
                    file.write(f"{key} = {self._ini[section][key]}\n")
                file.write("\n")
