from typing import Dict, Any, Optional, Callable
import jsonschema
import hashlib
import json
import re


class ConfigError(Exception):
    """Base class for configuration engine errors."""
    pass


class ConfigValidationError(ConfigError):
    """A single configuration value failed conversion or validation."""
    pass


class DocumentParseError(ConfigError):
    """The local configuration document could not be parsed."""
    pass


class CriticalBootError(ConfigError):
    """A mandatory configuration invariant is violated at startup."""
    pass


class TransientSyncError(ConfigError):
    """Fetching configuration from the cloud failed for this tick."""
    pass


class WatchSetupError(ConfigError):
    """The configuration file watch could not be registered."""
    pass


_TRUE_VALUES = ("true", "1", "t", "y", "yes", "on")
_FALSE_VALUES = ("false", "0", "f", "n", "no", "off")
_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9]*$")

ALGORITHM_CONFIG_SCHEMA = {"type": "object"}


def validate_config_structure(config: Any, schema: Dict[str, Any]) -> None:
    """
    Validates a configuration against a JSON schema.
    """
    try:
        jsonschema.validate(instance=config, schema=schema)
    except jsonschema.exceptions.ValidationError as e:
        raise ConfigValidationError(f"Configuration validation failed: {e.message}")


def generate_config_checksum(config: Dict[str, Any]) -> str:
    """
    Generates a checksum for a configuration dictionary.
    """
    config_str = json.dumps(config, sort_keys=True, default=str)
    return hashlib.sha256(config_str.encode()).hexdigest()


def parse_int(value: str) -> int:
    """
    Converts a configuration string to an int.
    """
    try:
        return int(str(value).strip())
    except ValueError:
        raise ConfigValidationError(f"'{value}' is not a valid integer")


def parse_bool(value: str) -> bool:
    """
    Converts a configuration string to a bool.
    """
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigValidationError(f"'{value}' is not a valid boolean")


def parse_str(value: str) -> str:
    return str(value)


def bounded_int(
    key: str, minimum: Optional[int] = None, maximum: Optional[int] = None
) -> Callable[[str], int]:
    """
    Builds an int converter that enforces an inclusive range.
    """
    def convert(value: str) -> int:
        number = parse_int(value)
        if minimum is not None and maximum is not None:
            if not minimum <= number <= maximum:
                raise ConfigValidationError(f"{key} must be between [{minimum},{maximum}]")
        elif minimum is not None and number < minimum:
            if minimum == 1:
                raise ConfigValidationError(f"{key} must be greater than 0")
            raise ConfigValidationError(f"{key} can not be less than {minimum}")
        elif maximum is not None and number > maximum:
            raise ConfigValidationError(f"{key} can not be greater than {maximum}")
        return number

    return convert


def parse_identifier(value: str) -> str:
    """
    Validates an agent identifier: empty, or 16 to 512 ASCII letters and digits.
    """
    identifier = str(value)
    if not identifier:
        return identifier
    if len(identifier) < 16 or len(identifier) > 512:
        raise ConfigValidationError("the length of rasp.id must be between [16,512]")
    if not _IDENTIFIER_PATTERN.match(identifier):
        raise ConfigValidationError("the rasp.id can only contain letters and numbers")
    return identifier


def parse_json_object(value: str) -> Dict[str, Any]:
    """
    Parses a JSON document that must be an object.
    """
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(f"invalid JSON: {e}")
    validate_config_structure(parsed, ALGORITHM_CONFIG_SCHEMA)
    return parsed
