"""
Tagged configuration values.

Raw values from the YAML document or the cloud payload are tagged once, when
they enter the engine. Everything downstream matches on the tag instead of
probing Python types.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class IntValue:
    value: int


@dataclass(frozen=True)
class BoolValue:
    value: bool


@dataclass(frozen=True)
class StrValue:
    value: str


@dataclass(frozen=True)
class JsonValue:
    value: Union[Dict[str, Any], List[Any]]


ConfigValue = Union[IntValue, BoolValue, StrValue, JsonValue]


def tag_value(raw: Any) -> Optional[ConfigValue]:
    """Tag a raw parsed value. None stays None."""
    if raw is None:
        return None
    # bool before int: bool is a subclass of int
    if isinstance(raw, bool):
        return BoolValue(raw)
    if isinstance(raw, int):
        return IntValue(raw)
    if isinstance(raw, (dict, list)):
        return JsonValue(raw)
    return StrValue(str(raw))


def as_text(value: ConfigValue) -> str:
    """Render a tagged value as the string form the per-key setters accept."""
    match value:
        case BoolValue(value=flag):
            return "true" if flag else "false"
        case IntValue(value=number):
            return str(number)
        case StrValue(value=text):
            return text
        case JsonValue(value=document):
            return json.dumps(document)
    raise TypeError(f"not a config value: {value!r}")

