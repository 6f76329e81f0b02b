from typing import Any, Dict, Mapping

from shared.message_schemas.check_types import CheckType
from shared.common_utils.logger import logger

GLOBAL_HOOK = "*"
GLOBAL_KEY = ""
ALL_TYPES = "all"


def parse_hook_white(hooks: Mapping[Any, Any]) -> Dict[str, int]:
    """
    Parses the hook.white section into hook point -> suppression bitmask.

    A "*" entry that lists "all" disables every check everywhere: the result
    is the single global entry and anything parsed before it is dropped.
    """
    whitelist: Dict[str, int] = {}
    for hook_point, types in hooks.items():
        if not isinstance(types, list):
            logger.debug(f"hook.white entry {hook_point!r} is not a list, skipped")
            continue

        name = str(hook_point)
        if name == GLOBAL_HOOK and ALL_TYPES in types:
            return {GLOBAL_KEY: CheckType.full_mask()}

        if ALL_TYPES in types:
            code_sum = CheckType.full_mask()
        else:
            code_sum = 0
            for type_name in types:
                check_type = CheckType.from_name(type_name)
                if check_type is not None:
                    code_sum += check_type.code

        whitelist[GLOBAL_KEY if name == GLOBAL_HOOK else name] = code_sum
    return whitelist


def is_suppressed(whitelist: Mapping[str, int], hook_point: str, check_type: CheckType) -> bool:
    """True when the global entry or the hook point's entry covers check_type."""
    mask = whitelist.get(GLOBAL_KEY, 0) | whitelist.get(hook_point, 0)
    return bool(mask & check_type.code)
