"""
Authoritative store of the agent's runtime-tunable configuration.

Writers (boot, file reload, cloud heartbeat, runtime set_config) serialize on
one store-wide lock. Readers use the public attributes directly and never
lock: every published value is immutable and replaced in a single
assignment, so a reader sees either the old or the new value of a key.
"""

import json
import threading
from dataclasses import dataclass
from datetime import datetime, UTC
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from shared.common_utils.logger import logger
from shared.message_schemas.check_types import CheckType

from .config_items import (
    DEFAULT_BLOCK_URL,
    HOOK_WHITE,
    ITEMS,
    ITEMS_BY_KEY,
    RASP_ID,
    RESPONSE_HEADERS,
    SECRET_KEYS,
    STRUCTURED_KEYS,
    ConfigItem,
)
from .config_values import ConfigValue, JsonValue, StrValue, as_text, tag_value
from .hook_whitelist import is_suppressed, parse_hook_white
from .lru_cache import DependentCacheManager
from .schemas import ConfigSource
from .validator import (
    ConfigValidationError,
    bounded_int,
    parse_bool,
    parse_identifier,
    parse_int,
    parse_json_object,
    parse_str,
)

MAX_SQL_EXCEPTION_CODES_COUNT = 100
HEADER_MAX_LENGTH = 200

ConfigListener = Callable[[str, Any], None]


@dataclass(frozen=True)
class FieldBinding:
    """How one scalar key is converted and published."""
    attr: str
    parse: Callable[[str], Any]
    apply: Optional[Callable[["ConfigStore", Any], None]] = None


def _apply_ignore_hooks(store: "ConfigStore", value: str) -> None:
    store.ignore_hooks = tuple(hook for hook in value.replace(" ", "").split(",") if hook)


def _apply_inject_url_prefix(store: "ConfigStore", value: str) -> None:
    store.inject_url_prefix = value.rstrip("/")


def _apply_block_url(store: "ConfigStore", value: str) -> None:
    store.block_url = value or DEFAULT_BLOCK_URL


def _apply_log_max_backup(store: "ConfigStore", value: int) -> None:
    store.log_max_backup = value + 1


def _apply_debug_level(store: "ConfigStore", value: int) -> None:
    store.debug_level = max(value, 0)
    if store.debug_level > 0:
        logger.info(f"Debug output enabled, debug_level={store.debug_level}")


def _apply_algorithm_config(store: "ConfigStore", value: Dict[str, Any]) -> None:
    store.algorithm_config = value
    store.sql_error_codes = _extract_sql_error_codes(value)


def _apply_sql_cache_capacity(store: "ConfigStore", value: int) -> None:
    store.sql_cache_capacity = value
    store.cache_manager.recreate(value)


def _apply_lru_compare_enable(store: "ConfigStore", value: bool) -> None:
    if value != store.lru_compare_enable:
        store.lru_compare_enable = value
        store.cache_manager.clear()


def _apply_lru_compare_limit(store: "ConfigStore", value: int) -> None:
    if value < store.lru_compare_limit:
        store.cache_manager.clear()
    store.lru_compare_limit = value


def _extract_sql_error_codes(algorithm_config: Mapping[str, Any]) -> frozenset:
    error_codes = None
    try:
        error_codes = algorithm_config["sql_exception"]["mysql"]["error_code"]
    except (KeyError, TypeError):
        pass
    if not isinstance(error_codes, list):
        logger.warning("failed to get sql_exception.mysql.error_code from algorithm config")
        return frozenset()

    if len(error_codes) > MAX_SQL_EXCEPTION_CODES_COUNT:
        logger.warning(
            f"size of algorithm.config sql_exception.error_code can not be greater than "
            f"{MAX_SQL_EXCEPTION_CODES_COUNT}"
        )
    codes = set()
    for element in error_codes:
        try:
            codes.add(int(element))
        except (TypeError, ValueError):
            logger.warning(f"failed to add a json error code element: {element!r}")
    logger.info(f"mysql sql error codes: {sorted(codes)}")
    return frozenset(codes)


_BINDINGS: Dict[str, FieldBinding] = {
    "plugin.timeout.millis": FieldBinding("plugin_timeout", bounded_int("plugin.timeout.millis", 1)),
    "hooks.ignore": FieldBinding("ignore_hooks", parse_str, _apply_ignore_hooks),
    "inject.urlprefix": FieldBinding("inject_url_prefix", parse_str, _apply_inject_url_prefix),
    "request.param_encoding": FieldBinding("request_param_encoding", parse_str),
    "body.maxbytes": FieldBinding("body_max_bytes", bounded_int("body.maxbytes", 1)),
    "log.maxbackup": FieldBinding("log_max_backup", bounded_int("log.maxbackup", 0), _apply_log_max_backup),
    "plugin.maxstack": FieldBinding("plugin_max_stack", bounded_int("plugin.maxstack", 0)),
    "lru.max_size": FieldBinding("sql_cache_capacity", bounded_int("lru.max_size", 0), _apply_sql_cache_capacity),
    "plugin.filter": FieldBinding("plugin_filter", parse_bool),
    "ognl.expression.minlength": FieldBinding("ognl_min_length", bounded_int("ognl.expression.minlength", 1)),
    "sql.slowquery.min_rows": FieldBinding("sql_slow_query_min_rows", bounded_int("sql.slowquery.min_rows", 0)),
    "block.status_code": FieldBinding("block_status_code", bounded_int("block.status_code", 100, 999)),
    "debug.level": FieldBinding("debug_level", parse_int, _apply_debug_level),
    "algorithm.config": FieldBinding("algorithm_config", parse_json_object, _apply_algorithm_config),
    "clientip.header": FieldBinding("client_ip_header", parse_str),
    "block.redirect_url": FieldBinding("block_url", parse_str, _apply_block_url),
    "block.content_json": FieldBinding("block_json", parse_str),
    "block.content_xml": FieldBinding("block_xml", parse_str),
    "block.content_html": FieldBinding("block_html", parse_str),
    "cloud.enable": FieldBinding("cloud_switch", parse_bool),
    "cloud.backend_url": FieldBinding("cloud_address", parse_str),
    "cloud.app_id": FieldBinding("cloud_app_id", parse_str),
    "cloud.app_secret": FieldBinding("cloud_app_secret", parse_str),
    RASP_ID: FieldBinding("rasp_id", parse_identifier),
    "syslog.enable": FieldBinding("syslog_switch", parse_bool),
    "syslog.url": FieldBinding("syslog_url", parse_str),
    "syslog.tag": FieldBinding("syslog_tag", parse_str),
    "syslog.facility": FieldBinding("syslog_facility", bounded_int("syslog.facility", 0, 23)),
    "syslog.reconnect_interval": FieldBinding(
        "syslog_reconnect_interval", bounded_int("syslog.reconnect_interval", 1)
    ),
    "log.maxburst": FieldBinding("log_max_burst", bounded_int("log.maxburst", 0)),
    "cloud.heartbeat_interval": FieldBinding(
        "heartbeat_interval", bounded_int("cloud.heartbeat_interval", 10, 1800)
    ),
    "hook.white.ALL": FieldBinding("hook_white_all", parse_bool),
    "decompile.enable": FieldBinding("decompile_enable", parse_bool),
    "cpu.usage.percent": FieldBinding("cpu_usage_percent", bounded_int("cpu.usage.percent", 30, 100)),
    "cpu.usage.enable": FieldBinding("cpu_usage_enable", parse_bool),
    "cpu.usage.interval": FieldBinding("cpu_usage_interval", bounded_int("cpu.usage.interval", 1, 1800)),
    "openrasp.ssl_verifypeer": FieldBinding("https_verify_peer", parse_bool),
    "lru.compare_enable": FieldBinding("lru_compare_enable", parse_bool, _apply_lru_compare_enable),
    "lru.compare_limit": FieldBinding("lru_compare_limit", bounded_int("lru.compare_limit", 1, 102400), _apply_lru_compare_limit),
}

_STRUCTURED_ATTRS = {
    HOOK_WHITE: "hook_whitelist",
    RESPONSE_HEADERS: "response_headers",
}


class ConfigStore:
    """The live, validated configuration snapshot of the agent."""

    def __init__(self, cache_manager: Optional[DependentCacheManager] = None):
        self._lock = threading.RLock()
        self.cache_manager = cache_manager or DependentCacheManager(
            int(ITEMS_BY_KEY["lru.max_size"].default)
        )
        self._listeners: Dict[str, List[ConfigListener]] = {}
        self._revisions: Dict[str, Tuple[int, ConfigSource]] = {}
        self._generation = 0
        self.last_source: ConfigSource = ConfigSource.DEFAULT
        self.last_updated: str = datetime.now(UTC).isoformat()

        # Fields whose setters compare against the current value
        self.lru_compare_enable: bool = False
        self.lru_compare_limit: int = int(ITEMS_BY_KEY["lru.compare_limit"].default)
        self.rasp_id: str = ""
        self.sql_error_codes: frozenset = frozenset()
        self.hook_whitelist: Mapping[str, int] = MappingProxyType({})
        self.response_headers: Mapping[str, str] = MappingProxyType({})

        with self._lock:
            for item in ITEMS:
                if item.key not in STRUCTURED_KEYS:
                    self._set(item.key, item.default, True, ConfigSource.DEFAULT)

    # ------------------------------------------------------------------
    # Bulk loaders
    # ------------------------------------------------------------------

    def load_from_file(self, document: Optional[Mapping[str, Any]], is_init: bool = False) -> None:
        """
        Apply the local document. A missing document means every key takes its default.

        A value that fails validation leaves the key's previous value in place.
        """
        with self._lock:
            properties = document or {}
            for key in properties:
                if key not in ITEMS_BY_KEY:
                    logger.warning(f'configuration item "{key}" in config file doesn\'t exist, ignored')

            for item in ITEMS:
                raw = tag_value(properties.get(item.key))
                if item.key in STRUCTURED_KEYS:
                    self._load_structured(item, raw, ConfigSource.FILE, is_init)
                    continue
                if not item.file_sourceable:
                    if raw is not None:
                        logger.warning(f'configuration item "{item.key}" can not be set from config file, ignored')
                    continue

                value = item.default if raw is None else as_text(raw)
                try:
                    self._set(item.key, value, is_init, ConfigSource.FILE)
                except ConfigValidationError as e:
                    current = self._published(item.key)
                    logger.warning(
                        f'set config {item.key} from file failed with value "{value}", '
                        f'keep current value "{current}", because: {e}'
                    )
            self._touch(ConfigSource.FILE)
            logger.info("Configuration loaded from file" if document is not None
                        else "Configuration file unavailable, defaults applied")

    def load_from_cloud(self, config_map: Mapping[str, Any], is_init: bool = False) -> None:
        """
        Apply a configuration map pushed by the cloud.

        Bootstrap-only keys are never taken from the cloud. A value that fails
        validation is replaced by the key's default rather than the previous value.
        """
        with self._lock:
            for key in config_map:
                item = ITEMS_BY_KEY.get(key)
                if item is None:
                    logger.warning(f'configuration item "{key}" from cloud doesn\'t exist, ignored')
                elif item.bootstrap_only:
                    logger.info(f'configuration item "{key}" can not be set from cloud, ignored')

            for item in ITEMS:
                if item.bootstrap_only:
                    continue
                raw = tag_value(config_map.get(item.key))
                if item.key in STRUCTURED_KEYS:
                    self._load_structured(item, raw, ConfigSource.CLOUD, is_init)
                    continue

                value = item.default if raw is None else as_text(raw)
                try:
                    self._set(item.key, value, is_init, ConfigSource.CLOUD)
                except ConfigValidationError as e:
                    logger.warning(
                        f'set config {item.key} from cloud failed with value "{value}", '
                        f"use default value: {item.default}, because: {e}"
                    )
                    self._set(item.key, item.default, is_init, ConfigSource.CLOUD)
            self._touch(ConfigSource.CLOUD)
            logger.info("Configuration loaded from cloud")

    # ------------------------------------------------------------------
    # Single-key entry point
    # ------------------------------------------------------------------

    def set_config(
        self,
        key: str,
        value: str,
        is_init: bool = False,
        source: ConfigSource = ConfigSource.RUNTIME,
    ) -> bool:
        """
        Set one configuration item from its string form.

        Returns True when the value was accepted and published. Unknown keys,
        bootstrap-only keys coming from the cloud and invalid values return
        False and leave the current value untouched.
        """
        with self._lock:
            item = ITEMS_BY_KEY.get(key)
            if item is None:
                logger.info(f'configuration item "{key}" doesn\'t exist')
                return False
            if item.bootstrap_only and source == ConfigSource.CLOUD:
                logger.info(f'configuration item "{key}" can not be set from cloud')
                return False

            try:
                if key in STRUCTURED_KEYS:
                    self._set_structured(key, self._coerce_mapping(key, StrValue(str(value))), is_init, source)
                    accepted = True
                else:
                    accepted = self._set(key, value, is_init, source)
            except ConfigValidationError as e:
                logger.warning(f'configuration item "{key}" failed to change to "{value}" because: {e}')
                return False

            if accepted:
                self._touch(source)
            return accepted

    def check_major_config(self, document: Optional[Mapping[str, Any]]) -> Optional[str]:
        """Return why the document's rasp.id is unusable, or None when it is fine."""
        raw = tag_value((document or {}).get(RASP_ID))
        if raw is None:
            return None
        try:
            parse_identifier(as_text(raw))
        except ConfigValidationError as e:
            return str(e)
        return None

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any:
        """Current typed value of a declared key."""
        if key not in ITEMS_BY_KEY:
            raise KeyError(key)
        return self._published(key)

    def revision(self, key: str) -> Optional[Tuple[int, ConfigSource]]:
        """(generation, source) of the last accepted write to key."""
        return self._revisions.get(key)

    def snapshot(self) -> Dict[str, Any]:
        """JSON-friendly copy of every declared key, with secrets masked."""
        result: Dict[str, Any] = {}
        for item in ITEMS:
            value = self._published(item.key)
            if isinstance(value, Mapping):
                value = dict(value)
            elif isinstance(value, tuple):
                value = list(value)
            if item.key in SECRET_KEYS and value:
                value = "******"
            result[item.key] = value
        return result

    def is_hook_whitelisted(self, hook_point: str, check_type: CheckType) -> bool:
        return is_suppressed(self.hook_whitelist, hook_point, check_type)

    @property
    def is_debug_enabled(self) -> bool:
        return self.debug_level > 0

    def add_listener(self, key: str, callback: ConfigListener) -> None:
        """Call callback(key, new_value) whenever key's published value changes."""
        if key not in ITEMS_BY_KEY:
            raise KeyError(key)
        with self._lock:
            self._listeners.setdefault(key, []).append(callback)

    # ------------------------------------------------------------------
    # Internals, all called with the lock held
    # ------------------------------------------------------------------

    def _set(self, key: str, value: str, is_init: bool, source: ConfigSource) -> bool:
        binding = _BINDINGS[key]
        if key == RASP_ID and not is_init and value != self.rasp_id:
            logger.info("can not update the value of rasp.id at runtime")
            return False

        converted = binding.parse(value)
        previous = getattr(self, binding.attr, None)
        if binding.apply is not None:
            binding.apply(self, converted)
        else:
            setattr(self, binding.attr, converted)
        self._published_write(key, previous, source, is_init)
        return True

    def _load_structured(
        self, item: ConfigItem, raw: Optional[ConfigValue], source: ConfigSource, is_init: bool
    ) -> None:
        try:
            self._set_structured(item.key, self._coerce_mapping(item.key, raw), is_init, source)
        except ConfigValidationError as e:
            if item.key == HOOK_WHITE and source == ConfigSource.CLOUD:
                logger.warning(f"set config {item.key} from cloud failed, use default value, because: {e}")
                self._set_structured(item.key, {}, is_init, source)
            else:
                logger.warning(f"set config {item.key} from {source.value} failed, keep current value, because: {e}")

    def _set_structured(self, key: str, mapping: Mapping[Any, Any], is_init: bool, source: ConfigSource) -> None:
        attr = _STRUCTURED_ATTRS[key]
        previous = getattr(self, attr)
        if key == HOOK_WHITE:
            self.hook_whitelist = MappingProxyType(parse_hook_white(mapping))
        else:
            self.response_headers = MappingProxyType(self._validate_headers(mapping))
        self._published_write(key, previous, source, is_init)

    @staticmethod
    def _coerce_mapping(key: str, raw: Optional[ConfigValue]) -> Mapping[Any, Any]:
        match raw:
            case None:
                return {}
            case JsonValue(value=dict() as mapping):
                return mapping
            case StrValue(value=text) if not text.strip():
                return {}
            case StrValue(value=text):
                try:
                    parsed = json.loads(text)
                except ValueError as e:
                    raise ConfigValidationError(f"{key} is not valid JSON: {e}")
                if isinstance(parsed, dict):
                    return parsed
        raise ConfigValidationError(f"{key} must be a mapping")

    @staticmethod
    def _validate_headers(headers: Mapping[Any, Any]) -> Dict[str, str]:
        validated: Dict[str, str] = {}
        for name, raw in headers.items():
            tagged = tag_value(raw)
            if name is None or tagged is None:
                raise ConfigValidationError(f"the value of {RESPONSE_HEADERS}'s key and value can not be null")
            if isinstance(tagged, JsonValue):
                raise ConfigValidationError(
                    f"the type of {RESPONSE_HEADERS}'s value must be primitive type or String, "
                    f"can not be {type(raw).__name__}"
                )
            header_name = str(name)
            header_value = as_text(tagged)
            if not 0 < len(header_name) <= HEADER_MAX_LENGTH:
                raise ConfigValidationError(f"the length of {RESPONSE_HEADERS}'s key must be between [1,200]")
            if not 0 < len(header_value) <= HEADER_MAX_LENGTH:
                raise ConfigValidationError(f"the length of {RESPONSE_HEADERS}'s value must be between [1,200]")
            validated[header_name] = header_value
        return validated

    def _published(self, key: str) -> Any:
        attr = _STRUCTURED_ATTRS.get(key) or _BINDINGS[key].attr
        return getattr(self, attr)

    def _published_write(self, key: str, previous: Any, source: ConfigSource, is_init: bool) -> None:
        current = self._published(key)
        self._generation += 1
        self._revisions[key] = (self._generation, source)

        shown = "******" if key in SECRET_KEYS and current else current
        if source == ConfigSource.DEFAULT:
            logger.debug(f"{key}: {shown}")
        elif is_init:
            logger.info(f"{key}: {shown}")
        elif previous != current:
            logger.info(f'configuration item "{key}" changed to "{shown}"')
        else:
            logger.debug(f'configuration item "{key}" unchanged: "{shown}"')

        if previous != current and source != ConfigSource.DEFAULT:
            self._notify(key, current)

    def _notify(self, key: str, value: Any) -> None:
        for callback in self._listeners.get(key, ()):
            try:
                callback(key, value)
            except Exception as e:
                logger.error(f'listener for configuration item "{key}" failed: {e}', exc_info=True)

    def _touch(self, source: ConfigSource) -> None:
        self.last_source = source
        self.last_updated = datetime.now(UTC).isoformat()
