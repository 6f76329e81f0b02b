from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class ConfigItem:
    """A declared configuration key and its hard-coded default."""
    key: str
    default: str
    file_sourceable: bool = True
    bootstrap_only: bool = False


HOOK_WHITE = "hook.white"
RESPONSE_HEADERS = "inject.custom_headers"
RASP_ID = "rasp.id"

DEFAULT_BLOCK_URL = "https://rasp.baidu.com/blocked/?request_id=%request_id%"

ITEMS: Tuple[ConfigItem, ...] = (
    ConfigItem("plugin.timeout.millis", "100"),
    ConfigItem("hooks.ignore", ""),
    ConfigItem("inject.urlprefix", ""),
    ConfigItem("request.param_encoding", ""),
    ConfigItem("body.maxbytes", "12288"),
    ConfigItem("log.maxbackup", "30"),
    ConfigItem("plugin.maxstack", "100"),
    ConfigItem("lru.max_size", "1024"),
    ConfigItem("plugin.filter", "true"),
    ConfigItem("ognl.expression.minlength", "30"),
    ConfigItem("sql.slowquery.min_rows", "500"),
    ConfigItem("block.status_code", "302"),
    ConfigItem("debug.level", "0"),
    # Only the cloud or the runtime entry point may set algorithm.config
    ConfigItem("algorithm.config", "{}", file_sourceable=False),
    ConfigItem("clientip.header", "ClientIP"),
    ConfigItem("block.redirect_url", DEFAULT_BLOCK_URL),
    ConfigItem(
        "block.content_json",
        '{"error":true, "reason": "Request blocked by OpenRASP", "request_id": "%request_id%"}',
    ),
    ConfigItem(
        "block.content_xml",
        '<?xml version="1.0"?><doc><error>true</error><reason>Request blocked by OpenRASP</reason>'
        "<request_id>%request_id%</request_id></doc>",
    ),
    ConfigItem(
        "block.content_html",
        '</script><script>location.href="https://rasp.baidu.com/blocked2/?request_id=%request_id%"</script>',
    ),
    ConfigItem("cloud.enable", "false", bootstrap_only=True),
    ConfigItem("cloud.backend_url", "", bootstrap_only=True),
    ConfigItem("cloud.app_id", "", bootstrap_only=True),
    ConfigItem("cloud.app_secret", "", bootstrap_only=True),
    ConfigItem(RASP_ID, "", bootstrap_only=True),
    ConfigItem("syslog.enable", "false"),
    ConfigItem("syslog.url", ""),
    ConfigItem("syslog.tag", "OPENRASP"),
    ConfigItem("syslog.facility", "1"),
    ConfigItem("syslog.reconnect_interval", "300000"),
    ConfigItem("log.maxburst", "100"),
    ConfigItem("cloud.heartbeat_interval", "90", bootstrap_only=True),
    ConfigItem(HOOK_WHITE, ""),
    ConfigItem("hook.white.ALL", "true"),
    ConfigItem("decompile.enable", "false"),
    ConfigItem(RESPONSE_HEADERS, ""),
    ConfigItem("cpu.usage.percent", "90"),
    ConfigItem("cpu.usage.enable", "false"),
    ConfigItem("cpu.usage.interval", "5"),
    ConfigItem("openrasp.ssl_verifypeer", "false"),
    ConfigItem("lru.compare_enable", "false"),
    ConfigItem("lru.compare_limit", "10240"),
)

ITEMS_BY_KEY: Dict[str, ConfigItem] = {item.key: item for item in ITEMS}

# Keys parsed from nested sections rather than from a scalar string
STRUCTURED_KEYS = frozenset({HOOK_WHITE, RESPONSE_HEADERS})

SECRET_KEYS = frozenset({"cloud.app_secret"})


def is_known_key(key: str) -> bool:
    return key in ITEMS_BY_KEY
