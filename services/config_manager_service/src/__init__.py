"""
Configuration Manager Service Source Package
Contains the core implementation of the agent's dynamic configuration engine.
"""

from .config_manager import ConfigManager, create_app
from .config_store import ConfigStore
from .config_items import ConfigItem, ITEMS, is_known_key
from .config_loader import ConfigLoader
from .cloud_client import CloudClient
from .custom_response import CustomResponsePage
from .hook_whitelist import parse_hook_white
from .lru_cache import LRUCache, DependentCacheManager
from .sync_engine import SyncEngine
from .schemas import (
    ConfigSource,
    SyncMode,
    ConfigMetadata,
    ConfigUpdateRequest,
    ConfigUpdateResponse,
)
from .validator import (
    ConfigError,
    ConfigValidationError,
    DocumentParseError,
    CriticalBootError,
    TransientSyncError,
    WatchSetupError,
    generate_config_checksum,
)

__all__ = [
    # Main components
    "ConfigManager",
    "create_app",
    "ConfigStore",
    "SyncEngine",
    "ConfigLoader",
    "CloudClient",
    "CustomResponsePage",
    "LRUCache",
    "DependentCacheManager",

    # Keys
    "ConfigItem",
    "ITEMS",
    "is_known_key",
    "parse_hook_white",

    # Schemas
    "ConfigSource",
    "SyncMode",
    "ConfigMetadata",
    "ConfigUpdateRequest",
    "ConfigUpdateResponse",

    # Errors
    "ConfigError",
    "ConfigValidationError",
    "DocumentParseError",
    "CriticalBootError",
    "TransientSyncError",
    "WatchSetupError",
    "generate_config_checksum",
]
