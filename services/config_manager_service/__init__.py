"""
Configuration Manager Service
Runtime configuration engine of the RASP agent: validated store, file and cloud sync.
"""

from .src.config_manager import ConfigManager, create_app
from .src.config_store import ConfigStore
from .src.sync_engine import SyncEngine
from .src.schemas import (
    ConfigSource,
    SyncMode,
    ConfigMetadata,
    ConfigUpdateRequest,
    ConfigUpdateResponse,
)

__version__ = "0.1.0"
__all__ = [
    "ConfigManager",
    "create_app",
    "ConfigStore",
    "SyncEngine",
    "ConfigSource",
    "SyncMode",
    "ConfigMetadata",
    "ConfigUpdateRequest",
    "ConfigUpdateResponse",
]
