from typing import Any, Dict, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from shared.common_utils.env_settings import AgentSettings
from shared.common_utils.logger import logger
from .config_items import SECRET_KEYS, is_known_key
from .config_store import ConfigStore
from .lru_cache import DependentCacheManager
from .schemas import (
    ConfigMetadata,
    ConfigUpdateRequest,
    ConfigUpdateResponse,
    SyncMode,
)
from .sync_engine import SyncEngine
from .validator import generate_config_checksum


class ConfigManager:
    """
    Composition root of the configuration engine.

    Builds the store, its dependent cache and the sync engine once, in a fixed
    order, and hands the same store to every consumer.
    """

    def __init__(
        self,
        settings: Optional[AgentSettings] = None,
        sync_engine: Optional[SyncEngine] = None,
        store: Optional[ConfigStore] = None,
    ):
        self.settings = settings or AgentSettings()
        self.cache_manager = store.cache_manager if store else DependentCacheManager()
        self.store = store or ConfigStore(self.cache_manager)
        self.sync_engine = sync_engine or SyncEngine(self.store, self.settings)
        self._started = False
        self.app = FastAPI(title="RASP Config Manager", lifespan=self._lifespan)
        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        self.start()
        yield
        self.stop()

    def _setup_routes(self):
        """Setup FastAPI routes."""
        @self.app.get("/api/v1/config")
        async def get_config() -> Dict[str, Any]:
            return self.store.snapshot()

        @self.app.get("/api/v1/config/item/{key}")
        async def get_config_item(key: str) -> Dict[str, Any]:
            if not is_known_key(key):
                raise HTTPException(status_code=404, detail=f"Configuration item {key} not found")
            return {"key": key, "value": self.store.snapshot()[key]}

        @self.app.post("/api/v1/config/update")
        async def update_config(request: ConfigUpdateRequest) -> ConfigUpdateResponse:
            return self.update_config(request)

        @self.app.get("/api/v1/config/metadata")
        async def get_config_metadata() -> ConfigMetadata:
            return self.get_metadata()

    def start(self) -> None:
        """Boot the configuration engine. Boot errors propagate and abort startup."""
        if self._started:
            return
        self.sync_engine.boot()
        self._started = True
        logger.info("Config Manager started")

    def stop(self) -> None:
        if not self._started:
            return
        self.sync_engine.stop()
        self._started = False
        logger.info("Config Manager stopped")

    def update_config(self, request: ConfigUpdateRequest) -> ConfigUpdateResponse:
        """Apply one runtime change through the store's validated entry point."""
        if not is_known_key(request.key):
            raise HTTPException(status_code=404, detail=f"Configuration item {request.key} not found")

        accepted = self.store.set_config(request.key, request.value)
        value = self.store.snapshot()[request.key]
        if accepted:
            return ConfigUpdateResponse(
                success=True, message=f"{request.key} updated", value=value
            )
        shown = "******" if request.key in SECRET_KEYS else request.value
        return ConfigUpdateResponse(
            success=False, message=f"{request.key} rejected value {shown!r}", value=value
        )

    def get_metadata(self) -> ConfigMetadata:
        """Get current configuration metadata."""
        return ConfigMetadata(
            mode=self.sync_engine.mode or SyncMode.STANDALONE,
            source=self.store.last_source,
            last_updated=self.store.last_updated,
            checksum=generate_config_checksum(self.store.snapshot()),
        )


def create_app(settings: Optional[AgentSettings] = None) -> FastAPI:
    return ConfigManager(settings).app


if __name__ == "__main__":
    import uvicorn
    agent_settings = AgentSettings()
    uvicorn.run(create_app(agent_settings), host=agent_settings.API_HOST, port=agent_settings.API_PORT)
