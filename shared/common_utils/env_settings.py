import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentSettings(BaseSettings):
    """Process-level settings of the agent, read from RASP_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="RASP_", env_file=".env", extra="ignore")

    # Layout under the agent base directory
    BASE_DIR: str = os.getcwd()
    CONFIG_DIR_NAME: str = "conf"
    CONFIG_FILE_NAME: str = "openrasp.yml"
    CUSTOM_RESPONSE_DIR_NAME: str = "assets"
    CUSTOM_RESPONSE_FILE_NAME: str = "inject.html"

    # Cloud settings
    CLOUD_REQUEST_TIMEOUT: float = 10.0

    # File watch settings
    WATCH_SETUP_TIMEOUT: float = 10.0
    WATCH_TICK_MS: int = 200

    # Admin API settings
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8000

    @property
    def CONFIG_DIR(self) -> Path:
        return Path(self.BASE_DIR) / self.CONFIG_DIR_NAME

    @property
    def CONFIG_FILE_PATH(self) -> Path:
        return self.CONFIG_DIR / self.CONFIG_FILE_NAME

    @property
    def CUSTOM_RESPONSE_DIR(self) -> Path:
        return Path(self.BASE_DIR) / self.CUSTOM_RESPONSE_DIR_NAME
