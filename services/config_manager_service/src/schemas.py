from typing import Dict, Any, Optional
from pydantic import BaseModel, Field
from enum import Enum


class ConfigSource(str, Enum):
    DEFAULT = "default"
    FILE = "file"
    CLOUD = "cloud"
    RUNTIME = "runtime"


class SyncMode(str, Enum):
    STANDALONE = "standalone"
    MANAGED = "managed"


class ConfigMetadata(BaseModel):
    mode: SyncMode = Field(..., description="Which source feeds the store after boot")
    source: ConfigSource = Field(..., description="Source of the last applied update")
    last_updated: str = Field(..., description="Last update timestamp")
    checksum: str = Field(..., description="Configuration checksum")


class ConfigUpdateRequest(BaseModel):
    key: str = Field(..., description="Configuration item to change")
    value: str = Field(..., description="New value in its string form")


class ConfigUpdateResponse(BaseModel):
    success: bool = Field(..., description="Whether the update was accepted")
    message: str = Field(..., description="Response message")
    value: Optional[Any] = Field(None, description="Value published after the update")


class HeartbeatRequest(BaseModel):
    rasp_id: str = Field(..., description="Agent identifier")
    config_time: int = Field(0, description="Timestamp of the configuration the agent holds")


class HeartbeatData(BaseModel):
    config_time: int = 0
    config: Optional[Dict[str, Any]] = None


class HeartbeatResponse(BaseModel):
    status: int = Field(..., description="0 on success")
    description: str = ""
    data: Optional[HeartbeatData] = None
