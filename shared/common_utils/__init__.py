from .logger import logger
from .periodic_task import PeriodicTask, TaskState
from .env_settings import AgentSettings

__all__ = ["logger", "PeriodicTask", "TaskState", "AgentSettings"]
