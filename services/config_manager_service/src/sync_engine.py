"""
Configuration Sync Engine

Decides which source feeds the ConfigStore and when:
- boot: the local document is always applied first
- standalone mode: filesystem events under the agent base directory reload it
- managed mode: a heartbeat task pulls the configuration from the cloud
"""

import threading
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Set, Tuple

from watchfiles import Change, watch

from shared.common_utils.env_settings import AgentSettings
from shared.common_utils.logger import logger
from shared.common_utils.periodic_task import PeriodicTask
from .cloud_client import CloudClient
from .config_loader import ConfigLoader
from .config_store import ConfigStore
from .custom_response import CustomResponsePage
from .schemas import SyncMode
from .validator import CriticalBootError, WatchSetupError

FileChanges = Iterable[Tuple[Change, str]]


class SyncEngine:
    def __init__(
        self,
        store: ConfigStore,
        settings: AgentSettings,
        cloud_client: Optional[CloudClient] = None,
        watch_factory: Callable[..., Iterable[Set[Tuple[Change, str]]]] = watch,
    ):
        self.store = store
        self.settings = settings
        self.loader = ConfigLoader(settings.CONFIG_FILE_PATH)
        self.custom_response = CustomResponsePage(
            settings.CUSTOM_RESPONSE_DIR, settings.CUSTOM_RESPONSE_FILE_NAME
        )
        self.mode: Optional[SyncMode] = None
        self.heartbeat_task: Optional[PeriodicTask] = None
        self._cloud_client = cloud_client
        self._watch_factory = watch_factory
        self._watch_thread: Optional[threading.Thread] = None
        self._watch_stop = threading.Event()
        # Set once the watch yields for the first time or fails to start
        self._watch_ready = threading.Event()
        self._watch_error: Optional[BaseException] = None

        self._base_dir = Path(settings.BASE_DIR).resolve()
        self._config_dir = settings.CONFIG_DIR.resolve()
        self._config_file = settings.CONFIG_FILE_PATH.resolve()
        self._assets_dir = settings.CUSTOM_RESPONSE_DIR.resolve()

    def boot(self) -> SyncMode:
        """
        Load the local document and start the source that keeps the store current.

        Raises:
            CriticalBootError: rasp.id is malformed, or managed mode lacks its credentials
            WatchSetupError: the base directory cannot be watched
        """
        document = self.loader.load()
        self.store.load_from_file(document, is_init=True)

        message = self.store.check_major_config(document)
        if message:
            logger.critical(message)
            raise CriticalBootError(message)

        if self.store.cloud_switch:
            self.mode = SyncMode.MANAGED
            self._start_heartbeat()
        else:
            self.mode = SyncMode.STANDALONE
            self.custom_response.load()
            self._start_file_watch()

        self.store.add_listener("cloud.enable", self._on_cloud_switch_change)
        logger.info(f"Configuration sync started in {self.mode.value} mode")
        return self.mode

    def stop(self) -> None:
        """Stop the heartbeat task and the file watch."""
        if self.heartbeat_task is not None:
            self.heartbeat_task.stop()
        self._watch_stop.set()
        if self._watch_thread is not None:
            self._watch_thread.join(timeout=5)
            self._watch_thread = None
        if self._cloud_client is not None:
            self._cloud_client.close()
        logger.info("Configuration sync stopped")

    # ------------------------------------------------------------------
    # Standalone mode
    # ------------------------------------------------------------------

    def reload_from_file(self) -> None:
        """Re-read the local document and apply it."""
        try:
            document = self.loader.load()
            self.store.load_from_file(document)
        except Exception as e:
            logger.warning(f"update {self.settings.CONFIG_FILE_NAME} failed: {e}", exc_info=True)

    def handle_changes(self, changes: FileChanges) -> Set[str]:
        """
        React to one batch of filesystem events.

        Only the config file, the config directory and the custom response
        assets directory matter; each reload runs at most once per batch.
        Returns the names of the reloads performed.
        """
        reloads: Set[str] = set()
        for change, raw_path in changes:
            path = Path(raw_path).resolve()
            if path == self._config_file or path == self._config_dir:
                logger.info(f"Configuration change detected: {change.name} {path}")
                reloads.add("config")
            elif path == self._assets_dir or path.parent == self._assets_dir:
                logger.info(f"Custom response change detected: {change.name} {path}")
                reloads.add("custom_response")

        if "config" in reloads:
            self.reload_from_file()
        if "custom_response" in reloads:
            self.custom_response.load()
        return reloads

    def _start_file_watch(self) -> None:
        if not self._base_dir.is_dir():
            raise WatchSetupError(f"add listener on {self._base_dir} failed because: directory does not exist")

        self._watch_stop.clear()
        self._watch_ready.clear()
        self._watch_error = None
        self._watch_thread = threading.Thread(
            target=self._watch_loop, name="config-file-watch", daemon=True
        )
        self._watch_thread.start()

        # watchfiles registers the watch lazily, on the generator's first step
        started = self._watch_ready.wait(self.settings.WATCH_SETUP_TIMEOUT)
        if not started or self._watch_error is not None:
            self._watch_stop.set()
            reason = self._watch_error or f"no response within {self.settings.WATCH_SETUP_TIMEOUT}s"
            message = f"add listener on {self._base_dir} failed because: {reason}"
            logger.critical(message)
            raise WatchSetupError(message) from self._watch_error
        logger.info(f"Watching {self._base_dir} for configuration changes")

    def _watch_loop(self) -> None:
        try:
            for changes in self._watch_factory(
                self._base_dir,
                stop_event=self._watch_stop,
                recursive=True,
                rust_timeout=self.settings.WATCH_TICK_MS,
                yield_on_timeout=True,
            ):
                self._watch_ready.set()
                if not changes:
                    continue
                try:
                    self.handle_changes(changes)
                except Exception as e:
                    logger.error(f"Failed to handle configuration change: {e}", exc_info=True)
        except Exception as e:
            if not self._watch_ready.is_set():
                self._watch_error = e
                return
            logger.error(f"Configuration watch on {self._base_dir} stopped: {e}", exc_info=True)
        finally:
            self._watch_ready.set()

    # ------------------------------------------------------------------
    # Managed mode
    # ------------------------------------------------------------------

    def sync_from_cloud(self) -> bool:
        """
        Fetch the remote configuration once and apply it.

        Returns True when a new configuration was applied. Fetch errors
        propagate to the heartbeat task, which skips the tick.
        """
        config_map = self._get_cloud_client().fetch_config()
        if config_map is None:
            return False
        self.store.load_from_cloud(config_map)
        return True

    def _start_heartbeat(self) -> None:
        missing = [
            key for key, value in (
                ("cloud.backend_url", self.store.cloud_address),
                ("cloud.app_id", self.store.cloud_app_id),
                ("cloud.app_secret", self.store.cloud_app_secret),
            ) if not value
        ]
        if missing:
            message = f"cloud.enable is true but {', '.join(missing)} not configured"
            logger.critical(message)
            raise CriticalBootError(message)

        self.heartbeat_task = PeriodicTask(
            self.store.heartbeat_interval,
            self.sync_from_cloud,
            name="cloud-heartbeat",
            error_handler=self._on_sync_error,
        )
        self.heartbeat_task.start()

    def _get_cloud_client(self) -> CloudClient:
        if self._cloud_client is None:
            self._cloud_client = CloudClient(
                backend_url=self.store.cloud_address,
                app_id=self.store.cloud_app_id,
                app_secret=self.store.cloud_app_secret,
                rasp_id=self.store.rasp_id,
                timeout=self.settings.CLOUD_REQUEST_TIMEOUT,
                verify=self.store.https_verify_peer,
            )
        return self._cloud_client

    def _on_sync_error(self, error: BaseException) -> None:
        logger.warning(f"Cloud configuration sync failed, skipping this heartbeat: {error}")

    def _on_cloud_switch_change(self, key: str, value: Any) -> None:
        wants_managed = bool(value)
        if wants_managed != (self.mode == SyncMode.MANAGED):
            logger.warning(
                f"{key} changed to {value} at runtime, the sync mode stays "
                f"{self.mode.value} until the agent restarts"
            )
