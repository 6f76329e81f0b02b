from pathlib import Path
from typing import Optional

from shared.common_utils.logger import logger


class CustomResponsePage:
    """HTML snippet injected into responses, read from the agent's assets directory."""

    def __init__(self, assets_dir: Path, file_name: str = "inject.html"):
        self.assets_dir = Path(assets_dir)
        self.file_name = file_name
        self._content: Optional[str] = None

    @property
    def path(self) -> Path:
        return self.assets_dir / self.file_name

    @property
    def content(self) -> Optional[str]:
        return self._content

    def load(self) -> Optional[str]:
        """(Re)read the page. A missing page clears the cached content."""
        try:
            self._content = self.path.read_text(encoding="utf-8")
            logger.info(f"Custom response page loaded from {self.path}")
        except FileNotFoundError:
            self._content = None
            logger.info(f"No custom response page at {self.path}")
        except OSError as e:
            logger.warning(f"Failed to read custom response page {self.path}: {e}")
        return self._content
