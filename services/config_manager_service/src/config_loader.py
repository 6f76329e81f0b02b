import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from shared.common_utils.logger import logger
from .validator import DocumentParseError


class ConfigLoader:
    """Reads the agent's local YAML configuration document."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = Path(config_file_path)

    def read(self) -> Dict[str, Any]:
        """Parse the document. Raises FileNotFoundError or DocumentParseError."""
        with open(self.config_file_path, "r", encoding="utf-8") as f:
            try:
                document = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise DocumentParseError(f"{self.config_file_path.name} parsing failed: {e}")

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise DocumentParseError(
                f"{self.config_file_path.name} must contain a mapping, got {type(document).__name__}"
            )
        return document

    def load(self) -> Optional[Dict[str, Any]]:
        """Parse the document, or return None when it is missing or malformed."""
        try:
            document = self.read()
        except FileNotFoundError:
            logger.warning(f"Could not find {self.config_file_path}, using default settings")
            return None
        except DocumentParseError as e:
            logger.warning(f"{e}, using default settings")
            return None
        except OSError as e:
            logger.warning(f"Could not read {self.config_file_path}: {e}, using default settings")
            return None

        logger.info(f"Configuration document read from {self.config_file_path}")
        return document
