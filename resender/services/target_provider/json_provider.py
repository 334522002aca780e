import json
import logging
from typing import Any, Dict

from resender.services.target_provider.target_provider import TargetProvider

logger = logging.getLogger(__name__)


class TargetJsonProvider(TargetProvider):
    """
    Targets from a JSON file, either ``{"name": "url", ...}`` or ``[{"name": ..., "url": ...}, ...]``.
    The file is read lazily so a Query run does not need it.
    """
    def __init__(self, json_path: str) -> None:
        self.__json_path = json_path
        self.__targets: Dict[str, str] | None = None

    def get_all_targets(self) -> Dict[str, str]:
        if self.__targets is None:
            self.__targets = self._read_targets_file(self.__json_path)
        return self.__targets

    @staticmethod
    def _read_targets_file(targets_path: str) -> Dict[str, str]:
        try:
            with open(targets_path, encoding="utf-8") as f:
                data: Any = json.load(f)
        except FileNotFoundError:
            logger.error(f"Targets file not found: {targets_path}")
            raise
        except json.JSONDecodeError as e:
            raise ValueError(f"Targets file {targets_path} is not valid JSON: {e}")

        if isinstance(data, dict):
            return {str(name): str(url) for name, url in data.items()}

        if isinstance(data, list):
            targets = {}
            for entry in data:
                if not isinstance(entry, dict) or "name" not in entry or "url" not in entry:
                    raise ValueError(f"Invalid target entry in {targets_path}: {entry}")
                targets[str(entry["name"])] = str(entry["url"])
            return targets

        raise ValueError(f"Targets file {targets_path} must contain an object or a list")
