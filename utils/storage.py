import json
import os
from pathlib import Path
from typing import Any, Dict, Union

from utils.errors import ProjectLoadError
from utils.logger import get_logger

logger = get_logger("storage")


class ProjectStore:
    """
    Reads and writes project files (JSON) on the local filesystem.
    """

    def __init__(self, base_dir: Union[str, Path] = "."):
        self.base_dir = Path(base_dir)

    def resolve(self, filename: Union[str, Path]) -> Path:
        path = Path(filename)
        return path if path.is_absolute() else self.base_dir / path

    @staticmethod
    def filename_for(project_name: str) -> str:
        """Default file name for a project ("<name>.json")."""
        name = project_name.strip()
        if not name:
            raise ValueError("A project name is required to save")
        return f"{name}.json"

    def save(self, payload: Dict[str, Any], filename: Union[str, Path]) -> Path:
        """
        Write the payload atomically (temp file + rename).

        Returns:
            The written path
        """
        path = self.resolve(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)
        logger.info(f"Project saved: {path}")
        return path

    def load(self, filename: Union[str, Path]) -> Any:
        """
        Parsed JSON content of a project file.

        Raises:
            ProjectLoadError: missing, unreadable or corrupted file
        """
        path = self.resolve(filename)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Failed to load project {path}: {e}")
            raise ProjectLoadError(f"Could not load the project file. It may be corrupted. ({e})") from e
