import json
import os
import datetime
from typing import Any, Dict, List, Optional

from config import load_settings
from utils.logger import get_logger

logger = get_logger("error_manager")

MAX_ENTRIES = 100


class ErrorManager:
    """
    Centralized log of generation failures (last 100, JSON file).

    Row-scoped failures carry the row id so a row's history can be looked up
    after its visible error was cleared by a retry.
    """

    LOG_FILE = load_settings()["error_log_file"]

    @classmethod
    def log_error(
        cls,
        service: str,
        error_message: str,
        details: Any = None,
        severity: str = "error",
        row_id: Optional[int] = None,
    ):
        """
        Append an error to the log file.

        Args:
            service: Name of the agent (e.g., "ImageAgent", "VideoPromptAgent")
            error_message: The message shown on the row
            details: Additional context (exception type, etc.)
            severity: "warning", "error" or "critical"
            row_id: Storyboard row the failure belongs to
        """
        entry = {
            "timestamp": datetime.datetime.now().isoformat(),
            "service": service,
            "message": error_message,
            "details": str(details) if details else None,
            "severity": severity,
            "row_id": row_id,
        }

        directory = os.path.dirname(cls.LOG_FILE)
        if directory:
            os.makedirs(directory, exist_ok=True)

        try:
            logs = cls._read()
            logs.append(entry)
            if len(logs) > MAX_ENTRIES:
                logs = logs[-MAX_ENTRIES:]
            with open(cls.LOG_FILE, 'w', encoding='utf-8') as f:
                json.dump(logs, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.critical(f"Failed to write to error log: {e} (original: [{service}] {error_message})")

    @classmethod
    def _read(cls) -> List[Dict]:
        if not os.path.exists(cls.LOG_FILE):
            return []
        try:
            with open(cls.LOG_FILE, 'r', encoding='utf-8') as f:
                content = f.read()
            return json.loads(content) if content.strip() else []
        except json.JSONDecodeError:
            logger.warning(f"Error log {cls.LOG_FILE} is corrupted, starting over")
            return []

    @classmethod
    def get_recent_errors(cls, limit: int = 20) -> List[Dict]:
        """Most recent entries first."""
        try:
            logs = cls._read()
        except OSError:
            return []
        return sorted(logs, key=lambda x: x['timestamp'], reverse=True)[:limit]

    @classmethod
    def errors_for_row(cls, row_id: int) -> List[Dict]:
        """Every logged failure of one row, oldest first."""
        try:
            logs = cls._read()
        except OSError:
            return []
        return [entry for entry in logs if entry.get("row_id") == row_id]

    @classmethod
    def clear_logs(cls):
        if os.path.exists(cls.LOG_FILE):
            os.remove(cls.LOG_FILE)
