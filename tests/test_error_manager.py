"""
Unit tests for the JSON error log.
"""
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from utils import error_manager
from utils.error_manager import ErrorManager


class TestErrorManager:

    def test_entries_are_capped(self, error_log):
        for i in range(error_manager.MAX_ENTRIES + 5):
            ErrorManager.log_error("ImageAgent", f"failure {i}", row_id=i)
        recent = ErrorManager.get_recent_errors(limit=500)
        assert len(recent) == error_manager.MAX_ENTRIES
        assert {entry["message"] for entry in recent} >= {"failure 104"}
        assert "failure 0" not in {entry["message"] for entry in recent}

    def test_errors_for_row(self):
        ErrorManager.log_error("ImageAgent", "first", row_id=3)
        ErrorManager.log_error("ImageAgent", "other", row_id=4)
        ErrorManager.log_error("VideoPromptAgent", "second", details="RuntimeError", row_id=3)
        entries = ErrorManager.errors_for_row(3)
        assert [e["message"] for e in entries] == ["first", "second"]
        assert entries[1]["details"] == "RuntimeError"

    def test_corrupted_log_starts_over(self, error_log):
        error_log.write_text("{not json", encoding="utf-8")
        ErrorManager.log_error("ImageAgent", "fresh")
        assert [e["message"] for e in ErrorManager.get_recent_errors()] == ["fresh"]

    def test_clear(self, error_log):
        ErrorManager.log_error("ImageAgent", "x")
        ErrorManager.clear_logs()
        assert not error_log.exists()
        assert ErrorManager.get_recent_errors() == []
