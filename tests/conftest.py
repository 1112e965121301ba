import sys
import os
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from schemas import Character
from utils.error_manager import ErrorManager


@pytest.fixture(autouse=True)
def error_log(tmp_path, monkeypatch):
    """Keep the JSON error log out of the working tree."""
    path = tmp_path / "api_errors.log"
    monkeypatch.setattr(ErrorManager, "LOG_FILE", str(path))
    return path


@pytest.fixture
def roster():
    """Slot 0 empty, slot 1 Lan, slot 2 Nguyễn Minh."""
    return [
        Character(),
        Character(name="Lan", images=["data:image/png;base64,TEFO"], style_prompt="red ao dai"),
        Character(name="Nguyễn Minh", style_prompt="young farmer"),
    ]
