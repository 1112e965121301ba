"""
SCRIPTBOARD Configuration Loader
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

# 기본 설정 디렉토리
CONFIG_DIR = Path(__file__).parent


def load_settings(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Studio 설정 로드

    Args:
        config_path: 설정 파일 경로 (기본: config/studio.yaml)

    Returns:
        설정 딕셔너리. 파일에 없는 키는 기본값으로 채워집니다.
    """
    if config_path is None:
        config_path = CONFIG_DIR / "studio.yaml"

    settings = get_default_settings()
    if not os.path.exists(config_path):
        return settings

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    for key, value in config.items():
        if isinstance(value, dict) and isinstance(settings.get(key), dict):
            settings[key] = {**settings[key], **value}
        else:
            settings[key] = value
    return settings


def get_default_settings() -> Dict[str, Any]:
    """기본 설정 반환"""
    return {
        "roster": {"size": 3, "max_character_images": 5},
        "batch": {"concurrency": 3, "video_prompt_concurrency": 1},
        "models": {
            "image": "gemini-2.5-flash-image",
            "text": "gemini-3-pro-preview",
            "chat": "gemini-3-pro-preview",
        },
        "error_log_file": "outputs/api_errors.log",
        "log_level": "INFO",
    }


def get_roster_size() -> int:
    return int(load_settings()["roster"]["size"])


def get_max_character_images() -> int:
    return int(load_settings()["roster"]["max_character_images"])


def get_batch_config() -> Dict[str, Any]:
    """배치 실행 설정 반환"""
    return load_settings()["batch"]


def get_model_config() -> Dict[str, str]:
    """모델명 설정 반환"""
    return load_settings()["models"]


def get_api_key() -> Optional[str]:
    """
    Google API key from the environment (.env is loaded if present).
    """
    from dotenv import load_dotenv
    load_dotenv()
    return os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY")
