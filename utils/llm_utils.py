"""
Gemini 호출 공통 유틸리티

- 클라이언트 생성 (GOOGLE_API_KEY / API_KEY)
- dict parts -> google.genai types.Part 변환
- 응답 후보에서 finish reason / safety rating 추출
"""
import base64
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from config import get_api_key
from utils.errors import GenerationTransportError


def make_client(api_key: Optional[str] = None) -> "genai.Client":
    api_key = api_key or get_api_key()
    if not api_key:
        raise GenerationTransportError("API key is missing. Set GOOGLE_API_KEY or API_KEY.")
    return genai.Client(api_key=api_key)


def to_genai_parts(parts: List[Dict]) -> List[types.Part]:
    """PromptBuilder dict parts -> SDK parts, order preserved."""
    converted = []
    for part in parts:
        if "inline_data" in part:
            inline = part["inline_data"]
            converted.append(types.Part.from_bytes(
                data=base64.b64decode(inline["data"]),
                mime_type=inline.get("mime_type", "image/png"),
            ))
        elif "text" in part:
            converted.append(types.Part.from_text(text=part["text"]))
    return converted


def enum_name(value: Any) -> Optional[str]:
    """SDK enums -> their name ("STOP", "SAFETY", ...); strings pass through."""
    if value is None:
        return None
    return getattr(value, "name", None) or str(value)
