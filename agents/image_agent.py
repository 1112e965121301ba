"""
Image Agent: generates storyboard images with Gemini 2.5 Flash Image.

- 캐릭터 참조 이미지 + 장면 프롬프트를 한 번에 전송
- 이미지 대신 텍스트/차단 응답이 오면 사람이 읽을 수 있는 메시지로 변환
- 네트워크/API 오류는 GenerationTransportError로 래핑
"""

from typing import Dict, List, Optional
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from schemas import GenerationOutcome, SafetyRating
from config import get_model_config
from utils.errors import GenerationBlocked, GenerationTransportError
from utils.llm_utils import make_client, to_genai_parts, enum_name
from utils.prompt_builder import to_data_url
from utils.logger import get_logger

logger = get_logger("image_agent")


def describe_failure(outcome: GenerationOutcome) -> str:
    """
    Readable reason for an outcome that carries no image.

    Text instead of an image wins over the finish reason; a non-STOP reason
    is a block and lists the safety annotations.
    """
    reason = outcome.finish_reason
    if outcome.text:
        return f"Model responded with text instead of an image: {outcome.text}"
    if reason and reason != "STOP":
        details = f"Reason: {reason}"
        if outcome.safety_ratings:
            issues = ", ".join(f"{r.category} was {r.probability}" for r in outcome.safety_ratings)
            details += f". Safety issues: {issues}"
        return f"Image generation blocked. {details}"
    if reason:
        return f"Image generation stopped. Reason: {reason}. No image was produced."
    return "Image generation failed for an unknown reason."


def outcome_to_asset(outcome: GenerationOutcome) -> str:
    """Asset payload of a successful outcome, otherwise GenerationBlocked."""
    if outcome.asset:
        return outcome.asset
    raise GenerationBlocked(describe_failure(outcome), reason=outcome.finish_reason, detail=outcome.text)


def parse_response(response) -> GenerationOutcome:
    """google.genai GenerateContentResponse -> GenerationOutcome."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = enum_name(getattr(feedback, "block_reason", None)) if feedback else None
        return GenerationOutcome(finish_reason=block_reason)

    candidate = candidates[0]
    parts = candidate.content.parts if candidate.content and candidate.content.parts else []
    texts = []
    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline and inline.data:
            return GenerationOutcome(
                asset=to_data_url(inline.data, inline.mime_type or "image/png"),
                finish_reason=enum_name(candidate.finish_reason),
            )
        if getattr(part, "text", None):
            texts.append(part.text)

    ratings = [
        SafetyRating(category=enum_name(r.category) or "", probability=enum_name(r.probability) or "")
        for r in (candidate.safety_ratings or [])
    ]
    return GenerationOutcome(
        finish_reason=enum_name(candidate.finish_reason),
        text="".join(texts) or None,
        safety_ratings=ratings,
    )


class ImageAgent:
    """
    이미지 생성 에이전트

    generate() is the opaque async operation the batch orchestrator drives:
    parts in, GenerationOutcome out.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key
        self.model = model or get_model_config()["image"]
        self._client = None

    @property
    def client(self):
        """Lazy initialization of the Gemini client."""
        if self._client is None:
            self._client = make_client(self.api_key)
        return self._client

    async def generate(self, prompt: str, parts: List[Dict]) -> GenerationOutcome:
        """
        Call the image model once.

        Args:
            prompt: Prompt text (for logging; it is already the last part)
            parts: PromptBuilder parts

        Returns:
            GenerationOutcome

        Raises:
            GenerationTransportError: network or API failure
        """
        logger.info(f"Generating image with {self.model} | Prompt: {prompt[:60]}...")
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=to_genai_parts(parts),
            )
        except GenerationTransportError:
            raise
        except Exception as e:
            logger.error(f"Gemini image API error: {e}")
            raise GenerationTransportError(str(e)) from e

        outcome = parse_response(response)
        if not outcome.asset:
            logger.warning(describe_failure(outcome))
        return outcome

    async def __call__(self, prompt: str, parts: List[Dict]) -> str:
        """Asset payload or GenerationError."""
        return outcome_to_asset(await self.generate(prompt, parts))
