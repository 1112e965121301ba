"""
Video Prompt Agent: streams an 8-second video prompt for a row's main image.
"""

from typing import AsyncIterator, Dict, List, Optional
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from config import get_model_config
from utils.errors import GenerationTransportError
from utils.llm_utils import make_client, to_genai_parts
from utils.logger import get_logger

logger = get_logger("video_prompt_agent")


class VideoPromptAgent:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key
        self.model = model or get_model_config()["text"]
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = make_client(self.api_key)
        return self._client

    async def stream(self, parts: List[Dict]) -> AsyncIterator[str]:
        """
        Yield text chunks in arrival order.

        Raises:
            GenerationTransportError: on failure before or during the stream
        """
        logger.info(f"Streaming video prompt with {self.model}")
        try:
            response_stream = await self.client.aio.models.generate_content_stream(
                model=self.model,
                contents=to_genai_parts(parts),
            )
            async for chunk in response_stream:
                if chunk.text:
                    yield chunk.text
        except GenerationTransportError:
            raise
        except Exception as e:
            logger.error(f"Gemini stream error: {e}")
            raise GenerationTransportError(str(e)) from e

    def __call__(self, parts: List[Dict]) -> AsyncIterator[str]:
        return self.stream(parts)
