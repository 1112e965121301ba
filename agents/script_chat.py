"""
Script Chat: a streaming conversation about an uploaded script.

The accumulated model replies feed the script extractor, which turns any
markdown tables into storyboard rows.
"""

from typing import AsyncIterator, List, Optional
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from google.genai import types

from schemas import ChatMessage
from config import get_model_config
from utils.llm_utils import make_client
from utils.logger import get_logger

logger = get_logger("script_chat")

OPENING_REPLY = "How can I help with this script?"


class ScriptChat:
    """
    Chat history plus a streaming send.

    The last model message grows chunk by chunk while a reply streams in.
    A failed reply is recorded as a model message starting with "Error:".
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client=None):
        self.api_key = api_key
        self.model = model or get_model_config()["chat"]
        self._client = client
        self.messages: List[ChatMessage] = []
        self.is_replying = False

    @property
    def client(self):
        if self._client is None:
            self._client = make_client(self.api_key)
        return self._client

    def start_with_script(self, script: str) -> None:
        self.messages = [
            ChatMessage(role="user", content=script),
            ChatMessage(role="model", content=OPENING_REPLY),
        ]

    def reset(self) -> None:
        self.messages = []
        self.is_replying = False

    def _history(self) -> List[types.Content]:
        return [
            types.Content(role=m.role, parts=[types.Part.from_text(text=m.content)])
            for m in self.messages
        ]

    async def send(self, prompt: str) -> AsyncIterator[str]:
        """
        Send a user message and yield the reply's chunks.
        """
        history = self._history()
        self.messages.append(ChatMessage(role="user", content=prompt))
        self.is_replying = True
        reply = ChatMessage(role="model", content="")
        try:
            chat = self.client.aio.chats.create(model=self.model, history=history)
            stream = await chat.send_message_stream(prompt)
            self.messages.append(reply)
            async for chunk in stream:
                if chunk.text:
                    reply.content += chunk.text
                    yield chunk.text
        except Exception as e:
            logger.error(f"AI chat failed: {e}")
            self.messages.append(ChatMessage(role="model", content=f"Error: {e}"))
        finally:
            self.is_replying = False
