"""
Unit tests for image generation requests and outcomes.

Tests cover:
1. describe_failure: readable messages for outcomes without an image
2. parse_response: SDK response -> GenerationOutcome
3. PromptBuilder: part order, character labels, continuity, adjustments
4. ImageAgent with a fake client
5. VideoPromptAgent streaming with a fake client
"""
import sys
import os
import asyncio
import pytest
from types import SimpleNamespace

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from schemas import AdjustmentOptions, Character, GenerationOutcome, SafetyRating, StoryboardRow
from agents.image_agent import ImageAgent, describe_failure, outcome_to_asset, parse_response
from agents.video_prompt_agent import VideoPromptAgent
from utils.errors import GenerationBlocked, GenerationTransportError
from utils.prompt_builder import PromptBuilder, split_data_url, IMAGE_PLACEHOLDER


# ==========================================================================
# Test 1: describe_failure
# ==========================================================================

class TestDescribeFailure:

    def test_text_instead_of_image(self):
        outcome = GenerationOutcome(finish_reason="STOP", text="I cannot draw that.")
        assert describe_failure(outcome) == "Model responded with text instead of an image: I cannot draw that."

    def test_blocked_with_safety_ratings(self):
        outcome = GenerationOutcome(
            finish_reason="SAFETY",
            safety_ratings=[SafetyRating(category="HARM_CATEGORY_HARASSMENT", probability="HIGH")],
        )
        assert describe_failure(outcome) == (
            "Image generation blocked. Reason: SAFETY. "
            "Safety issues: HARM_CATEGORY_HARASSMENT was HIGH"
        )

    def test_stopped_without_image(self):
        outcome = GenerationOutcome(finish_reason="STOP")
        assert describe_failure(outcome) == "Image generation stopped. Reason: STOP. No image was produced."

    def test_unknown(self):
        assert describe_failure(GenerationOutcome()) == "Image generation failed for an unknown reason."

    def test_outcome_to_asset(self):
        assert outcome_to_asset(GenerationOutcome(asset="data:image/png;base64,AA==")).startswith("data:")
        with pytest.raises(GenerationBlocked) as exc:
            outcome_to_asset(GenerationOutcome(finish_reason="PROHIBITED_CONTENT"))
        assert exc.value.reason == "PROHIBITED_CONTENT"


# ==========================================================================
# Test 2: parse_response
# ==========================================================================

def _response(parts, finish_reason="STOP", ratings=None):
    candidate = SimpleNamespace(
        content=SimpleNamespace(parts=parts),
        finish_reason=finish_reason,
        safety_ratings=ratings,
    )
    return SimpleNamespace(candidates=[candidate], prompt_feedback=None)


class TestParseResponse:

    def test_inline_image(self):
        part = SimpleNamespace(inline_data=SimpleNamespace(data=b"LAN", mime_type="image/jpeg"), text=None)
        outcome = parse_response(_response([part]))
        assert outcome.asset == "data:image/jpeg;base64,TEFO"

    def test_text_only(self):
        part = SimpleNamespace(inline_data=None, text="Here is a description")
        outcome = parse_response(_response([part]))
        assert outcome.asset is None
        assert outcome.text == "Here is a description"

    def test_blocked_prompt(self):
        response = SimpleNamespace(candidates=[], prompt_feedback=SimpleNamespace(block_reason="SAFETY"))
        assert parse_response(response).finish_reason == "SAFETY"

    def test_safety_ratings(self):
        rating = SimpleNamespace(category="HARM_CATEGORY_DANGEROUS_CONTENT", probability="MEDIUM")
        outcome = parse_response(_response([], finish_reason="SAFETY", ratings=[rating]))
        assert outcome.safety_ratings == [
            SafetyRating(category="HARM_CATEGORY_DANGEROUS_CONTENT", probability="MEDIUM")
        ]


# ==========================================================================
# Test 3: PromptBuilder
# ==========================================================================

def _rows():
    return [
        StoryboardRow(id=1, original_row=["1", "", "Sunrise over the village"]),
        StoryboardRow(id=2, original_row=["lan2", "", "Lan walks to the well"],
                      context_prompt="dusty road", selected_character_indices=[1]),
    ]


class TestPromptBuilder:

    def test_split_data_url(self):
        assert split_data_url("data:image/webp;base64,AAAA") == ("image/webp", "AAAA")
        assert split_data_url("AAAA") == ("image/png", "AAAA")

    def test_image_request(self, roster):
        rows = _rows()
        prompt, parts = PromptBuilder().build_image_request(rows[1], 1, rows, "watercolor", roster)

        assert parts[0] == {"inline_data": {"mime_type": "image/png", "data": "TEFO"}}
        assert parts[-1] == {"text": prompt}
        assert "Style: watercolor" in prompt
        assert "Scene: Lan walks to the well" in prompt
        assert "Setting: dusty road" in prompt
        assert "Character 'Lan' (reference image 1): red ao dai" in prompt
        assert "Previous scene (for continuity only): Sunrise over the village" in prompt

    def test_style_template_placeholders(self, roster):
        rows = _rows()
        prompt, _ = PromptBuilder().build_image_request(rows[0], 0, rows, "Ink drawing of {scene}", roster)
        assert prompt.startswith("Ink drawing of Sunrise over the village")
        assert "Previous scene" not in prompt

    def test_image_limit_per_character(self):
        roster = [Character(name="Lan", images=[f"img{i}" for i in range(8)])]
        row = StoryboardRow(id=1, original_row=["lan"], selected_character_indices=[0])
        _, parts = PromptBuilder(max_images_per_character=5).build_image_request(row, 0, [row], "", roster)
        assert len([p for p in parts if "inline_data" in p]) == 5

    def test_adjustments(self, roster):
        rows = _rows()
        adjustments = AdjustmentOptions(options=["wider shot"], manual_prompt=" more rain ")
        prompt, _ = PromptBuilder().build_image_request(rows[0], 0, rows, "", roster, adjustments)
        assert "Adjustments: wider shot" in prompt
        assert "Additional instructions: more rain" in prompt

    def test_video_prompt_request(self):
        parts = PromptBuilder.build_video_prompt_request("data:image/png;base64,AAAA", "Lan smiles", "No music")
        assert parts[0]["inline_data"]["data"] == "AAAA"
        text = parts[1]["text"]
        assert "Lan smiles" in text
        assert IMAGE_PLACEHOLDER in text
        assert text.endswith("No music")


# ==========================================================================
# Test 4: ImageAgent with a fake client
# ==========================================================================

class FakeModels:

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def generate_content(self, model, contents):
        self.calls.append((model, contents))
        if self.error:
            raise self.error
        return self.response


def _agent(models):
    agent = ImageAgent(api_key="test-key", model="image-model")
    agent._client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return agent


class TestImageAgent:

    def test_returns_asset(self):
        part = SimpleNamespace(inline_data=SimpleNamespace(data=b"LAN", mime_type="image/png"), text=None)
        models = FakeModels(response=_response([part]))
        asset = asyncio.run(_agent(models)("a prompt", [{"text": "a prompt"}]))
        assert asset == "data:image/png;base64,TEFO"
        assert models.calls[0][0] == "image-model"

    def test_text_reply_is_blocked(self):
        part = SimpleNamespace(inline_data=None, text="No.")
        models = FakeModels(response=_response([part]))
        with pytest.raises(GenerationBlocked, match="text instead of an image: No."):
            asyncio.run(_agent(models)("a prompt", [{"text": "a prompt"}]))

    def test_transport_error_is_wrapped(self):
        models = FakeModels(error=ConnectionError("network down"))
        with pytest.raises(GenerationTransportError, match="network down"):
            asyncio.run(_agent(models)("a prompt", [{"text": "a prompt"}]))


# ==========================================================================
# Test 5: VideoPromptAgent with a fake client
# ==========================================================================

class FakeStreamModels:

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error

    async def generate_content_stream(self, model, contents):
        async def stream():
            for text in self.chunks:
                yield SimpleNamespace(text=text)
            if self.error:
                raise self.error
        return stream()


async def _collect(agent, parts):
    return [chunk async for chunk in agent(parts)]


class TestVideoPromptAgent:

    def _agent(self, models):
        agent = VideoPromptAgent(api_key="test-key", model="text-model")
        agent._client = SimpleNamespace(aio=SimpleNamespace(models=models))
        return agent

    def test_yields_text_chunks_in_order(self):
        agent = self._agent(FakeStreamModels(["Wide shot. ", None, "Pan left."]))
        assert asyncio.run(_collect(agent, [{"text": "go"}])) == ["Wide shot. ", "Pan left."]

    def test_stream_failure_is_wrapped(self):
        agent = self._agent(FakeStreamModels(["partial"], error=RuntimeError("reset by peer")))
        with pytest.raises(GenerationTransportError, match="reset by peer"):
            asyncio.run(_collect(agent, [{"text": "go"}]))
