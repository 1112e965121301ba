"""
Multimodal Prompt Builder for Gemini.

- 이미지 생성: 캐릭터 참조 이미지 + 라벨, 그다음 장면 프롬프트 텍스트
- 비디오 프롬프트 생성: 메인 이미지 + 8초 영상 프롬프트 지시문

Parts are plain dicts ({"text": ...} / {"inline_data": {...}}) so the
builders stay independent of the SDK; the agents convert them.
"""

import base64
from typing import Dict, List, Optional, Sequence, Tuple
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from schemas import AdjustmentOptions, Character, StoryboardRow

DEFAULT_STYLE = "cinematic illustration, consistent character design, 16:9 aspect ratio"

VIDEO_PROMPT_TEMPLATE = (
    "From the script segment [B] and its illustration [A], write a video prompt for an "
    "8-second clip (Google VEO 3.1) that illustrates [B]. Write the prompt 100% in English; "
    "only spoken dialogue may stay in the script's language. Follow this structure: "
    "Opening camera angle: the setting shown in [A]. "
    "If the motion is split into shots, for each shot give its length in seconds, the camera "
    "movement and where it travels from and to, the cut technique between shots (match cut, "
    "match action, ...), what the characters do, their expressions, whether they speak and if "
    "so a detailed description of the voice, language and regional accent, and whether the "
    "background audio is instrumental music, ambient sound or silence. Every shot must stay "
    "consistent with every detail of [A]. "
    "The motion leads into the final shot: where the scene is, where the camera stands, which "
    "way it faces the characters, where each character stands, each character's detailed "
    "appearance (gender, age, top, trousers, hairstyle, face kept identical across shots, head "
    "and body proportions, expression), which part of each character faces the camera, the "
    "distance between people and camera, and any secondary details or extras. The motion must "
    "fit the content of [B]. "
    "Do not name the characters; focus on detailed description. The prompt must illustrate [B] "
    "and be no shorter than 300 words. Output only the prompt: no greeting, no preamble, no "
    "closing remarks. Write it as a single paragraph without line breaks, separating ideas "
    "with periods."
)

IMAGE_PLACEHOLDER = "(analyze from the provided image)"


def split_data_url(data_url: str) -> Tuple[str, str]:
    """
    ``data:image/png;base64,XXXX`` -> (mime_type, base64 data).

    Bare base64 strings are treated as PNG.
    """
    if data_url.startswith("data:") and "," in data_url:
        header, data = data_url.split(",", 1)
        mime_type = header[5:].split(";", 1)[0] or "image/png"
        return mime_type, data
    return "image/png", data_url


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"


def inline_part(data_url: str) -> Dict:
    mime_type, data = split_data_url(data_url)
    return {"inline_data": {"mime_type": mime_type, "data": data}}


class PromptBuilder:
    """
    Gemini parts builder for storyboard rows.

    Character order follows the row's selection; each selected character
    contributes up to ``max_images_per_character`` reference images.
    """

    def __init__(self, max_images_per_character: int = 5):
        self.max_images_per_character = max_images_per_character

    @staticmethod
    def active_characters(row: StoryboardRow, roster: Sequence[Character]) -> List[Tuple[int, Character]]:
        """Selected slots that exist in the roster and are named or have images."""
        active = []
        for index in row.selected_character_indices:
            if 0 <= index < len(roster) and not roster[index].is_empty:
                active.append((index, roster[index]))
        return active

    def build_image_request(
        self,
        row: StoryboardRow,
        row_index: int,
        rows: Sequence[StoryboardRow],
        style_prompt: str,
        roster: Sequence[Character],
        adjustments: Optional[AdjustmentOptions] = None,
    ) -> Tuple[str, List[Dict]]:
        """
        이미지 생성 요청 구성.

        Args:
            row: Target row
            row_index: Position of the row in the table (for continuity)
            rows: Whole table, read only
            style_prompt: Style template; ``{scene}`` and ``{context}`` are substituted
            roster: Roster snapshot taken at launch
            adjustments: Remake options and manual instructions

        Returns:
            (prompt text, Gemini parts). The prompt is what gets recorded
            as the row's last used prompt.
        """
        scene = row.scene_text
        context = row.context_prompt.strip()
        style = (style_prompt or DEFAULT_STYLE).strip()

        if "{scene}" in style or "{context}" in style:
            lines = [style.replace("{scene}", scene).replace("{context}", context)]
        else:
            lines = [f"Style: {style}", f"Scene: {scene}"]
            if context:
                lines.append(f"Setting: {context}")

        parts: List[Dict] = []
        image_no = 0
        for slot, character in self.active_characters(row, roster):
            images = character.images[:self.max_images_per_character]
            refs = []
            for image in images:
                image_no += 1
                parts.append(inline_part(image))
                refs.append(str(image_no))
            label = character.name or f"Character {slot + 1}"
            desc = f"Character '{label}'"
            if refs:
                desc += f" (reference image {', '.join(refs)})"
            if character.style_prompt:
                desc += f": {character.style_prompt}"
            lines.append(desc + ". Keep face, hair and clothing identical to the reference.")

        if row_index > 0 and row_index - 1 < len(rows):
            previous = rows[row_index - 1].scene_text
            if previous:
                lines.append(f"Previous scene (for continuity only): {previous}")

        if adjustments:
            if adjustments.options:
                lines.append("Adjustments: " + "; ".join(adjustments.options))
            if adjustments.manual_prompt.strip():
                lines.append(f"Additional instructions: {adjustments.manual_prompt.strip()}")

        prompt = "\n".join(lines)
        parts.append({"text": prompt})
        return prompt, parts

    @staticmethod
    def build_video_prompt_request(main_asset: str, scene_text: str, note: str = "") -> List[Dict]:
        """메인 이미지 + 비디오 프롬프트 지시문. 전역 노트는 끝에 붙습니다."""
        text = VIDEO_PROMPT_TEMPLATE.replace("[A]", IMAGE_PLACEHOLDER).replace("[B]", scene_text)
        if note.strip():
            text += f"\n\n{note}"
        return [inline_part(main_asset), {"text": text}]
