"""
Project Migration Loader: persisted project payload -> current model.

Historical shapes upgraded on load:
- ``generatedImage`` (single asset)        -> ``generatedImages = [value]``
- missing ``mainImageIndex``               -> last asset (or -1)
- ``selectedCharacterIndex`` (single slot) -> ``selectedCharacterIndices``
- roster shorter/longer than the slot count -> padded / truncated

Unparsable legacy values fall back to "no assets" / "no characters" and are
logged; only a payload that is not a JSON object at all is rejected.
"""

from typing import Any, Dict, List, Optional, Tuple
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from schemas import Character, ProjectData, ProjectMeta, StoryboardRow, COL_CONTEXT_PROMPT
from config import get_roster_size
from utils.constants import NO_CHARACTER, RANDOM_CHARACTER
from utils.errors import ProjectLoadError
from utils.logger import get_logger

logger = get_logger("project_migration")


def _as_int(value: Any) -> Optional[int]:
    """Integers and integral floats; everything else (bool included) is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _pick(data: Dict, camel: str, snake: str, default: Any = None) -> Any:
    if camel in data:
        return data[camel]
    return data.get(snake, default)


def migrate_character(raw: Any) -> Character:
    if not isinstance(raw, dict):
        return Character()
    images = _pick(raw, "images", "images", [])
    return Character(
        name=_as_str(raw.get("name")),
        images=[img for img in images if isinstance(img, str)] if isinstance(images, list) else [],
        style_prompt=_as_str(_pick(raw, "stylePrompt", "style_prompt", "")),
    )


def migrate_roster(raw: Any, size: Optional[int] = None) -> List[Character]:
    """Exactly ``size`` slots: missing ones empty, extra ones dropped."""
    size = size or get_roster_size()
    entries = raw if isinstance(raw, list) else []
    return [migrate_character(entries[i]) if i < len(entries) else Character() for i in range(size)]


def migrate_assets(raw: Dict, row_label: str) -> List[str]:
    plural = _pick(raw, "generatedImages", "generated_images")
    if isinstance(plural, list) and plural:
        return [asset for asset in plural if isinstance(asset, str)]
    single = _pick(raw, "generatedImage", "generated_image")
    if isinstance(single, str) and single:
        return [single]
    if single not in (None, "") or plural not in (None, []):
        logger.warning(f"{row_label}: unreadable asset fields, starting with no assets")
    return []


def migrate_main_index(raw: Dict, asset_count: int) -> int:
    index = _as_int(_pick(raw, "mainImageIndex", "main_image_index"))
    if index is None:
        return asset_count - 1
    return max(-1, min(index, asset_count - 1))


def migrate_characters(raw: Dict, row_label: str) -> List[int]:
    plural = _pick(raw, "selectedCharacterIndices", "selected_character_indices")
    if isinstance(plural, list):
        indices = [_as_int(v) for v in plural]
        return list(dict.fromkeys(i for i in indices if i is not None))

    if "selectedCharacterIndex" in raw:
        index = _as_int(raw["selectedCharacterIndex"])
        if index is not None and index >= RANDOM_CHARACTER:
            return [] if index == NO_CHARACTER else [index]
        if raw["selectedCharacterIndex"] is not None:
            logger.warning(f"{row_label}: unreadable selectedCharacterIndex, no characters")
    return []


def migrate_row(raw: Dict, position: int) -> StoryboardRow:
    row_label = f"Row {position}"
    assets = migrate_assets(raw, row_label)
    original_row = _pick(raw, "originalRow", "original_row", [])
    if not isinstance(original_row, list):
        original_row = []
    original_row = [cell if isinstance(cell, (str, int, float)) and not isinstance(cell, bool) else ""
                    for cell in original_row]
    context_prompt = _pick(raw, "contextPrompt", "context_prompt")
    if not isinstance(context_prompt, str):
        context_prompt = str(original_row[COL_CONTEXT_PROMPT]) if len(original_row) > COL_CONTEXT_PROMPT else ""
    error = raw.get("error")
    last_used_prompt = _pick(raw, "lastUsedPrompt", "last_used_prompt")

    return StoryboardRow(
        id=_as_int(raw.get("id")) or position,
        original_row=original_row,
        context_prompt=context_prompt,
        selected_character_indices=migrate_characters(raw, row_label),
        generated_images=assets,
        main_image_index=migrate_main_index(raw, len(assets)),
        error=error if isinstance(error, str) and error else None,
        last_used_prompt=last_used_prompt if isinstance(last_used_prompt, str) else None,
        video_prompt=_as_str(_pick(raw, "videoPrompt", "video_prompt", "")),
    )


def migrate_rows(raw: Any) -> List[StoryboardRow]:
    entries = raw if isinstance(raw, list) else []
    rows: List[StoryboardRow] = []
    used_ids = set()
    for position, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            logger.warning(f"Skipping row {position}: not an object")
            continue
        row = migrate_row(entry, position)
        if row.id in used_ids:
            row = row.model_copy(update={"id": max(used_ids) + 1})
        used_ids.add(row.id)
        rows.append(row)
    return rows


def migrate_project(
    payload: Any,
    roster_size: Optional[int] = None,
) -> Tuple[ProjectMeta, List[Character], List[StoryboardRow]]:
    """
    Map a persisted project of any known shape onto the current model.

    Args:
        payload: Parsed JSON (a ``{"project": {...}}`` wrapper is accepted)
        roster_size: Slot count; config ``roster.size`` when omitted

    Returns:
        (meta, roster, rows)

    Raises:
        ProjectLoadError: payload is not a JSON object
    """
    if isinstance(payload, dict) and isinstance(payload.get("project"), dict) and "tableData" not in payload:
        payload = payload["project"]
    if not isinstance(payload, dict):
        raise ProjectLoadError(f"Project payload must be an object, got {type(payload).__name__}")

    meta = ProjectMeta(
        project_name=_as_str(_pick(payload, "projectName", "project_name", "")),
        selected_style_prompt=_as_str(_pick(payload, "selectedStylePrompt", "selected_style_prompt", "")),
        video_prompt_note=_as_str(_pick(payload, "videoPromptNote", "video_prompt_note", "")),
    )
    roster = migrate_roster(payload.get("characters"), roster_size)
    rows = migrate_rows(_pick(payload, "tableData", "table_data"))
    logger.info(f"Loaded project '{meta.project_name}': {len(rows)} rows")
    return meta, roster, rows


def serialize_project(
    meta: ProjectMeta,
    roster: List[Character],
    rows: List[StoryboardRow],
) -> Dict[str, Any]:
    """Current persisted shape (camelCase). Row status is transient and not saved."""
    project = ProjectData(
        project_name=meta.project_name,
        selected_style_prompt=meta.selected_style_prompt,
        video_prompt_note=meta.video_prompt_note,
        table_data=rows,
        characters=roster,
    )
    return project.model_dump(
        by_alias=True,
        mode="json",
        exclude={"table_data": {"__all__": {"status"}}},
    )
