"""
SCRIPTBOARD Data Models (Pydantic Schemas)
"""

from .models import (
    Cell,
    COL_STT,
    COL_OTHER_LANG,
    COL_VIETNAMESE,
    COL_PROMPT_NAME,
    COL_CONTEXT_PROMPT,
    SOURCE_COLUMNS,
    RowStatus,
    Character,
    AdjustmentOptions,
    ColumnMapping,
    StoryboardRow,
    ProjectMeta,
    ProjectData,
    ChatMessage,
    SafetyRating,
    GenerationOutcome,
)

__all__ = [
    "Cell",
    "COL_STT",
    "COL_OTHER_LANG",
    "COL_VIETNAMESE",
    "COL_PROMPT_NAME",
    "COL_CONTEXT_PROMPT",
    "SOURCE_COLUMNS",
    "RowStatus",
    "Character",
    "AdjustmentOptions",
    "ColumnMapping",
    "StoryboardRow",
    "ProjectMeta",
    "ProjectData",
    "ChatMessage",
    "SafetyRating",
    "GenerationOutcome",
]
