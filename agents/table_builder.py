"""
Table Builder: imported tabular data -> storyboard rows.

Sources:
- spreadsheet rows (header first), with an optional column mapping
- plain script text, one row per non-blank line (chat "present script" path)

The tag resolver runs once per row at construction; afterwards the
reconciler keeps the selection in sync.
"""

from typing import Any, List, Optional, Sequence
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from schemas import (
    Cell,
    Character,
    ColumnMapping,
    StoryboardRow,
    COL_STT,
    COL_OTHER_LANG,
    COL_VIETNAMESE,
    SOURCE_COLUMNS,
)
from agents.tag_resolver import resolve_tag
from utils.errors import TableImportError
from utils.text_utils import digits_only
from utils.logger import get_logger

logger = get_logger("table_builder")

LANGUAGE_COLUMNS = {
    "vietnamese": COL_VIETNAMESE,
    "other_lang": COL_OTHER_LANG,
}


def is_blank(cell: Any) -> bool:
    return cell is None or str(cell).strip() == ""


def detect_mapping(table: Sequence[Sequence[Cell]]) -> Optional[ColumnMapping]:
    """
    Identity mapping for the standard 5-column layout, otherwise None.

    The standard layout is recognized from its header: five columns with
    "stt" in the first or "việt" in the third.
    """
    if not table:
        return None
    header = list(table[0])
    if len(header) != SOURCE_COLUMNS:
        return None
    first = str(header[0] if header[0] is not None else "").lower()
    third = str(header[2] if header[2] is not None else "").lower()
    if "stt" in first or "việt" in third:
        return ColumnMapping.identity()
    return None


def parse_row_id(tag: Any) -> Optional[int]:
    """
    Row id from the identifier cell.

    Strings keep only their digits ("lan3" -> 3), integral numbers are used
    as-is. Zero, blanks and anything unparsable give None.
    """
    if isinstance(tag, bool) or tag is None:
        return None
    if isinstance(tag, int):
        return tag or None
    if isinstance(tag, float):
        return int(tag) if tag.is_integer() and tag else None
    digits = digits_only(str(tag))
    if not digits:
        return None
    return int(digits) or None


def _cell(row: Sequence[Cell], column: Optional[int], missing: Cell = "") -> Cell:
    """Cell value, or ``missing`` for an unmapped, absent or None cell."""
    if column is None or column < 0 or column >= len(row):
        return missing
    value = row[column]
    return missing if value is None else value


def _unique_id(candidate: int, used: set) -> int:
    if candidate in used:
        candidate = max(used) + 1
    used.add(candidate)
    return candidate


def new_row(row_id: int, original_row: List[Cell], roster: Sequence[Character],
            default_index: Optional[int], context_prompt: str = "") -> StoryboardRow:
    return StoryboardRow(
        id=row_id,
        original_row=original_row,
        context_prompt=context_prompt,
        selected_character_indices=resolve_tag(original_row[COL_STT], roster, default_index),
    )


def build_rows(
    table: Sequence[Sequence[Cell]],
    roster: Sequence[Character],
    default_index: Optional[int] = None,
    mapping: Optional[ColumnMapping] = None,
) -> List[StoryboardRow]:
    """
    Build rows from a parsed spreadsheet.

    Args:
        table: Rows of cells, header first
        roster: Roster snapshot for the initial character resolution
        default_index: Default character slot
        mapping: Column mapping; identity 5-column layout when omitted

    Returns:
        Fresh rows (no assets, main index -1, idle, no error)

    Raises:
        TableImportError: empty table, malformed rows, or no data rows
    """
    if not table:
        raise TableImportError("The source table is empty.")
    if mapping is None:
        mapping = ColumnMapping.identity()

    data_rows = []
    for line_no, row in enumerate(table[1:], start=2):
        if not isinstance(row, (list, tuple)):
            raise TableImportError(f"Row {line_no} is not a sequence of cells.")
        if row and not all(is_blank(cell) for cell in row):
            data_rows.append(row)
    if not data_rows:
        raise TableImportError("The source table has no data rows.")

    rows = []
    used_ids = set()
    for position, source in enumerate(data_rows, start=1):
        stt = _cell(source, mapping.stt, missing=position)
        context_prompt = str(_cell(source, mapping.context_prompt))
        original_row = [
            stt,
            _cell(source, mapping.other_lang),
            _cell(source, mapping.vietnamese),
            _cell(source, mapping.prompt_name),
            context_prompt,
        ]
        row_id = _unique_id(parse_row_id(stt) or position, used_ids)
        rows.append(new_row(row_id, original_row, roster, default_index, context_prompt))

    logger.info(f"Built {len(rows)} rows from {len(table) - 1} source rows")
    return rows


def script_lines(text: str) -> List[str]:
    return [line.strip() for line in (text or "").split("\n") if line.strip()]


def build_rows_from_lines(
    text: str,
    language: str = "vietnamese",
    roster: Sequence[Character] = (),
    default_index: Optional[int] = None,
) -> List[StoryboardRow]:
    """
    One row per non-blank line of a plain script.

    The line goes to the primary-language column ("vietnamese") or the
    secondary one ("other_lang"); the tag is the line position.
    """
    column = LANGUAGE_COLUMNS[language]
    lines = script_lines(text)
    if not lines:
        raise TableImportError("The script has no lines.")

    rows = []
    for position, line in enumerate(lines, start=1):
        original_row: List[Cell] = [position, "", "", "", ""]
        original_row[column] = line
        rows.append(new_row(position, original_row, roster, default_index))
    return rows


def merge_lines_into_rows(
    rows: List[StoryboardRow],
    text: str,
    language: str = "vietnamese",
) -> List[StoryboardRow]:
    """
    Write line i of the script into row i's language column.

    Extra lines are ignored; rows past the end of the script are untouched.
    """
    column = LANGUAGE_COLUMNS[language]
    lines = script_lines(text)
    merged = []
    for index, row in enumerate(rows):
        if index < len(lines):
            original_row = list(row.original_row)
            original_row[column] = lines[index]
            row = row.model_copy(update={"original_row": original_row})
        merged.append(row)
    return merged


def rows_from_cells(
    table_rows: Sequence[Sequence[str]],
    roster: Sequence[Character],
    default_index: Optional[int] = None,
) -> List[StoryboardRow]:
    """
    Rows from headerless 5-cell rows (chat-extracted tables).

    Ids are positions; a blank tag becomes the position too.
    """
    rows = []
    for position, cells in enumerate(table_rows, start=1):
        cells = list(cells) + [""] * (SOURCE_COLUMNS - len(cells))
        original_row: List[Cell] = [cells[0] or position, *cells[1:SOURCE_COLUMNS]]
        rows.append(new_row(position, original_row, roster, default_index, str(cells[4] or "")))
    return rows

