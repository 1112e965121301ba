"""
Script Extractor: storyboard tables out of free-text chat responses.

Model replies are expected to carry markdown pipe tables with the five
storyboard columns. When none is found the caller falls back to treating
the last reply as a plain line-per-row script.
"""

import re
from typing import List, Optional, Sequence
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from schemas import Character, ChatMessage, StoryboardRow, SOURCE_COLUMNS
from agents.table_builder import rows_from_cells
from utils.logger import get_logger

logger = get_logger("script_extractor")

SEPARATOR_CELL = re.compile(r"^:?-{3,}:?$")


def _split_cells(line: str) -> List[str]:
    inner = line.strip()
    if inner.startswith("|"):
        inner = inner[1:]
    if inner.endswith("|"):
        inner = inner[:-1]
    return [cell.strip() for cell in inner.split("|")]


def _is_table_line(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("|") and stripped.count("|") >= 2


def _is_separator(cells: Sequence[str]) -> bool:
    return all(SEPARATOR_CELL.match(cell.replace(" ", "")) for cell in cells if cell) and any(cells)


def parse_markdown_tables(text: str) -> List[List[str]]:
    """
    Data rows of every markdown table in text, each normalized to 5 cells.

    A table's header is the line right above its separator row and is not
    returned. Blank rows are dropped.
    """
    rows: List[List[str]] = []
    block: List[List[str]] = []

    def flush():
        if not block:
            return
        body = block
        if len(block) >= 2 and _is_separator(block[1]):
            body = block[2:]
        for cells in body:
            if _is_separator(cells) or not any(cells):
                continue
            cells = (cells + [""] * SOURCE_COLUMNS)[:SOURCE_COLUMNS]
            rows.append(cells)

    for line in (text or "").splitlines():
        if _is_table_line(line):
            block.append(_split_cells(line))
        else:
            flush()
            block = []
    flush()
    return rows


def model_text(messages: Sequence[ChatMessage]) -> str:
    return "\n".join(m.content for m in messages if m.role == "model")


def last_model_message(messages: Sequence[ChatMessage]) -> Optional[str]:
    for message in reversed(messages):
        if message.role == "model":
            return message.content
    return None


def rows_from_chat(
    messages: Sequence[ChatMessage],
    roster: Sequence[Character],
    default_index: Optional[int] = None,
) -> Optional[List[StoryboardRow]]:
    """
    Rows from all tables found in the model's replies.

    Returns:
        Rows with position ids, or None when the replies hold no table
    """
    table_rows = parse_markdown_tables(model_text(messages))
    if not table_rows:
        logger.info("No markdown table found in chat replies")
        return None
    logger.info(f"Extracted {len(table_rows)} rows from chat tables")
    return rows_from_cells(table_rows, roster, default_index)
