"""
Reconciliation Engine: keep every row's character selection in sync with
the roster and the default character.

Manual selections are not sticky: a roster change recomputes every row from
its tag and replaces any selection that differs.
"""

from typing import List, Optional, Sequence
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from schemas import Character, StoryboardRow
from agents.tag_resolver import resolve_tag
from utils.logger import get_logger

logger = get_logger("reconciler")


def reconcile_row(
    row: StoryboardRow,
    roster: Sequence[Character],
    default_index: Optional[int],
) -> StoryboardRow:
    """Same object back when the resolved set is unchanged."""
    resolved = resolve_tag(row.tag, roster, default_index)
    if set(resolved) == set(row.selected_character_indices):
        return row
    return row.model_copy(update={"selected_character_indices": resolved})


def reconcile_all(
    rows: List[StoryboardRow],
    roster: Sequence[Character],
    default_index: Optional[int],
) -> List[StoryboardRow]:
    """
    Recompute the character selection of every row.

    Pure and idempotent. Unchanged rows keep their identity, and when no row
    changed the input list itself is returned so callers can skip change
    notification with an ``is`` check.
    """
    updated = [reconcile_row(row, roster, default_index) for row in rows]
    changed = sum(1 for old, new in zip(rows, updated) if old is not new)
    if not changed:
        return rows
    logger.debug(f"Reconciled {changed}/{len(rows)} rows")
    return updated
