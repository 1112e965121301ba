"""
Tag Resolver: row identifier tag -> roster indices.

The identifier tag (source column 0) is a tiny two-branch mini-language:

- ``[Lan + Minh] 12``  bracket group, names split on ``+`` (multi-character scene)
- ``lan3``             leading run of letters, a single name
- ``42``               no letters, no character implied

A tag with letters that match nobody falls back to the default character.
"""

import re
import unicodedata
from typing import Dict, List, Optional, Sequence
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from schemas import Cell, Character
from utils.text_utils import normalize_name, has_letter, leading_letters

BRACKET_GROUP = re.compile(r"\[(.*?)\]")


def build_name_index(roster: Sequence[Character]) -> Dict[str, int]:
    """Normalized roster name -> slot index. Empty names are skipped."""
    lookup = {}
    for index, character in enumerate(roster):
        if character.name:
            lookup[normalize_name(character.name)] = index
    return lookup


def extract_candidate_names(tag: str) -> List[str]:
    group = BRACKET_GROUP.search(tag)
    if group and group.group(1):
        return [name.strip() for name in group.group(1).split("+")]
    single = leading_letters(tag)
    return [single] if single else []


def resolve_tag(
    tag: Optional[Cell],
    roster: Sequence[Character],
    default_index: Optional[int] = None,
) -> List[int]:
    """
    Resolve a tag into roster indices.

    Args:
        tag: Identifier cell (str, number or None)
        roster: Current roster snapshot
        default_index: Slot used when the tag names someone not in the roster

    Returns:
        Matched slot indices in the order they were named, without duplicates.
        An empty list is a valid outcome, not an error.
    """
    text = unicodedata.normalize("NFC", "" if tag is None else str(tag))
    lookup = build_name_index(roster)

    indices: List[int] = []
    for name in extract_candidate_names(text):
        index = lookup.get(normalize_name(name))
        if index is not None and index not in indices:
            indices.append(index)

    if not indices and default_index is not None and has_letter(text):
        indices.append(default_index)
    return indices
