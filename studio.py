"""
SCRIPTBOARD Studio

스크립트 → 스토리보드 행 → 이미지/비디오 프롬프트 생성까지 한 곳에서 관리합니다.

- 로스터(캐릭터 슬롯)와 기본 캐릭터가 바뀌면 모든 행의 캐릭터를 재계산
- 엑셀/채팅/텍스트 가져오기
- 행 단위 및 일괄 생성 (BatchOrchestrator)
- 프로젝트 저장/불러오기 (구버전 파일 마이그레이션 포함)
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union
import sys

sys.path.append(str(Path(__file__).parent))

from schemas import (
    AdjustmentOptions,
    Cell,
    Character,
    ChatMessage,
    ColumnMapping,
    ProjectMeta,
    StoryboardRow,
    COL_STT,
)
from agents.row_table import RowTable, RowFailed
from agents.tag_resolver import resolve_tag
from agents.reconciler import reconcile_all
from agents.table_builder import (
    build_rows,
    build_rows_from_lines,
    detect_mapping,
    merge_lines_into_rows,
)
from agents.script_extractor import rows_from_chat, last_model_message
from agents.batch_orchestrator import (
    AssetJob,
    BatchOrchestrator,
    BatchReport,
    StreamJob,
    needs_image,
    needs_video_prompt,
)
from agents.project_migration import migrate_project, serialize_project
from agents.image_agent import ImageAgent
from agents.video_prompt_agent import VideoPromptAgent
from config import get_batch_config, get_max_character_images, get_roster_size
from utils.constants import MAIN_IMAGE_REQUIRED, MAPPING_REQUIRED, NO_CHAT_REPLY
from utils.errors import ReplaceConfirmationRequired, TableImportError
from utils.prompt_builder import PromptBuilder
from utils.storage import ProjectStore
from utils.text_utils import letters_only
from utils.logger import get_logger

logger = get_logger("studio")


class StoryboardStudio:
    """
    Single owner of project state.

    Args:
        image_agent: async ``(prompt, parts) -> asset`` callable (ImageAgent by default)
        video_prompt_agent: ``parts -> async iterator of text`` (VideoPromptAgent by default)
        store: Project file store
        roster_size: Slot count; config ``roster.size`` when omitted
        concurrency: Batch group size; config ``batch.concurrency`` when omitted
    """

    def __init__(
        self,
        image_agent=None,
        video_prompt_agent=None,
        store: Optional[ProjectStore] = None,
        roster_size: Optional[int] = None,
        concurrency: Optional[int] = None,
    ):
        self.roster_size = roster_size or get_roster_size()
        self.max_character_images = get_max_character_images()
        self.meta = ProjectMeta()
        self.roster: List[Character] = [Character() for _ in range(self.roster_size)]
        self.default_character_index: Optional[int] = None
        self.table = RowTable()
        self.orchestrator = BatchOrchestrator(self.table, concurrency)
        self.video_prompt_concurrency = int(get_batch_config().get("video_prompt_concurrency", 1))
        self.prompt_builder = PromptBuilder(self.max_character_images)
        self.image_agent = image_agent or ImageAgent()
        self.video_prompt_agent = video_prompt_agent or VideoPromptAgent()
        self.store = store or ProjectStore()
        self.current_filename: Optional[str] = None
        self._dirty = False

    # ==================================================================
    # State
    # ==================================================================

    @property
    def rows(self) -> List[StoryboardRow]:
        return self.table.rows

    def get_row(self, row_id: int) -> StoryboardRow:
        row = self.table.get(row_id)
        if row is None:
            raise KeyError(f"No row with id {row_id}")
        return row

    @property
    def has_unsaved_changes(self) -> bool:
        return self._dirty or self.table.dirty

    def _mark_clean(self) -> None:
        self._dirty = False
        self.table.dirty = False

    def roster_snapshot(self) -> Tuple[Character, ...]:
        """Immutable view of the roster handed to an operation at launch."""
        return tuple(self.roster)

    def set_project_name(self, name: str) -> None:
        self.meta = self.meta.model_copy(update={"project_name": name})
        self._dirty = True

    def set_style_prompt(self, style_prompt: str) -> None:
        self.meta = self.meta.model_copy(update={"selected_style_prompt": style_prompt})
        self._dirty = True

    def set_video_prompt_note(self, note: str) -> None:
        self.meta = self.meta.model_copy(update={"video_prompt_note": note})
        self._dirty = True

    # ==================================================================
    # Roster
    # ==================================================================

    def _check_slot(self, index: int) -> None:
        if not 0 <= index < self.roster_size:
            raise IndexError(f"Character slot {index} out of range (0..{self.roster_size - 1})")

    def _reconcile(self) -> int:
        """Resync every row with the roster. Returns the number of rows changed."""
        rows = self.table.rows
        updated = reconcile_all(rows, self.roster_snapshot(), self.default_character_index)
        if updated is rows:
            return 0
        changed = 0
        for old, new in zip(rows, updated):
            if old is not new:
                self.table.update(new)
                changed += 1
        return changed

    def set_characters(self, roster: Sequence[Character]) -> None:
        """Replace the whole roster (padded / truncated to the slot count)."""
        roster = list(roster)[:self.roster_size]
        roster += [Character() for _ in range(self.roster_size - len(roster))]
        self.roster = roster
        self._dirty = True
        self._reconcile()

    def _replace_character(self, index: int, character: Character) -> None:
        self._check_slot(index)
        if self.roster[index] == character:
            return
        roster = list(self.roster)
        roster[index] = character
        self.set_characters(roster)

    def set_character_name(self, index: int, name: str) -> None:
        """Names keep letters only, so they stay matchable by the tag parser."""
        self._check_slot(index)
        character = self.roster[index]
        self._replace_character(index, character.model_copy(update={"name": letters_only(name)}))

    def set_character_style(self, index: int, style_prompt: str) -> None:
        self._check_slot(index)
        character = self.roster[index]
        self._replace_character(index, character.model_copy(update={"style_prompt": style_prompt}))

    def add_character_images(self, index: int, images: Sequence[str]) -> int:
        """
        Append reference images up to the per-character limit.

        Returns:
            Number of images actually added (extra ones are dropped)
        """
        self._check_slot(index)
        character = self.roster[index]
        remaining = self.max_character_images - len(character.images)
        if remaining <= 0:
            logger.warning(f"Character slot {index} already has {len(character.images)} images")
            return 0
        added = list(images)[:remaining]
        if added:
            updated = character.model_copy(update={"images": [*character.images, *added]})
            self._replace_character(index, updated)
        return len(added)

    def remove_character_image(self, index: int, image_index: int) -> None:
        self._check_slot(index)
        character = self.roster[index]
        if not 0 <= image_index < len(character.images):
            raise IndexError(f"No image {image_index} for character slot {index}")
        images = [img for i, img in enumerate(character.images) if i != image_index]
        self._replace_character(index, character.model_copy(update={"images": images}))

    def clear_character(self, index: int) -> None:
        self._replace_character(index, Character())

    def set_default_character(self, index: Optional[int]) -> None:
        if index is not None:
            self._check_slot(index)
        if index == self.default_character_index:
            return
        self.default_character_index = index
        self._dirty = True
        self._reconcile()

    # ==================================================================
    # Import
    # ==================================================================

    def _check_replace(self, confirm_replace: bool) -> None:
        if len(self.table) and not confirm_replace:
            raise ReplaceConfirmationRequired(len(self.table))

    def import_table(
        self,
        table: Sequence[Sequence[Cell]],
        mapping: Optional[ColumnMapping] = None,
        confirm_replace: bool = False,
    ) -> List[StoryboardRow]:
        """
        Replace the storyboard with rows built from a parsed spreadsheet.

        Nothing changes unless the whole import succeeds.

        Raises:
            ReplaceConfirmationRequired: the table is not empty and the
                replacement was not confirmed
            TableImportError: empty/malformed table, or unrecognized columns
                without a mapping
        """
        self._check_replace(confirm_replace)
        if not table:
            raise TableImportError("The source table is empty.")
        mapping = mapping or detect_mapping(table)
        if mapping is None:
            raise TableImportError(MAPPING_REQUIRED)
        rows = build_rows(table, self.roster_snapshot(), self.default_character_index, mapping)
        self.table.replace_all(rows)
        return rows

    def import_from_chat(
        self,
        messages: Sequence[ChatMessage],
        confirm_replace: bool = False,
    ) -> Optional[List[StoryboardRow]]:
        """
        Rows from the tables in the chat's model replies.

        Returns:
            The new rows, or None when the replies hold no table; the caller
            then falls back to apply_script_text() with the last reply.
        """
        rows = rows_from_chat(messages, self.roster_snapshot(), self.default_character_index)
        if rows is None:
            return None
        self._check_replace(confirm_replace)
        self.table.replace_all(rows)
        return rows

    def fallback_script(self, messages: Sequence[ChatMessage]) -> str:
        """Text of the last model reply, for the line-per-row fallback."""
        script = last_model_message(messages)
        if script is None:
            raise TableImportError(NO_CHAT_REPLY)
        return script

    def apply_script_text(self, text: str, language: str = "vietnamese") -> List[StoryboardRow]:
        """
        Plain script, one line per row.

        An empty storyboard is populated; otherwise line i is written into
        row i's language column.
        """
        if not len(self.table):
            rows = build_rows_from_lines(text, language, self.roster_snapshot(), self.default_character_index)
            self.table.replace_all(rows)
            return rows
        for row in merge_lines_into_rows(self.table.rows, text, language):
            self.table.update(row)
        return self.table.rows

    # ==================================================================
    # Row editing
    # ==================================================================

    def edit_tag(self, row_id: int, tag: Cell) -> StoryboardRow:
        """
        Change a row's identifier tag and re-resolve its characters.

        The row id is not re-derived.
        """
        row = self.get_row(row_id)
        if str(tag) == str(row.tag):
            return row
        original_row = list(row.original_row)
        original_row[COL_STT] = tag
        updated = row.model_copy(update={
            "original_row": original_row,
            "selected_character_indices": resolve_tag(tag, self.roster_snapshot(), self.default_character_index),
        })
        self.table.update(updated)
        return updated

    def set_context_prompt(self, row_id: int, text: str) -> None:
        self.table.update(self.get_row(row_id).model_copy(update={"context_prompt": text}))

    def set_video_prompt(self, row_id: int, text: str) -> None:
        self.table.update(self.get_row(row_id).model_copy(update={"video_prompt": text}))

    def set_selected_characters(self, row_id: int, indices: Sequence[int]) -> None:
        """
        Manual character selection.

        Not sticky: the next roster or default change recomputes it from the tag.
        """
        for index in indices:
            self._check_slot(index)
        selection = list(dict.fromkeys(indices))
        self.table.update(self.get_row(row_id).model_copy(update={"selected_character_indices": selection}))

    def set_main_asset(self, row_id: int, index: int) -> None:
        self.table.update(self.get_row(row_id).with_main(index))

    def add_uploaded_asset(self, row_id: int, asset: str) -> None:
        """A user-supplied image/video becomes the newest, main asset."""
        self.table.update(self.get_row(row_id).with_new_asset(asset))

    # ==================================================================
    # Generation
    # ==================================================================

    def _image_job(self, adjustments: Optional[AdjustmentOptions] = None) -> AssetJob:
        roster = self.roster_snapshot()
        style = self.meta.selected_style_prompt

        async def job(row: StoryboardRow) -> Tuple[str, str]:
            rows = self.table.rows
            prompt, parts = self.prompt_builder.build_image_request(
                row, self.table.index_of(row.id), rows, style, roster, adjustments
            )
            asset = await self.image_agent(prompt, parts)
            return asset, prompt

        return job

    def _video_prompt_job(self) -> StreamJob:
        note = self.meta.video_prompt_note

        def job(row: StoryboardRow):
            parts = self.prompt_builder.build_video_prompt_request(row.main_asset(), row.scene_text, note)
            return self.video_prompt_agent(parts)

        return job

    async def generate_image(self, row_id: int, adjustments: Optional[AdjustmentOptions] = None) -> bool:
        """Generate (or remake, with adjustments) one row's image."""
        async with self.table.consuming():
            return await self.orchestrator.run_asset_job(row_id, self._image_job(adjustments))

    async def generate_all_images(self, concurrency: Optional[int] = None) -> BatchReport:
        """
        Every row with no asset and no error, in groups.

        The roster and style are captured once, when the batch starts.
        """
        job = self._image_job()
        return await self.orchestrator.run_batch(
            needs_image,
            lambda row_id: self.orchestrator.run_asset_job(row_id, job),
            concurrency,
        )

    async def _video_prompt_for(self, row_id: int) -> bool:
        row = self.table.get(row_id)
        if row is None:
            return False
        if row.main_asset() is None:
            self.table.emit(RowFailed(row_id, MAIN_IMAGE_REQUIRED))
            return False
        return await self.orchestrator.run_stream_job(row_id, self._video_prompt_job())

    async def generate_video_prompt(self, row_id: int) -> bool:
        """Stream a video prompt for the row's main asset."""
        async with self.table.consuming():
            return await self._video_prompt_for(row_id)

    async def generate_all_video_prompts(self, concurrency: Optional[int] = None) -> BatchReport:
        """Every row with an asset, no video prompt and no error."""
        return await self.orchestrator.run_batch(
            needs_video_prompt,
            self._video_prompt_for,
            self.video_prompt_concurrency if concurrency is None else concurrency,
        )

    # ==================================================================
    # Persistence
    # ==================================================================

    def to_payload(self) -> Dict:
        return serialize_project(self.meta, self.roster, self.table.rows)

    def save(self, filename: Optional[Union[str, Path]] = None, save_as: bool = False) -> Path:
        """
        Save to ``filename``, the current file, or ``<project name>.json``.

        Raises:
            ValueError: no project name
        """
        if not self.meta.project_name.strip():
            raise ValueError("A project name is required to save")
        if filename is None:
            if save_as or not self.current_filename:
                filename = self.store.filename_for(self.meta.project_name)
            else:
                filename = self.current_filename
        path = self.store.save(self.to_payload(), filename)
        self.current_filename = str(filename)
        self._mark_clean()
        return path

    def load_payload(self, payload) -> None:
        """
        Replace the project with a persisted payload of any known shape.

        The payload is fully migrated before anything is replaced.
        """
        meta, roster, rows = migrate_project(payload, self.roster_size)
        self.meta = meta
        self.roster = roster
        self.table.replace_all(rows)
        self._reconcile()
        self._mark_clean()

    def load(self, filename: Union[str, Path]) -> None:
        payload = self.store.load(filename)
        self.load_payload(payload)
        self.current_filename = str(filename)
