"""
Batch Orchestrator: runs a generation operation over many rows.

- Rows matching a predicate are taken in table order and split into groups
  of ``concurrency`` rows.
- Groups run one after another; the members of a group run concurrently and
  the whole group settles (success or failure) before the next starts.
- A row's failure is captured into that row only. Siblings and later groups
  keep going.
- Results reach the RowTable as events, never as direct mutation.
"""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Tuple
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from schemas import RowStatus, StoryboardRow
from agents.row_table import (
    RowTable,
    RowStarted,
    ChunkReceived,
    AssetProduced,
    RowFailed,
    RowFinished,
)
from config import get_batch_config
from utils.error_manager import ErrorManager
from utils.logger import get_logger

logger = get_logger("batch_orchestrator")

# (asset payload, exact prompt used)
AssetJob = Callable[[StoryboardRow], Awaitable[Tuple[str, str]]]
StreamJob = Callable[[StoryboardRow], AsyncIterator[str]]
RowOperation = Callable[[int], Awaitable[bool]]
RowPredicate = Callable[[StoryboardRow], bool]

IMAGE_FAILURE = "Image generation failed: {error}"
VIDEO_PROMPT_FAILURE = "Video prompt generation failed: {error}"
GENERATION_FAILURE = "Generation failed: {error}"


def needs_image(row: StoryboardRow) -> bool:
    """No asset yet and no recorded error."""
    return not row.generated_images and not row.error


def needs_video_prompt(row: StoryboardRow) -> bool:
    """Has an asset, no video prompt yet, no recorded error."""
    return bool(row.generated_images) and not row.video_prompt and not row.error


def chunked(items: List[int], size: int) -> List[List[int]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


@dataclass
class BatchReport:
    selected: List[int] = field(default_factory=list)
    groups: int = 0
    succeeded: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)


class BatchOrchestrator:
    """
    배치 생성 오케스트레이터

    Args:
        table: The single owner of row state
        concurrency: Group size; config ``batch.concurrency`` when omitted
    """

    def __init__(self, table: RowTable, concurrency: Optional[int] = None):
        self.table = table
        if concurrency is None:
            concurrency = int(get_batch_config()["concurrency"])
        self.concurrency = concurrency

    # ─── Batch ────────────────────────────────────────────

    async def run_batch(
        self,
        predicate: RowPredicate,
        operation: RowOperation,
        concurrency: Optional[int] = None,
    ) -> BatchReport:
        """
        Run ``operation(row_id)`` for every row matching ``predicate``.

        The selection is fixed when the batch starts. ``operation`` returns
        True on success; an exception escaping it (even one raised before
        the awaitable exists) becomes that row's error and the batch goes on.
        """
        size = self.concurrency if concurrency is None else concurrency
        if size < 1:
            raise ValueError(f"concurrency must be >= 1, got {size}")

        selected = [row.id for row in self.table if predicate(row)]
        groups = chunked(selected, size)
        report = BatchReport(selected=selected, groups=len(groups))
        logger.info(f"Batch: {len(selected)} rows in {len(groups)} groups of <= {size}")

        async with self.table.consuming():
            for number, group in enumerate(groups, start=1):
                results = await asyncio.gather(
                    *(self._isolated(operation, row_id) for row_id in group),
                    return_exceptions=True,
                )
                for row_id, result in zip(group, results):
                    if isinstance(result, Exception):
                        self._fail(row_id, GENERATION_FAILURE.format(error=result), "BatchOrchestrator", result)
                        report.failed.append(row_id)
                    elif isinstance(result, BaseException):
                        raise result
                    elif result:
                        report.succeeded.append(row_id)
                    else:
                        report.failed.append(row_id)
                await self.table.drain()
                logger.debug(f"Group {number}/{len(groups)} settled: {group}")

        logger.info(f"Batch done: {len(report.succeeded)} ok, {len(report.failed)} failed")
        return report

    # ─── Single row ───────────────────────────────────────

    @staticmethod
    async def _isolated(operation: RowOperation, row_id: int) -> bool:
        """Call ``operation`` inside the task so a synchronous raise stays with its row."""
        return await operation(row_id)

    async def run_asset_job(self, row_id: int, job: AssetJob) -> bool:
        """
        One asset-producing attempt for one row.

        Success appends the asset, makes it main, clears the error and
        records the prompt. Failure leaves the asset history untouched.
        """
        row = self.table.get(row_id)
        if row is None:
            logger.warning(f"Row {row_id} not found")
            return False

        self.table.emit(RowStarted(row_id, RowStatus.GENERATING_ASSET))
        try:
            asset, used_prompt = await job(row)
        except Exception as e:
            self._fail(row_id, IMAGE_FAILURE.format(error=e), "ImageAgent", e)
            return False

        self.table.emit(AssetProduced(row_id, asset, used_prompt))
        logger.info(f"Row {row_id}: asset generated")
        return True

    async def run_stream_job(self, row_id: int, job: StreamJob) -> bool:
        """
        One streaming attempt for one row.

        The video prompt is cleared at start and grows one chunk at a time;
        the row stays in generating_prompt until the stream ends or fails.
        """
        row = self.table.get(row_id)
        if row is None:
            logger.warning(f"Row {row_id} not found")
            return False

        self.table.emit(RowStarted(row_id, RowStatus.GENERATING_PROMPT, reset_video_prompt=True))
        try:
            async for chunk in job(row):
                self.table.emit(ChunkReceived(row_id, chunk))
        except Exception as e:
            self._fail(row_id, VIDEO_PROMPT_FAILURE.format(error=e), "VideoPromptAgent", e)
            return False

        self.table.emit(RowFinished(row_id))
        return True

    def _fail(self, row_id: int, message: str, service: str, error: Exception) -> None:
        logger.error(f"Row {row_id}: {message}")
        self.table.emit(RowFailed(row_id, message))
        ErrorManager.log_error(service, message, details=type(error).__name__, row_id=row_id)
