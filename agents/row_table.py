"""
Row Table: the single owner of storyboard row state.

All row mutation goes through here. Concurrent generation tasks never touch
rows directly; they emit events (row id + payload) that one consumer task
applies in arrival order, replacing the affected row whole by id. Every
applied change is published to subscribers right away.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from schemas import RowStatus, StoryboardRow
from utils.logger import get_logger

logger = get_logger("row_table")


# ─── Events ───────────────────────────────────────────────

@dataclass(frozen=True)
class RowStarted:
    """Operation launched: status set, previous error cleared."""
    row_id: int
    status: RowStatus
    reset_video_prompt: bool = False


@dataclass(frozen=True)
class ChunkReceived:
    row_id: int
    text: str


@dataclass(frozen=True)
class AssetProduced:
    row_id: int
    asset: str
    used_prompt: Optional[str] = None


@dataclass(frozen=True)
class RowFailed:
    row_id: int
    message: str


@dataclass(frozen=True)
class RowFinished:
    row_id: int


RowEvent = Union[RowStarted, ChunkReceived, AssetProduced, RowFailed, RowFinished]
Subscriber = Callable[[StoryboardRow], None]


def apply_event(row: StoryboardRow, event: RowEvent) -> StoryboardRow:
    """Pure transition of one row under one event."""
    if isinstance(event, RowStarted):
        update = {"status": event.status, "error": None}
        if event.reset_video_prompt:
            update["video_prompt"] = ""
        return row.model_copy(update=update)
    if isinstance(event, ChunkReceived):
        return row.model_copy(update={"video_prompt": row.video_prompt + event.text})
    if isinstance(event, AssetProduced):
        return row.with_new_asset(event.asset, event.used_prompt)
    if isinstance(event, RowFailed):
        return row.model_copy(update={"error": event.message, "status": RowStatus.IDLE})
    if isinstance(event, RowFinished):
        return row.model_copy(update={"status": RowStatus.IDLE})
    raise TypeError(f"Unknown row event: {event!r}")


class RowTable:
    """
    Ordered rows keyed by id.

    Events emitted while a consumer is running are queued; otherwise they
    are applied immediately. Either way a single code path mutates state.
    """

    def __init__(self, rows: Optional[List[StoryboardRow]] = None):
        self._rows: List[StoryboardRow] = []
        self._subscribers: List[Subscriber] = []
        self._queue: Optional[asyncio.Queue] = None
        self._consumers = 0
        self._consumer_task: Optional[asyncio.Task] = None
        self.dirty = False
        if rows:
            self.replace_all(rows)
            self.dirty = False

    # ─── Reads ────────────────────────────────────────────

    @property
    def rows(self) -> List[StoryboardRow]:
        return list(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self):
        return iter(list(self._rows))

    def get(self, row_id: int) -> Optional[StoryboardRow]:
        for row in self._rows:
            if row.id == row_id:
                return row
        return None

    def index_of(self, row_id: int) -> int:
        for index, row in enumerate(self._rows):
            if row.id == row_id:
                return index
        return -1

    # ─── Writes ───────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe function."""
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)

    def replace_all(self, rows: List[StoryboardRow]) -> None:
        ids = [row.id for row in rows]
        if len(ids) != len(set(ids)):
            raise ValueError("Row ids must be unique within a table")
        if rows is self._rows:
            return
        self._rows = list(rows)
        self.dirty = True
        for row in self._rows:
            self._publish(row)

    def update(self, row: StoryboardRow) -> None:
        """Replace the row with the same id."""
        index = self.index_of(row.id)
        if index == -1:
            raise KeyError(f"No row with id {row.id}")
        if self._rows[index] is row:
            return
        self._rows[index] = row
        self.dirty = True
        self._publish(row)

    def emit(self, event: RowEvent) -> None:
        if self._queue is not None:
            self._queue.put_nowait(event)
        else:
            self._apply(event)

    async def drain(self) -> None:
        """Wait until every queued event has been applied."""
        if self._queue is not None:
            await self._queue.join()

    @asynccontextmanager
    async def consuming(self):
        """
        Run the event consumer for the duration of the block.

        Nested blocks share one consumer. Leaving the outermost block drains
        the queue before stopping it.
        """
        if self._consumers == 0:
            self._queue = asyncio.Queue()
            self._consumer_task = asyncio.create_task(self._consume(self._queue))
        self._consumers += 1
        try:
            yield self
        finally:
            self._consumers -= 1
            if self._consumers == 0:
                queue, task = self._queue, self._consumer_task
                await queue.join()
                self._queue = None
                self._consumer_task = None
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    async def _consume(self, queue: asyncio.Queue) -> None:
        while True:
            event = await queue.get()
            try:
                self._apply(event)
            except Exception as e:
                logger.error(f"Failed to apply {type(event).__name__} to row {event.row_id}: {e}")
            finally:
                queue.task_done()

    def _apply(self, event: RowEvent) -> None:
        index = self.index_of(event.row_id)
        if index == -1:
            # The table was replaced while the operation was in flight.
            logger.warning(f"Dropping {type(event).__name__} for missing row {event.row_id}")
            return
        row = apply_event(self._rows[index], event)
        self._rows[index] = row
        self.dirty = True
        self._publish(row)

    def _publish(self, row: StoryboardRow) -> None:
        for callback in list(self._subscribers):
            callback(row)

