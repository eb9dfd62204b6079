from enum import Enum
from typing import Callable, List, Optional, Sequence, Union
import asyncio
import logging

from cloudbox.errors import ValidationError
from cloudbox.models import (
    BatchResult,
    Folder,
    ProgressSnapshot,
    SourceFile,
    TransferState,
    TransferUnit,
    UnitOutcome,
)
from cloudbox.protocols import IStorageBackend
from cloudbox.utils.events import CancelToken, EventEmitter
from cloudbox.utils.formatting import round_half_up
logger = logging.getLogger(__name__)


class BatchState(Enum):
    """State of an upload batch."""
    PENDING = "pending"
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


def partition_waves(units: Sequence[TransferUnit], width: int) -> List[List[TransferUnit]]:
    """Split units into consecutive waves of at most `width`, keeping order."""
    if width < 1:
        raise ValueError("width must be >= 1")
    return [list(units[i:i + width]) for i in range(0, len(units), width)]


class UploadBatch:
    """
    Upload batch with event-based progress tracking.

    Units run in barrier-synchronized waves: wave k+1 starts only once every
    unit of wave k is terminal. A failed unit never blocks its siblings.

    Usage:
        batch = scheduler.submit(files, folder)
        batch.on_progress(lambda snap: print(f"{snap.current_file_name}: {snap.percent_for_current_file}%"))
        batch.on_unit_fail(lambda outcome: print(f"Failed: {outcome.name}"))
        batch.on_finish(lambda result: print(f"{result.uploaded_files}/{result.total_files}"))

        result = await batch.wait()  # wait() starts automatically if needed
    """
    def __init__(
        self,
        backend: IStorageBackend,
        units: List[TransferUnit],
        target_folder_id: Optional[str] = None,
        max_parallel: int = 3,
    ):
        self._backend = backend
        self._units = units
        self._target_folder_id = target_folder_id
        self._max_parallel = max_parallel
        self._events = EventEmitter()
        self._token = CancelToken()
        self._state = BatchState.PENDING
        self._task: Optional[asyncio.Task] = None
        self._result: Optional[BatchResult] = None
        self._current: Optional[TransferUnit] = None
        self._wave_index = 0

    # Event subscription methods
    def on_start(self, callback: Callable[[], None]):
        """Called when the batch starts."""
        self._events.on("start", callback)

    def on_wave_start(self, callback: Callable[[int, List[str]], None]):
        """Called when a wave starts. Receives (wave_index, file names)."""
        self._events.on("wave_start", callback)

    def on_unit_start(self, callback: Callable[[TransferUnit], None]):
        """Called when a unit goes in flight."""
        self._events.on("unit_start", callback)

    def on_progress(self, callback: Callable[[ProgressSnapshot], None]):
        """Called with an immutable ProgressSnapshot on every change."""
        self._events.on("progress", callback)

    def on_unit_complete(self, callback: Callable[[UnitOutcome], None]):
        self._events.on("unit_complete", callback)

    def on_unit_fail(self, callback: Callable[[UnitOutcome], None]):
        self._events.on("unit_fail", callback)

    def on_finish(self, callback: Callable[[BatchResult], None]):
        """Called exactly once when every unit is terminal (or skipped on cancel)."""
        self._events.on("finish", callback)

    # Control methods
    async def start(self):
        """Start the batch (non-blocking)."""
        if self._state != BatchState.PENDING:
            raise RuntimeError(f"Cannot start batch in state: {self._state}")

        self._state = BatchState.RUNNING
        self._task = asyncio.create_task(self._run())
        await self._events.emit("start")

    def cancel(self):
        """
        Stop after the wave in flight.

        Transfers already running are left to finish; later waves never start.
        """
        if self._state in (BatchState.COMPLETED, BatchState.CANCELLED):
            return
        logger.info(f"Cancelling upload batch ({self.units_remaining} units not terminal)")
        self._token.cancel()

    async def wait(self) -> BatchResult:
        """Wait for the batch to settle and return its result."""
        if self._state == BatchState.PENDING:
            await self.start()

        if self._task:
            await self._task

        if self._result is None:
            raise RuntimeError(f"Batch settled without a result in state: {self._state}")
        return self._result

    # State properties
    @property
    def state(self) -> BatchState:
        return self._state

    @property
    def units(self) -> List[TransferUnit]:
        return list(self._units)

    @property
    def target_folder_id(self) -> Optional[str]:
        return self._target_folder_id

    @property
    def result(self) -> Optional[BatchResult]:
        return self._result

    @property
    def is_cancelled(self) -> bool:
        return self._token.is_cancelled

    @property
    def in_flight(self) -> int:
        return sum(1 for u in self._units if u.state is TransferState.IN_FLIGHT)

    @property
    def units_remaining(self) -> int:
        return sum(1 for u in self._units if not u.state.is_terminal)

    @property
    def units_completed(self) -> int:
        return sum(1 for u in self._units if u.state is TransferState.SUCCEEDED)

    @property
    def units_failed(self) -> int:
        return sum(1 for u in self._units if u.state is TransferState.FAILED)

    @property
    def aggregate_progress(self) -> float:
        """Mean unit fraction in [0, 1]."""
        if not self._units:
            return 1.0
        return sum(u.fraction for u in self._units) / len(self._units)

    def snapshot(self) -> ProgressSnapshot:
        current = self._current
        return ProgressSnapshot(
            current_file_name=current.name if current else None,
            percent_for_current_file=current.percent if current else 0,
            units_remaining=self.units_remaining,
            units_completed=self.units_completed,
            units_failed=self.units_failed,
            units_total=len(self._units),
            aggregate_percent=round_half_up(self.aggregate_progress * 100),
        )

    # Internal methods
    async def _run(self):
        waves = partition_waves(self._units, self._max_parallel)
        logger.info(
            f"Starting upload: {len(self._units)} files in {len(waves)} wave(s) "
            f"(max {self._max_parallel} parallel)"
        )
        try:
            for index, wave in enumerate(waves, 1):
                if self._token.is_cancelled:
                    logger.info(f"Upload cancelled before wave {index}/{len(waves)}")
                    break
                self._wave_index = index
                await self._events.emit("wave_start", index, [u.name for u in wave])
                await asyncio.gather(*(self._transfer(unit) for unit in wave))
        finally:
            await self._events.drain()
            self._result = BatchResult(
                target_folder_id=self._target_folder_id,
                outcomes=[UnitOutcome.of(u) for u in self._units],
                cancelled=self._token.is_cancelled,
            )
            self._state = BatchState.CANCELLED if self._token.is_cancelled else BatchState.COMPLETED

        logger.info(
            f"Upload batch settled: {self._result.uploaded_files} uploaded, "
            f"{self._result.failed_files} failed, {self._result.skipped_files} skipped"
        )
        await self._events.emit("finish", self._result)

    async def _transfer(self, unit: TransferUnit) -> None:
        unit.start()
        self._current = unit
        await self._events.emit("unit_start", unit)
        await self._events.emit("progress", self.snapshot())

        try:
            entry = await self._backend.upload_file(
                unit.source,
                self._target_folder_id,
                progress_callback=lambda sent, total: self._on_bytes(unit, sent, total),
            )
        except Exception as e:
            error_msg = str(e) or type(e).__name__
            logger.error(f"[wave {self._wave_index}] Error uploading {unit.name}: {error_msg}")
            unit.fail(error_msg)
            await self._events.emit("unit_fail", UnitOutcome.of(unit))
        else:
            unit.succeed(entry)
            logger.info(f"[wave {self._wave_index}] Uploaded {unit.name}")
            await self._events.emit("unit_complete", UnitOutcome.of(unit))

        await self._events.emit("progress", self.snapshot())

    def _on_bytes(self, unit: TransferUnit, sent: int, total: int) -> None:
        unit.report(sent, total)
        self._current = unit
        self._events.emit_nowait("progress", self.snapshot())


class UploadScheduler:
    """
    Turns a batch of source files into bounded concurrent transfers.

    max_parallel=1 runs strictly sequentially; larger values run
    fixed-width waves.
    """

    def __init__(self, backend: IStorageBackend, max_parallel: int = 3):
        if max_parallel < 1:
            raise ValueError("max_parallel must be >= 1")
        self._backend = backend
        self._max_parallel = max_parallel

    @property
    def max_parallel(self) -> int:
        return self._max_parallel

    def submit(
        self,
        files: Sequence[SourceFile],
        target_folder: Union[Folder, str, None] = None,
    ) -> UploadBatch:
        """Create a batch for the files; nothing runs until start() or wait()."""
        if not files:
            raise ValidationError("Select a file")
        folder_id = target_folder.id if isinstance(target_folder, Folder) else target_folder
        units = [TransferUnit(source=f, target_folder_id=folder_id, bytes_total=f.size) for f in files]
        return UploadBatch(self._backend, units, folder_id, self._max_parallel)
