"""CSV export of projection schedules.

Rows are written to a temporary file beside the destination and moved into
place with ``os.replace`` once complete, so the destination either keeps its
previous content or holds the whole export. Background exports run on a
``concurrent.futures`` executor with a ``threading.Event`` as cancellation
token and a last-write-wins progress value.
"""

import csv
import logging
import os
import tempfile
import threading
import uuid
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from decimal import Decimal
from itertools import chain
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, TextIO, Union

from investcalc.domain.accumulation import as_decimal, round_to_cents
from investcalc.models import Granularity
from investcalc.schemas.accumulation import InvestmentResult
from investcalc.schemas.export import ExportJobStatus

logger = logging.getLogger(__name__)

AMOUNT_FIELDS = ("start_balance", "contributions", "interest", "end_balance")
HEADERS = {
    Granularity.YEARLY: ["Year", "Start Balance", "Contributions", "Interest", "End Balance"],
    Granularity.MONTHLY: ["Month", "Start Balance", "Contributions", "Interest", "End Balance"],
}

ProgressCallback = Callable[[int], None]
PathLike = Union[str, "os.PathLike[str]"]


class ExportError(Exception):
    """Base class for export outcomes other than success."""


class ExportFailedError(ExportError):
    """The export could not be written or moved into place."""


class ExportCancelledError(ExportError):
    """The export was cancelled before it completed."""


def format_amount(value: Optional[Union[Decimal, int, float]]) -> str:
    """Two fixed fractional digits, ``0.00`` for a missing amount."""
    if value is None:
        return "0.00"
    return str(round_to_cents(as_decimal(value)))


def schedule_rows(result: InvestmentResult, granularity: Granularity) -> Sequence[object]:
    if granularity is Granularity.MONTHLY:
        return result.monthly_rows or []
    return result.yearly_rows or []


def _row_cells(row: object, granularity: Granularity) -> List[str]:
    key = getattr(row, "label" if granularity is Granularity.MONTHLY else "year", None)
    return ["" if key is None else str(key)] + [
        format_amount(getattr(row, name, None)) for name in AMOUNT_FIELDS
    ]


def write_schedule_csv(
    result: InvestmentResult,
    granularity: Union[Granularity, str],
    stream: TextIO,
    cancel_event: Optional[threading.Event] = None,
    on_line: Optional[Callable[[int], None]] = None,
) -> int:
    """Write the header and one line per row to ``stream``; return the line count.

    The cancellation flag is checked before every line.
    """
    granularity = Granularity(granularity)
    writer = csv.writer(stream, lineterminator="\n")
    lines = (_row_cells(row, granularity) for row in schedule_rows(result, granularity))

    written = 0
    for cells in chain([HEADERS[granularity]], lines):
        if cancel_event is not None and cancel_event.is_set():
            raise ExportCancelledError("export cancelled")
        writer.writerow(cells)
        written += 1
        if on_line is not None:
            on_line(written)
    return written


class _ProgressReporter:
    def __init__(self, total_lines: int, callback: Optional[ProgressCallback]):
        self._total = max(1, total_lines)
        self._callback = callback
        self.progress = 0

    def line_written(self, lines: int) -> None:
        self._publish(min(100, lines * 100 // self._total))

    def finish(self) -> None:
        self._publish(100)

    def _publish(self, progress: int) -> None:
        if progress <= self.progress:
            return
        self.progress = progress
        if self._callback is not None:
            self._callback(progress)


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError:
        logger.warning("could not remove temporary export file %s", path, exc_info=True)


def export_csv_to_file(
    result: InvestmentResult,
    granularity: Union[Granularity, str],
    destination: PathLike,
    cancel_event: Optional[threading.Event] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> Path:
    """Write a schedule CSV to ``destination`` atomically.

    Raises ExportCancelledError or ExportFailedError; in both cases the
    temporary file is removed and the destination is left untouched.
    """
    granularity = Granularity(granularity)
    target = Path(destination)
    reporter = _ProgressReporter(len(schedule_rows(result, granularity)) + 1, on_progress)

    try:
        handle, temp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
    except OSError as exc:
        raise ExportFailedError(f"cannot create temporary file beside {target}: {exc}") from exc
    temp_path = Path(temp_name)

    try:
        with open(handle, "w", encoding="utf-8", newline="") as stream:
            write_schedule_csv(result, granularity, stream, cancel_event, reporter.line_written)
        if cancel_event is not None and cancel_event.is_set():
            raise ExportCancelledError("export cancelled")
        os.replace(temp_path, target)
    except ExportCancelledError:
        _discard(temp_path)
        logger.info("export to %s cancelled", target)
        raise
    except Exception as exc:
        _discard(temp_path)
        logger.error("export to %s failed: %s", target, exc)
        raise ExportFailedError(f"export to {target} failed: {exc}") from exc
    except BaseException:
        _discard(temp_path)
        raise

    reporter.finish()
    logger.info("exported %s schedule to %s", granularity.value, target)
    return target


class ExportTask:
    """A CSV export running in the background.

    ``progress`` may be read from any thread. ``cancel()`` only requests
    cancellation; call ``wait()`` before assuming the temporary file is gone.
    """

    def __init__(
        self,
        result: InvestmentResult,
        granularity: Union[Granularity, str],
        destination: PathLike,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.granularity = Granularity(granularity)
        self.destination = Path(destination)
        self._result: Optional[InvestmentResult] = result
        self._on_progress = on_progress
        self._cancel_event = threading.Event()
        self._progress = 0
        self._future: Optional[Future] = None

    @property
    def progress(self) -> int:
        return self._progress

    def start(self, executor: Executor) -> "ExportTask":
        if self._future is not None:
            raise RuntimeError("export task already started")
        self._future = executor.submit(self._run)
        return self

    def _run(self) -> Path:
        try:
            return export_csv_to_file(
                self._result,
                self.granularity,
                self.destination,
                cancel_event=self._cancel_event,
                on_progress=self._report,
            )
        finally:
            self._result = None

    def _report(self, progress: int) -> None:
        self._progress = progress
        if self._on_progress is not None:
            self._on_progress(progress)

    def _started_future(self) -> Future:
        if self._future is None:
            raise RuntimeError("export task not started")
        return self._future

    def cancel(self) -> None:
        self._cancel_event.set()
        if self._future is not None and self._future.cancel():
            self._result = None

    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the task ends or ``timeout`` elapses; return ``done()``."""
        wait_futures([self._started_future()], timeout=timeout)
        return self.done()

    def result(self, timeout: Optional[float] = None) -> Path:
        """Return the destination path, or raise the export's error.

        Raises concurrent.futures.TimeoutError if the task is still running
        after ``timeout`` seconds.
        """
        try:
            return self._started_future().result(timeout)
        except CancelledError as exc:
            raise ExportCancelledError("export cancelled before it started") from exc

    @property
    def state(self) -> str:
        if not self.done():
            return "running"
        future = self._started_future()
        if future.cancelled():
            return "cancelled"
        error = future.exception()
        if error is None:
            return "completed"
        if isinstance(error, ExportCancelledError):
            return "cancelled"
        return "failed"

    @property
    def error(self) -> Optional[str]:
        if not self.done() or self._started_future().cancelled():
            return None
        error = self._started_future().exception()
        return str(error) if error is not None else None


_shared_executor: Optional[ThreadPoolExecutor] = None
_shared_executor_lock = threading.Lock()


def _default_executor() -> ThreadPoolExecutor:
    global _shared_executor
    with _shared_executor_lock:
        if _shared_executor is None:
            _shared_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="csv-export")
        return _shared_executor


def export_csv(
    result: InvestmentResult,
    granularity: Union[Granularity, str],
    destination: PathLike,
    executor: Optional[Executor] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> ExportTask:
    """Start a background export and return its task handle."""
    task = ExportTask(result, granularity, destination, on_progress=on_progress)
    return task.start(executor or _default_executor())


class ExportJobRegistry:
    """Export tasks started through the API, keyed by job id.

    Running jobs are always kept. Only the ``max_finished`` most recently
    submitted finished jobs stay queryable; older ones are forgotten when the
    next job is submitted.
    """

    def __init__(self, max_workers: int = 2, max_finished: int = 100):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="csv-export")
        self._tasks: Dict[str, ExportTask] = {}
        self._lock = threading.Lock()
        self._max_finished = max_finished

    def submit(
        self,
        result: InvestmentResult,
        granularity: Union[Granularity, str],
        destination: PathLike,
    ) -> str:
        job_id = uuid.uuid4().hex
        task = export_csv(result, granularity, destination, executor=self._executor)
        with self._lock:
            self._evict_finished()
            self._tasks[job_id] = task
        logger.info("export job %s started for %s", job_id, destination)
        return job_id

    def _evict_finished(self) -> None:
        finished = [job_id for job_id, task in self._tasks.items() if task.done()]
        for job_id in finished[: max(0, len(finished) - self._max_finished)]:
            del self._tasks[job_id]
            logger.debug("export job %s evicted", job_id)

    def get(self, job_id: str) -> Optional[ExportTask]:
        with self._lock:
            return self._tasks.get(job_id)

    def cancel(self, job_id: str) -> bool:
        task = self.get(job_id)
        if task is None:
            return False
        task.cancel()
        logger.info("export job %s cancellation requested", job_id)
        return True

    def status(self, job_id: str) -> Optional[ExportJobStatus]:
        task = self.get(job_id)
        if task is None:
            return None
        return ExportJobStatus(
            job_id=job_id,
            state=task.state,
            progress=task.progress,
            filename=task.destination.name,
            error=task.error,
        )

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            tasks = list(self._tasks.values())
        for task in tasks:
            if not task.done():
                task.cancel()
        self._executor.shutdown(wait=wait)
