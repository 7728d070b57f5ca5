"""
Superseding parse requests for one dataset slot.

A DatasetSlot holds the dataset currently shown for one file kind (markers or
forces). Every parse request takes the next generation number; when a parse
finishes, its result is published only if no newer request has been made
since (last-requested-wins). A failed parse records its error for display and
leaves the previously published dataset in place.

Parses can run synchronously (``load``) or on a worker thread (``submit``).
The slot's published state is read through ``state``, which returns a
consistent snapshot and is safe to call from any thread.
"""

import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Generic, Optional, TypeVar, Union

from ..config import LOGGER_NAME
from ..utils.errors import ParseError


logger = logging.getLogger(f"{LOGGER_NAME}.loader")

T = TypeVar("T")

# Orders outcomes across all slots so a session can tell which came last
_event_ids = itertools.count(1)
_event_lock = threading.Lock()


def _next_event_id() -> int:
    with _event_lock:
        return next(_event_ids)


@dataclass(frozen=True)
class SlotState(Generic[T]):
    """
    Published state of a DatasetSlot.

    Attributes:
        dataset: Last successfully parsed dataset (None before the first)
        filename: File name of the latest published outcome
        error: Error of the latest outcome, None if it succeeded
        revision: Increments each time a new dataset is published
        event_id: Global order of the latest outcome (0 if none yet)
    """
    dataset: Optional[T] = None
    filename: Optional[str] = None
    error: Optional[Exception] = None
    revision: int = 0
    event_id: int = 0


class DatasetSlot(Generic[T]):
    """
    One dataset slot fed by superseding parse requests.

    Args:
        parse: Pure parse function ``(data, filename) -> dataset``
        executor: Executor for ``submit``; a private single-worker pool is
            created on first use if none is given
        name: Slot name for log messages
    """

    def __init__(self, parse: Callable[[Union[bytes, str], Optional[str]], T],
                 executor: Optional[ThreadPoolExecutor] = None, name: str = "dataset"):
        self.parse = parse
        self.name = name
        self._executor = executor
        self._owns_executor = executor is None
        self._lock = threading.Lock()
        self._generation = 0
        self._pending: Optional[Future] = None
        self._state: SlotState = SlotState()

    @property
    def state(self) -> SlotState:
        with self._lock:
            return self._state

    @property
    def dataset(self) -> Optional[T]:
        return self.state.dataset

    @property
    def error(self) -> Optional[Exception]:
        return self.state.error

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def load(self, data: Union[bytes, str], filename: Optional[str] = None) -> T:
        """
        Parse on the calling thread and publish the result.

        Raises:
            ParseError: After recording it as the slot's error
        """
        token = self._begin()
        return self._run(token, data, filename)

    def load_path(self, path: Union[str, Path]) -> T:
        token = self._begin()
        return self._run_path(token, Path(path))

    def submit(self, data: Union[bytes, str], filename: Optional[str] = None) -> Future:
        """
        Parse on a worker thread; supersedes any request still in flight.

        Returns:
            Future: Resolves to the parsed dataset (even if it was superseded
            and therefore not published) or raises the parse error
        """
        return self._schedule(self._run, data, filename)

    def submit_path(self, path: Union[str, Path]) -> Future:
        return self._schedule(self._run_path, Path(path))

    def _schedule(self, run: Callable, *args) -> Future:
        token = self._begin()
        future = self._get_executor().submit(run, token, *args)
        with self._lock:
            if token == self._generation:
                self._pending = future
        return future

    def close(self) -> None:
        """Shut down the private worker pool, if this slot created one."""
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"movilo-{self.name}-parse"
            )
        return self._executor

    def _begin(self) -> int:
        with self._lock:
            self._generation += 1
            token = self._generation
            pending, self._pending = self._pending, None
        if pending is not None and pending.cancel():
            logger.debug(f"Cancelled queued {self.name} parse")
        return token

    def _run(self, token: int, data: Union[bytes, str], filename: Optional[str]) -> T:
        try:
            dataset = self.parse(data, filename)
        except ParseError as error:
            self._publish_error(token, filename, error)
            raise
        self._publish(token, filename, dataset)
        return dataset

    def _run_path(self, token: int, path: Path) -> T:
        try:
            data = path.read_bytes()
        except OSError as error:
            self._publish_error(token, path.name, error)
            raise
        return self._run(token, data, path.name)

    def _publish(self, token: int, filename: Optional[str], dataset: T) -> bool:
        with self._lock:
            if token != self._generation:
                logger.debug(f"Discarding superseded {self.name} parse of {filename}")
                return False
            self._state = SlotState(
                dataset=dataset,
                filename=filename,
                error=None,
                revision=self._state.revision + 1,
                event_id=_next_event_id(),
            )
            self._pending = None
        logger.info(f"Loaded {self.name} file {filename}")
        return True

    def _publish_error(self, token: int, filename: Optional[str], error: Exception) -> bool:
        with self._lock:
            if token != self._generation:
                logger.debug(f"Discarding error from superseded {self.name} parse of {filename}")
                return False
            # The dataset from the last successful parse stays published
            self._state = SlotState(
                dataset=self._state.dataset,
                filename=filename,
                error=error,
                revision=self._state.revision,
                event_id=_next_event_id(),
            )
            self._pending = None
        logger.warning(f"Failed to load {self.name} file {filename}: {error}")
        return True
