import threading
from collections import deque
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from docflow.logging.logger import Log

Task = Callable[[], None]


class SerialDispatcher:
    """Runs tasks detached from the caller, one FIFO lane per key.

    Lanes for different keys drain in parallel on a shared thread pool; tasks
    sharing a key never overlap. A task submitted from inside a running task of
    the same lane is queued behind whatever is already waiting there.
    """

    def __init__(self, max_workers: int) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="docflow-lane",
        )
        self._lanes: dict[str, deque[Task]] = {}
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)

    def submit(self, key: str, task: Task) -> None:
        """Queue a task on the key's lane and return immediately."""
        with self._lock:
            lane = self._lanes.get(key)
            if lane is not None:
                lane.append(task)
                return
            self._lanes[key] = deque([task])
        self._executor.submit(self._drain, key)

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every lane is empty. Returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._lanes, timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _drain(self, key: str) -> None:
        while True:
            with self._lock:
                lane = self._lanes[key]
                if not lane:
                    del self._lanes[key]
                    self._idle.notify_all()
                    return
                task = lane.popleft()
            try:
                task()
            except Exception:
                Log.exception(f"Task for {key} raised; lane continues")
