"""
Named, retryable, checkpointed workflow steps.

Each step of a run executes at least once. Its return value is checkpointed
under (run_id, step name); re-running the same run id replays completed steps
from their checkpoints instead of executing them again. Step results must
therefore be JSON-serializable.

Retries use tenacity with exponential backoff.
"""

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple

from tenacity import Retrying, stop_after_attempt, wait_exponential

from ideagen.config import STEP_MAX_ATTEMPTS, STEP_RETRY_WAIT_SECONDS
from ideagen.errors import StepFailed


# =============================================================================
# Checkpoint Stores
# =============================================================================

class CheckpointStore(ABC):
    """Persists completed step results per run."""

    @abstractmethod
    def load(self, run_id: str, step: str) -> Tuple[bool, Any]:
        """Return (found, value) for a step of a run."""
        pass

    @abstractmethod
    def save(self, run_id: str, step: str, value: Any) -> None:
        pass

    @abstractmethod
    def completed_steps(self, run_id: str) -> List[str]:
        pass


class MemoryCheckpointStore(CheckpointStore):
    """
    Process-local checkpoints.

    Values are stored as JSON text so a replay sees exactly what a file-backed
    store would return.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._runs: Dict[str, Dict[str, str]] = {}

    def load(self, run_id: str, step: str) -> Tuple[bool, Any]:
        with self._lock:
            steps = self._runs.get(run_id, {})
            if step not in steps:
                return False, None
            return True, json.loads(steps[step])

    def save(self, run_id: str, step: str, value: Any) -> None:
        encoded = json.dumps(value)
        with self._lock:
            self._runs.setdefault(run_id, {})[step] = encoded

    def completed_steps(self, run_id: str) -> List[str]:
        with self._lock:
            return list(self._runs.get(run_id, {}))


class FileCheckpointStore(CheckpointStore):
    """One JSON file per run under `directory`, rewritten after every step."""

    def __init__(self, directory):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, run_id: str) -> Path:
        return self.directory / f"{run_id}.json"

    def _read(self, run_id: str) -> Dict[str, Any]:
        path = self._path(run_id)
        if not path.exists():
            return {}
        return json.loads(path.read_text(encoding="utf-8"))

    def load(self, run_id: str, step: str) -> Tuple[bool, Any]:
        with self._lock:
            steps = self._read(run_id)
        if step not in steps:
            return False, None
        return True, steps[step]

    def save(self, run_id: str, step: str, value: Any) -> None:
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            steps = self._read(run_id)
            steps[step] = value
            tmp = self._path(run_id).with_suffix(".tmp")
            tmp.write_text(json.dumps(steps, indent=2), encoding="utf-8")
            tmp.replace(self._path(run_id))

    def completed_steps(self, run_id: str) -> List[str]:
        with self._lock:
            return list(self._read(run_id))


# =============================================================================
# Step Runner
# =============================================================================

class StepRunner:
    """
    Executes the named steps of one run.

    Usage:
        runner = StepRunner(run_id, MemoryCheckpointStore())
        items = runner.run("fetch-posts", gateway_fetch, "startups")
    """

    def __init__(
        self,
        run_id: str,
        checkpoints: CheckpointStore = None,
        max_attempts: int = None,
        retry_wait: float = None,
        log: Callable[[str], None] = None,
    ):
        self.run_id = run_id
        self.checkpoints = checkpoints or MemoryCheckpointStore()
        self.max_attempts = max_attempts or STEP_MAX_ATTEMPTS
        self.retry_wait = STEP_RETRY_WAIT_SECONDS if retry_wait is None else retry_wait
        self.log = log or (lambda message: None)
        self.executed: List[str] = []
        self.replayed: List[str] = []

    def _retrying(self, name: str) -> Retrying:
        def before_sleep(retry_state):
            error = retry_state.outcome.exception()
            self.log(f"Step '{name}' attempt {retry_state.attempt_number} failed: "
                     f"{type(error).__name__}: {error}; retrying")

        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_wait, max=self.retry_wait * 10),
            before_sleep=before_sleep,
            reraise=True,
        )

    def run(self, name: str, fn: Callable, *args, **kwargs) -> Any:
        """
        Run a step, or replay it from its checkpoint.

        Raises:
            StepFailed: When every attempt raised.
        """
        found, value = self.checkpoints.load(self.run_id, name)
        if found:
            self.replayed.append(name)
            self.log(f"Step '{name}' replayed from checkpoint")
            return value

        retrying = self._retrying(name)
        try:
            value = retrying(fn, *args, **kwargs)
        except Exception as e:
            attempts = retrying.statistics.get("attempt_number", self.max_attempts)
            raise StepFailed(name, attempts, e) from e

        self.checkpoints.save(self.run_id, name, value)
        self.executed.append(name)
        return value
