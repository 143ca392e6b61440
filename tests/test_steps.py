"""
Step Runner Tests

Verifies retries, checkpoint replay and checkpoint persistence.
"""

import json
import pytest

from ideagen.errors import PersistenceFailure, StepFailed
from ideagen.workflow import FileCheckpointStore, MemoryCheckpointStore, StepRunner


class Flaky:
    """Callable failing `failures` times before returning `value`."""

    def __init__(self, failures: int, value=None, error: Exception = None):
        self.failures = failures
        self.value = value
        self.error = error or PersistenceFailure("transient")
        self.calls = 0

    def __call__(self, *args, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.value


def _runner(checkpoints=None, run_id="run-1", max_attempts=3):
    return StepRunner(run_id, checkpoints or MemoryCheckpointStore(), max_attempts=max_attempts, retry_wait=0)


class TestRetries:

    def test_success_first_try(self):
        fn = Flaky(0, value={"n": 1})
        assert _runner().run("step", fn) == {"n": 1}
        assert fn.calls == 1

    def test_transient_failure_is_retried(self):
        fn = Flaky(2, value=5)
        runner = _runner()

        assert runner.run("step", fn) == 5
        assert fn.calls == 3
        assert runner.executed == ["step"]

    def test_exhausted_attempts_raise_step_failed(self):
        """
        GIVEN: A step that always fails
        WHEN: It runs with 3 attempts
        THEN: StepFailed names the step, the attempts and the cause
        """
        fn = Flaky(10)
        with pytest.raises(StepFailed) as exc:
            _runner().run("persist-ideas", fn)

        assert fn.calls == 3
        assert exc.value.step == "persist-ideas"
        assert exc.value.attempts == 3
        assert isinstance(exc.value.cause, PersistenceFailure)

    def test_failed_step_is_not_checkpointed(self):
        checkpoints = MemoryCheckpointStore()
        with pytest.raises(StepFailed):
            _runner(checkpoints).run("step", Flaky(10))
        assert checkpoints.completed_steps("run-1") == []

    def test_arguments_are_passed_through(self):
        seen = []
        _runner().run("step", lambda a, b=None: seen.append((a, b)) or "ok", 1, b=2)
        assert seen == [(1, 2)]


class TestCheckpointReplay:

    def test_completed_step_is_replayed(self):
        checkpoints = MemoryCheckpointStore()
        first = Flaky(0, value=["a", "b"])
        _runner(checkpoints).run("fetch", first)

        second = Flaky(0, value=["other"])
        runner = _runner(checkpoints)

        assert runner.run("fetch", second) == ["a", "b"]
        assert second.calls == 0
        assert runner.replayed == ["fetch"]

    def test_checkpoints_are_per_run(self):
        checkpoints = MemoryCheckpointStore()
        _runner(checkpoints, run_id="run-1").run("fetch", Flaky(0, value=1))

        fn = Flaky(0, value=2)
        assert _runner(checkpoints, run_id="run-2").run("fetch", fn) == 2
        assert fn.calls == 1

    def test_memory_store_returns_json_copies(self):
        checkpoints = MemoryCheckpointStore()
        value = {"items": [1, 2]}
        checkpoints.save("run-1", "step", value)
        value["items"].append(3)

        assert checkpoints.load("run-1", "step") == (True, {"items": [1, 2]})
        assert checkpoints.load("run-1", "missing") == (False, None)

    def test_unserializable_result_is_rejected(self):
        with pytest.raises(TypeError):
            MemoryCheckpointStore().save("run-1", "step", object())


class TestFileCheckpointStore:

    def test_survives_a_new_store_instance(self, tmp_path):
        FileCheckpointStore(tmp_path).save("run-1", "fetch", {"items": []})
        FileCheckpointStore(tmp_path).save("run-1", "analyze", [1])

        store = FileCheckpointStore(tmp_path)
        assert store.load("run-1", "fetch") == (True, {"items": []})
        assert store.completed_steps("run-1") == ["fetch", "analyze"]

        on_disk = json.loads((tmp_path / "run-1.json").read_text(encoding="utf-8"))
        assert on_disk["analyze"] == [1]

    def test_missing_run_has_no_steps(self, tmp_path):
        store = FileCheckpointStore(tmp_path / "nested")
        assert store.completed_steps("run-x") == []
        assert store.load("run-x", "fetch") == (False, None)
