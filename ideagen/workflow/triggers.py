"""
Workflow triggers.

Two ways to start a run, both ending in IdeaGenPipeline.run():

- the named event SCRAPE_EVENT ("app/scrape") carrying a topic
- a fixed schedule (every SCHEDULE_INTERVAL_HOURS) for DEFAULT_TOPIC

Triggers return an acknowledgement immediately; the run itself executes on
a background thread. Outcomes are only visible through the run summary or
the topic's last_synced_at.
"""

import threading
import time
from typing import Any, Callable, Dict, Optional

import schedule

from ideagen.config import DEFAULT_TOPIC, SCHEDULE_INTERVAL_HOURS
from ideagen.utils import new_run_id, normalize_topic_name


SCRAPE_EVENT = "app/scrape"

# Summaries kept in memory for GET /api/runs/<run_id>
MAX_TRACKED_RUNS = 100


class WorkflowDispatcher:
    """
    Starts workflow runs on daemon threads and tracks their summaries.

    Runs for different topics may overlap; there is no per-topic lock.

    Args:
        run_workflow: Callable(topic, run_id) -> PipelineResult.
    """

    def __init__(self, run_workflow: Callable[[str, str], Any]):
        self.run_workflow = run_workflow
        self._lock = threading.Lock()
        self._runs: Dict[str, Optional[Dict[str, Any]]] = {}
        self._threads: Dict[str, threading.Thread] = {}

    def trigger(self, topic: Optional[str] = None, run_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Start a run and return at once.

        Returns:
            {"status": "triggered", "run_id": ..., "topic": ...}
        """
        topic = normalize_topic_name(topic, DEFAULT_TOPIC)
        run_id = run_id or new_run_id()

        thread = threading.Thread(
            target=self._execute,
            args=(topic, run_id),
            name=f"workflow-{run_id}",
            daemon=True,
        )
        with self._lock:
            self._runs[run_id] = None
            self._threads[run_id] = thread
            self._forget_old_runs()
        thread.start()

        return {"status": "triggered", "run_id": run_id, "topic": topic}

    def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Accept a named event, e.g. {"name": "app/scrape", "data": {"topic": "startups"}}.

        Raises:
            ValueError: For any event other than SCRAPE_EVENT.
        """
        if event.get("name") != SCRAPE_EVENT:
            raise ValueError(f"Unknown event: {event.get('name')!r}")
        data = event.get("data") or {}
        return self.trigger(data.get("topic"))

    def _execute(self, topic: str, run_id: str) -> None:
        try:
            result = self.run_workflow(topic, run_id)
            summary = result.to_dict()
        except Exception as e:
            print(f"[workflow:{run_id}] Crashed: {type(e).__name__}: {e}")
            summary = {"run_id": run_id, "topic": topic, "state": "failed", "errors": [str(e)]}

        with self._lock:
            self._runs[run_id] = summary
            self._forget_old_runs()

    def _forget_old_runs(self) -> None:
        # Runs still in flight are never evicted, so the map may exceed the cap
        finished = [rid for rid, summary in self._runs.items() if summary is not None]
        while len(self._runs) > MAX_TRACKED_RUNS and finished:
            oldest = finished.pop(0)
            self._runs.pop(oldest)
            self._threads.pop(oldest, None)

    def get_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        """Summary of a finished run; None while running or if unknown."""
        with self._lock:
            return self._runs.get(run_id)

    def is_known(self, run_id: str) -> bool:
        with self._lock:
            return run_id in self._runs

    def wait(self, run_id: str, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Block until a run finishes (or timeout) and return its summary."""
        with self._lock:
            thread = self._threads.get(run_id)
        if thread is not None:
            thread.join(timeout)
        return self.get_run(run_id)


class WorkflowScheduler:
    """
    Fires a run for the default topic every `interval_hours`.

    Usage:
        scheduler = WorkflowScheduler(dispatcher)
        scheduler.start()
        scheduler.run_forever()
    """

    def __init__(
        self,
        dispatcher: WorkflowDispatcher,
        interval_hours: int = None,
        topic: str = None,
    ):
        self.dispatcher = dispatcher
        self.interval_hours = interval_hours or SCHEDULE_INTERVAL_HOURS
        self.topic = topic or DEFAULT_TOPIC
        self.scheduler = schedule.Scheduler()
        self._stop = threading.Event()

    def _tick(self) -> Dict[str, Any]:
        ack = self.dispatcher.trigger(self.topic)
        print(f"[scheduler] Triggered run {ack['run_id']} for r/{ack['topic']}")
        return ack

    def start(self, run_immediately: bool = False) -> None:
        self.scheduler.every(self.interval_hours).hours.do(self._tick)
        print(f"[scheduler] Every {self.interval_hours}h for r/{self.topic}")
        if run_immediately:
            self._tick()

    def run_pending(self) -> None:
        self.scheduler.run_pending()

    def run_forever(self, poll_seconds: float = 60, sleep: Callable[[float], None] = time.sleep) -> None:
        while not self._stop.is_set():
            self.scheduler.run_pending()
            sleep(poll_seconds)

    def stop(self) -> None:
        self._stop.set()
        self.scheduler.clear()
