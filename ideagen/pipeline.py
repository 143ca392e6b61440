"""
Idea Generator Pipeline - Core workflow logic.

This module orchestrates one workflow run for one topic:

    ensure-topic -> fetch-posts -> analyze-pain-points -> generate-ideas
        -> persist-ideas -> notify-subscribers -> stamp-topic

States:

    PENDING -> ENSURE_TOPIC -> FETCHING -> (EMPTY_EXIT | ANALYZING)
        -> GENERATING -> PERSISTING -> (NOTIFYING) -> STAMPING -> DONE
    FAILED is reachable from any step.

Design principles:
- Fetch errors are absorbed (cache -> live -> stale -> empty); an unavailable
  source counts as zero posts and the run still stamps the topic.
- Later errors abort the run before stamping and without partial persistence.
- Every step is retried and checkpointed; replaying a run id skips completed
  steps, and the persist step never inserts twice for one run id.
- The topic stamp is the last write of a successful run and always moves
  forward, so polling clients can detect completion.
"""

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ideagen.analysis import analyze, generate_all
from ideagen.backends import Backends, get_backends
from ideagen.config import CHECKPOINT_DIR, DEFAULT_TOPIC
from ideagen.errors import IdeaGenError, PersistenceFailure, SourceUnavailable
from ideagen.models import Concept, PainPoint, SourceItem
from ideagen.storage.persistence import persist_concepts
from ideagen.utils import (
    format_timestamp,
    new_run_id,
    normalize_topic_name,
    parse_timestamp,
    utc_now,
)
from ideagen.workflow.steps import (
    CheckpointStore,
    FileCheckpointStore,
    MemoryCheckpointStore,
    StepRunner,
)


# =============================================================================
# Run States and Steps
# =============================================================================

class RunState(str, Enum):
    PENDING = "pending"
    ENSURE_TOPIC = "ensure_topic"
    FETCHING = "fetching"
    EMPTY_EXIT = "empty_exit"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    PERSISTING = "persisting"
    NOTIFYING = "notifying"
    STAMPING = "stamping"
    DONE = "done"
    FAILED = "failed"


STEP_ENSURE_TOPIC = "ensure-topic"
STEP_FETCH = "fetch-posts"
STEP_ANALYZE = "analyze-pain-points"
STEP_GENERATE = "generate-ideas"
STEP_PERSIST = "persist-ideas"
STEP_NOTIFY = "notify-subscribers"
STEP_STAMP = "stamp-topic"

STEP_NAMES = (
    STEP_ENSURE_TOPIC,
    STEP_FETCH,
    STEP_ANALYZE,
    STEP_GENERATE,
    STEP_PERSIST,
    STEP_NOTIFY,
    STEP_STAMP,
)


# =============================================================================
# Pipeline Result
# =============================================================================

@dataclass
class PipelineResult:
    """Complete result (run summary) of one workflow run."""
    topic: str
    run_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    state: RunState = RunState.PENDING

    items_fetched: int = 0
    pain_points_found: int = 0
    concepts_generated: int = 0
    concepts_inserted: int = 0
    emails_sent: int = 0
    emails_failed: int = 0
    message: Optional[str] = None
    # Passed through EMPTY_EXIT: no posts, nothing analyzed
    empty_exit: bool = False

    # Per-subscriber dispatch outcomes
    dispatches: List[Dict[str, Any]] = field(default_factory=list)

    # Value written to the topic's last_synced_at, None if not stamped
    synced_at: Optional[datetime] = None

    replayed_steps: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == RunState.DONE

    @property
    def duration_seconds(self) -> float:
        """Total run duration in seconds."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "run_id": self.run_id,
            "topic": self.topic,
            "state": self.state.value,
            "items_fetched": self.items_fetched,
            "pain_points_found": self.pain_points_found,
            "concepts_generated": self.concepts_generated,
            "concepts_inserted": self.concepts_inserted,
            "emails_sent": self.emails_sent,
            "emails_failed": self.emails_failed,
            "empty_exit": self.empty_exit,
            "dispatches": list(self.dispatches),
            "started_at": format_timestamp(self.started_at),
            "finished_at": format_timestamp(self.finished_at),
            "synced_at": format_timestamp(self.synced_at),
            "duration_seconds": round(self.duration_seconds, 3),
            "replayed_steps": list(self.replayed_steps),
            "errors": list(self.errors),
        }
        if self.message:
            data["message"] = self.message
        return data

    def to_summary(self) -> str:
        """Generate a human-readable summary."""
        status = "✓" if self.success else "✗"
        lines = [
            "=" * 60,
            "WORKFLOW RUN SUMMARY",
            "=" * 60,
            f"Run:      {self.run_id}",
            f"Topic:    r/{self.topic}",
            f"State:    {status} {self.state.value}",
            f"Started:  {self.started_at.strftime('%Y-%m-%d %H:%M:%S')} UTC",
            f"Duration: {self.duration_seconds:.2f}s",
            "",
            f"Posts fetched:       {self.items_fetched}",
            f"Pain points found:   {self.pain_points_found}",
            f"Concepts generated:  {self.concepts_generated}",
            f"Concepts inserted:   {self.concepts_inserted}",
            f"Emails sent:         {self.emails_sent}",
            f"Emails failed:       {self.emails_failed}",
        ]

        if self.message:
            lines.extend(["", f"Note: {self.message}"])

        if self.synced_at:
            lines.append(f"Topic stamped at {format_timestamp(self.synced_at)}")

        if self.replayed_steps:
            lines.append(f"Replayed steps: {', '.join(self.replayed_steps)}")

        if self.errors:
            lines.extend(["", "Errors:"])
            for error in self.errors[:5]:
                lines.append(f"  - {error}")

        lines.append("=" * 60)
        return "\n".join(lines)


# =============================================================================
# Pipeline Configuration
# =============================================================================

@dataclass
class PipelineConfig:
    """
    Configuration for a workflow run.

    CLI arguments override config defaults.
    """
    topic: Optional[str] = None
    run_id: Optional[str] = None
    verbose: bool = False
    quiet: bool = False
    max_attempts: Optional[int] = None
    retry_wait: Optional[float] = None
    checkpoint_dir: Optional[str] = None

    @classmethod
    def from_args(cls, args) -> "PipelineConfig":
        """Create config from argparse namespace."""
        return cls(
            topic=getattr(args, "topic", None),
            run_id=getattr(args, "run_id", None),
            verbose=getattr(args, "verbose", False),
            quiet=getattr(args, "quiet", False),
            checkpoint_dir=getattr(args, "checkpoint_dir", None),
        )


def _default_checkpoints(directory: Optional[str]) -> CheckpointStore:
    directory = directory or CHECKPOINT_DIR
    if directory:
        return FileCheckpointStore(directory)
    return MemoryCheckpointStore()


# =============================================================================
# Pipeline Class
# =============================================================================

class IdeaGenPipeline:
    """
    Runs the scrape-and-generate workflow for one topic.

    Usage:
        config = PipelineConfig(topic="startups", verbose=True)
        pipeline = IdeaGenPipeline(config)
        result = pipeline.run()
        print(result.to_summary())
    """

    def __init__(
        self,
        config: PipelineConfig = None,
        backends: Backends = None,
        checkpoints: CheckpointStore = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config or PipelineConfig()
        self.backends = backends or get_backends()
        self.checkpoints = checkpoints or _default_checkpoints(self.config.checkpoint_dir)
        self.clock = clock
        self.run_id = self.config.run_id or new_run_id()

    def _log(self, message: str, detail: bool = False) -> None:
        if self.config.quiet or (detail and not self.config.verbose):
            return
        print(f"[workflow:{self.run_id}] {message}")

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _ensure_topic(self, topic: str) -> Dict[str, Any]:
        row, created = self.backends.store.ensure_topic(topic)
        if created:
            self._log(f"Created topic r/{topic}", detail=True)
        return row.to_dict()

    def _fetch_posts(self, topic: str) -> Dict[str, Any]:
        gateway = self.backends.gateway(verbose=self.config.verbose)
        try:
            items = gateway.fetch(topic)
        except SourceUnavailable as e:
            self._log(f"Source unavailable, treating as zero posts: {e}")
            return {"items": [], "unavailable": str(e)}
        return {"items": [item.to_dict() for item in items], "unavailable": None}

    def _analyze(self, items: List[SourceItem]) -> List[Dict[str, Any]]:
        pain_points = analyze(self.backends.llm, items, verbose=self.config.verbose)
        return [pp.to_dict() for pp in pain_points]

    def _generate(self, pain_points: List[PainPoint], topic: str) -> List[Dict[str, Any]]:
        concepts = generate_all(
            self.backends.llm,
            pain_points,
            topic=topic,
            run_id=self.run_id,
            verbose=self.config.verbose,
        )
        return [c.to_dict() for c in concepts]

    def _persist(self, concepts: List[Concept]) -> int:
        return persist_concepts(
            self.backends.store,
            concepts,
            run_id=self.run_id,
            verbose=self.config.verbose,
        )

    def _notify(self, concepts: List[Concept], topic: str) -> Dict[str, Any]:
        notifier = self.backends.notifier(verbose=self.config.verbose)
        subscribers = self.backends.store.list_subscribers()
        return notifier.notify(concepts, subscribers, topic=topic).to_dict()

    def _stamp_topic(self, topic: str) -> str:
        """
        Write last_synced_at, strictly later than any previous stamp.

        Upsert by name first; if the store rejects the upsert, fall back to a
        plain update of the existing row.
        """
        store = self.backends.store
        stamp = self.clock()

        previous = store.get_topic(topic)
        if previous and previous.last_synced_at and previous.last_synced_at >= stamp:
            stamp = previous.last_synced_at + timedelta(microseconds=1)

        try:
            store.upsert_topic_sync(topic, stamp)
        except PersistenceFailure as e:
            self._log(f"Stamp upsert failed ({e}), falling back to update")
            store.update_topic_sync(topic, stamp)

        return format_timestamp(stamp)

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self) -> PipelineResult:
        """
        Execute the workflow.

        Never raises for pipeline errors; they are recorded on the result
        with state FAILED.

        Returns:
            PipelineResult with execution details.
        """
        topic = normalize_topic_name(self.config.topic, DEFAULT_TOPIC)
        result = PipelineResult(topic=topic, run_id=self.run_id, started_at=self.clock())
        runner = StepRunner(
            self.run_id,
            self.checkpoints,
            max_attempts=self.config.max_attempts,
            retry_wait=self.config.retry_wait,
            log=self._log,
        )

        self._log(f"Starting run for r/{topic} ({self.backends.describe()})")

        try:
            # Step 1: Ensure topic row
            result.state = RunState.ENSURE_TOPIC
            runner.run(STEP_ENSURE_TOPIC, self._ensure_topic, topic)

            # Step 2: Fetch posts
            result.state = RunState.FETCHING
            fetched = runner.run(STEP_FETCH, self._fetch_posts, topic)
            items = [SourceItem.from_dict(row) for row in fetched["items"]]
            result.items_fetched = len(items)
            self._log(f"Fetched {len(items)} posts")

            if not items:
                result.state = RunState.EMPTY_EXIT
                result.empty_exit = True
                result.message = f"No posts found for r/{topic}; nothing to analyze"
                if fetched.get("unavailable"):
                    result.message += f" (source unavailable: {fetched['unavailable']})"
                result.state = RunState.STAMPING
                result.synced_at = parse_timestamp(runner.run(STEP_STAMP, self._stamp_topic, topic))
                result.state = RunState.DONE
                return result

            # Step 3: Analyze pain points
            result.state = RunState.ANALYZING
            pain_points = [
                PainPoint.from_dict(row)
                for row in runner.run(STEP_ANALYZE, self._analyze, items)
            ]
            result.pain_points_found = len(pain_points)
            self._log(f"Found {len(pain_points)} pain points")

            # Step 4: Generate one concept per pain point
            result.state = RunState.GENERATING
            concepts = [
                Concept.from_dict(row)
                for row in runner.run(STEP_GENERATE, self._generate, pain_points, topic)
            ]
            result.concepts_generated = len(concepts)

            # Step 5: Persist
            result.state = RunState.PERSISTING
            result.concepts_inserted = runner.run(STEP_PERSIST, self._persist, concepts)
            self._log(f"Persisted {result.concepts_inserted} ideas")

            # Step 6: Notify, only when something new was stored
            if result.concepts_inserted > 0:
                result.state = RunState.NOTIFYING
                report = runner.run(STEP_NOTIFY, self._notify, concepts, topic)
                result.emails_sent = report["emails_sent"]
                result.emails_failed = report["emails_failed"]
                result.dispatches = report["results"]

            # Step 7: Stamp
            result.state = RunState.STAMPING
            result.synced_at = parse_timestamp(runner.run(STEP_STAMP, self._stamp_topic, topic))
            result.state = RunState.DONE

        except IdeaGenError as e:
            result.errors.append(f"{type(e).__name__}: {e}")
            if self.config.verbose:
                result.errors.append(traceback.format_exc())
            self._log(f"Run failed in state {result.state.value}: {e}")
            result.state = RunState.FAILED

        finally:
            result.replayed_steps = list(runner.replayed)
            result.finished_at = self.clock()

        return result


# =============================================================================
# Convenience Functions
# =============================================================================

def run_pipeline(
    topic: str = None,
    run_id: str = None,
    verbose: bool = False,
    quiet: bool = False,
    backends: Backends = None,
    checkpoints: CheckpointStore = None,
) -> PipelineResult:
    """
    Run one workflow with specified options.

    Convenience function for programmatic use.

    Args:
        topic: Subreddit to process (default: DEFAULT_TOPIC).
        run_id: Resume or replay a specific run id.
        verbose: If True, print detailed progress.
        quiet: If True, print nothing.
        backends: Override the configured backends.
        checkpoints: Override the checkpoint store.

    Returns:
        PipelineResult with execution details.
    """
    config = PipelineConfig(topic=topic, run_id=run_id, verbose=verbose, quiet=quiet)
    return IdeaGenPipeline(config, backends=backends, checkpoints=checkpoints).run()
