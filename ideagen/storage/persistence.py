"""
Persistence stage: commit a run's concepts exactly once.
"""

from typing import List, Optional

from ideagen.errors import PersistenceFailure
from ideagen.models import Concept
from ideagen.storage.base import Storage


def persist_concepts(
    store: Storage,
    concepts: List[Concept],
    run_id: Optional[str] = None,
    verbose: bool = False,
) -> int:
    """
    Append a run's concepts to the ideas collection.

    A retried or replayed persist step finds the rows it already committed
    under `run_id` and reports them instead of inserting a second copy.

    Args:
        store: Storage backend.
        concepts: Concepts of one run.
        run_id: Workflow run id stamped on every row.
        verbose: Print progress.

    Returns:
        Number of concepts committed for the run.

    Raises:
        PersistenceFailure: If the insert is rejected, or if an earlier attempt
            left only part of the run committed.
    """
    if not concepts:
        return 0

    if run_id:
        existing = store.count_concepts_for_run(run_id)
        if existing and existing != len(concepts):
            raise PersistenceFailure(
                f"Run {run_id} is partially committed: {existing} of {len(concepts)} ideas stored"
            )
        if existing:
            if verbose:
                print(f"[persist] Run {run_id} already committed {existing} ideas, skipping insert")
            return existing

        for concept in concepts:
            concept.run_id = run_id

    inserted = store.insert_concepts(concepts)

    if verbose:
        print(f"[persist] Inserted {inserted} ideas into {store.name}")

    return inserted
