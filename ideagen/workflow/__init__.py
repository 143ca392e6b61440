"""
Workflow module.

Step execution (retry + checkpoint) and the triggers that start runs.
"""

from ideagen.workflow.steps import (
    CheckpointStore,
    FileCheckpointStore,
    MemoryCheckpointStore,
    StepRunner,
)
from ideagen.workflow.triggers import SCRAPE_EVENT, WorkflowDispatcher, WorkflowScheduler

__all__ = [
    "CheckpointStore",
    "FileCheckpointStore",
    "MemoryCheckpointStore",
    "StepRunner",
    "SCRAPE_EVENT",
    "WorkflowDispatcher",
    "WorkflowScheduler",
]
