"""Scheduled lineup and scoring jobs, and the lock that keeps them single-run."""

from playingxi.tasks.jobs import (
    STAGES,
    JobRun,
    StageReport,
    resolve_stages,
    run_propagation,
    run_scoring,
)
from playingxi.tasks.locks import advisory_lock_key, job_lock

__all__ = [
    "STAGES",
    "JobRun",
    "StageReport",
    "resolve_stages",
    "run_propagation",
    "run_scoring",
    "advisory_lock_key",
    "job_lock",
]
