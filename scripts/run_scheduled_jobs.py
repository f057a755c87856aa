#!/usr/bin/env python3
"""
Run the scheduled lineup and scoring jobs.

Stages (in order):
- lineup_propagation: carry lineups forward into newly locked matches
- score_recompute: rescore every match of each league

Usage:
    python scripts/run_scheduled_jobs.py
    python scripts/run_scheduled_jobs.py --stages lineup_propagation --leagues 3,4
    python scripts/run_scheduled_jobs.py --metrics-json logs/jobs/latest.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from playingxi.config import settings
from playingxi.db import get_engine
from playingxi.tasks import STAGES, JobRun, job_lock, resolve_stages
from playingxi.timeline import utc_now

logger = logging.getLogger("playingxi.jobs")


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def _csv(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run scheduled lineup and scoring jobs.")
    parser.add_argument(
        "--stages",
        default=None,
        help=f"Comma-separated stage list. Default: {','.join(STAGES)}.",
    )
    parser.add_argument(
        "--skip-stages",
        default="",
        help="Comma-separated stage names to skip.",
    )
    parser.add_argument(
        "--leagues",
        default=None,
        help="Comma-separated league ids. Default: all leagues.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Parallel match workers for score_recompute.",
    )
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Continue running remaining stages after failures.",
    )
    parser.add_argument(
        "--metrics-json",
        default=None,
        help="Write run summary JSON to this path.",
    )
    parser.add_argument(
        "--lock-name",
        default="playingxi_scheduled_jobs",
        help="Advisory lock namespace.",
    )
    parser.add_argument(
        "--lock-timeout-seconds",
        type=float,
        default=5.0,
        help="Advisory lock acquisition timeout.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        stage_names = resolve_stages(
            include=_csv(args.stages) or None,
            skip=set(_csv(args.skip_stages)),
        )
    except KeyError as exc:
        logger.error("%s (known stages: %s)", exc.args[0], ", ".join(STAGES))
        return 2

    league_ids = [int(x) for x in _csv(args.leagues)] or None
    run = JobRun.start(league_ids=league_ids, workers=args.workers)

    run_summary: dict[str, Any] = {
        "run_id": run.run_id,
        "started_at": run.started_at.isoformat(),
        "stages": [],
        "status": "running",
    }

    try:
        with job_lock(get_engine(), args.lock_name, timeout_seconds=args.lock_timeout_seconds):
            for name in stage_names:
                logger.info("[Stage %s] starting", name)
                report = STAGES[name](run)
                run_summary["stages"].append(report.to_dict())
                logger.info("[Stage %s] %s in %.1fs", name, report.status, report.duration_s)

                if report.status == "failed" and not args.continue_on_error:
                    break
    except TimeoutError as exc:
        run_summary["status"] = "failed"
        run_summary["error"] = str(exc)
        run_summary["ended_at"] = utc_now().isoformat()
        if args.metrics_json:
            _write_json(Path(args.metrics_json), run_summary)
        logger.error("Could not acquire job lock: %s", exc)
        return 2

    ended_at = utc_now()
    has_failed = any(stage["status"] == "failed" for stage in run_summary["stages"])
    final_status = "failed" if has_failed else "success"
    run_summary["ended_at"] = ended_at.isoformat()
    run_summary["status"] = final_status
    run_summary["duration_s"] = (ended_at - run.started_at).total_seconds()

    if args.metrics_json:
        _write_json(Path(args.metrics_json), run_summary)

    print(json.dumps(run_summary, indent=2))
    return 1 if final_status == "failed" else 0


if __name__ == "__main__":
    raise SystemExit(main())
