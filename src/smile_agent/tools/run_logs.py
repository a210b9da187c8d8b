"""Persist a JSON record of each finished plan run for later debugging."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..planning.schema import Plan
from ..utils.slug import slugify

LOGGER = logging.getLogger(__name__)

__all__ = ["load_run_log", "write_run_log"]


def write_run_log(
    logs_root: Path,
    *,
    request: str,
    plan: Plan | None,
    summary: str,
    success: bool,
) -> Path | None:
    """Write the run record under ``logs_root`` and return its path.

    Returns ``None`` when the directory or file cannot be written.
    """
    try:
        logs_root.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        LOGGER.warning("Unable to create run log directory %s: %s", logs_root, error)
        return None

    now = datetime.now(timezone.utc)
    entry: dict[str, Any] = {
        "timestamp": now.isoformat(),
        "request": request,
        "success": success,
        "summary": summary,
        "plan": plan.model_dump(mode="json") if plan is not None else None,
    }

    parts = ["run", slugify(plan.id if plan is not None else None, fallback="no-plan"), now.strftime("%Y%m%dT%H%M%S%fZ")]
    log_path = logs_root / ("__".join(parts) + ".json")
    try:
        with log_path.open("w", encoding="utf-8") as handle:
            json.dump(entry, handle, indent=2, sort_keys=True, ensure_ascii=False)
    except OSError as error:
        LOGGER.warning("Unable to write run log %s: %s", log_path, error)
        return None
    return log_path


def load_run_log(path: Path) -> dict[str, Any]:
    """Load a run record written by :func:`write_run_log`."""
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"Run log {path} does not contain a JSON object.")
    return payload
