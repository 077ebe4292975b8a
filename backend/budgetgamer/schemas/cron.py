"""Scheduler trigger response schemas."""

from typing import Any, Dict, List

from pydantic import BaseModel


class AdapterTallySchema(BaseModel):
    """Statistics for a single adapter run."""

    adapter: str
    total: int = 0
    added: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = []


class ScheduleReportSchema(BaseModel):
    """Outcome of a schedule fan-out.

    ``results`` maps each adapter slug to its tally plus a ``status`` of
    ``fulfilled``, or to ``{"status": "rejected", "error": ...}``.
    """

    schedule: str
    successful: int
    failed: int
    results: Dict[str, Dict[str, Any]] = {}
