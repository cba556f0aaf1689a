"""Time-based progress estimation for long-running generation jobs."""

from __future__ import annotations

# Average observed duration of a Veo fast generation.
EXPECTED_DURATION_MS = 120_000

PROGRESS_FLOOR = 5
PROGRESS_CEILING = 95
PROGRESS_COMPLETE = 100


def estimate_progress(elapsed_ms: float, expected_duration_ms: float = EXPECTED_DURATION_MS) -> int:
    """Map elapsed wall-clock time to a percentage in ``[5, 95]``.

    The remote operation only reports a terminal ``done`` flag, so progress is
    simulated: it starts at 5 once the job is submitted and approaches 95 over
    ``expected_duration_ms``. Only the orchestrator reports 100, after completion.
    """
    if expected_duration_ms <= 0:
        raise ValueError("expected_duration_ms must be positive")
    raw = PROGRESS_FLOOR + (PROGRESS_CEILING - PROGRESS_FLOOR) * (elapsed_ms / expected_duration_ms)
    return int(max(PROGRESS_FLOOR, min(PROGRESS_CEILING, raw)))
