"""Progress estimator tests."""

from __future__ import annotations

import pytest

from modules.pipelines.progress import EXPECTED_DURATION_MS, estimate_progress


def test_starts_at_floor():
    assert estimate_progress(0) == 5


def test_linear_midpoint():
    assert estimate_progress(60_000, 120_000) == 50


def test_caps_below_completion():
    assert estimate_progress(EXPECTED_DURATION_MS) == 95
    assert estimate_progress(EXPECTED_DURATION_MS * 10) == 95


def test_negative_elapsed_clamps_to_floor():
    assert estimate_progress(-5_000) == 5


def test_non_decreasing_and_bounded():
    values = [estimate_progress(t, EXPECTED_DURATION_MS) for t in range(0, EXPECTED_DURATION_MS, 1_000)]
    assert values == sorted(values)
    assert all(5 <= value <= 95 for value in values)
    assert 100 not in values


def test_returns_int():
    assert isinstance(estimate_progress(12_345), int)


@pytest.mark.parametrize("expected", [0, -1])
def test_rejects_non_positive_duration(expected):
    with pytest.raises(ValueError):
        estimate_progress(1_000, expected)
