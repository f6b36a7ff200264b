"""Tests for row-count collection."""

import threading
import time

import pytest

from conversion.issues import IssueKind
from conversion.settings import Settings
from conversion.statistics import collect_row_counts, static_row_counter, with_retry


def test_static_counter() -> None:
    """Test counts served from a fixed mapping."""
    counter = static_row_counter({"users": 10})

    assert counter("users") == 10
    with pytest.raises(KeyError):
        counter("orders")


def test_counts_collected_once_per_table(settings: Settings) -> None:
    """Test that repeated table names are fetched once."""
    calls: list[str] = []
    lock = threading.Lock()

    def provider(table: str) -> int:
        with lock:
            calls.append(table)
        return len(table)

    counts, issues = collect_row_counts(
        provider,
        ["users", "orders", "users", "orders"],
        settings,
    )

    assert counts == {"users": 5, "orders": 6}
    assert sorted(calls) == ["orders", "users"]
    assert issues == []


def test_failed_fetch_falls_back_to_default(settings: Settings) -> None:
    """Test that each failing table gets the default and one issue."""

    def provider(table: str) -> int:
        if table == "broken":
            msg = "connection reset"
            raise ConnectionError(msg)
        return 7

    counts, issues = collect_row_counts(provider, ["ok", "broken"], settings)

    assert counts == {"ok": 7, "broken": settings.default_row_count}
    assert len(issues) == 1
    assert issues[0].kind is IssueKind.ROW_COUNT_UNAVAILABLE
    assert issues[0].table == "broken"
    assert "connection reset" in issues[0].message


@pytest.mark.parametrize("value", [-1, 2.5, "10", True, None])
def test_invalid_count_falls_back_to_default(settings: Settings, value: object) -> None:
    """Test that negative or non-integer counts are rejected."""
    counts, issues = collect_row_counts(
        lambda _: value,  # type: ignore[arg-type,return-value]
        ["users"],
        settings,
    )

    assert counts == {"users": settings.default_row_count}
    assert [issue.table for issue in issues] == ["users"]


def test_slow_fetch_times_out() -> None:
    """Test that a slow fetch degrades instead of blocking the run."""
    settings = Settings(fetch_timeout=0.05)

    def provider(table: str) -> int:
        if table == "slow":
            time.sleep(0.5)
        return 1

    started = time.monotonic()
    counts, issues = collect_row_counts(provider, ["slow", "fast"], settings)

    assert time.monotonic() - started < 0.5
    assert counts == {"slow": settings.default_row_count, "fast": 1}
    assert [issue.table for issue in issues] == ["slow"]
    assert "timed out" in issues[0].message


def test_queued_fetches_not_timed_out_behind_slow_one() -> None:
    """Test that waiting for a free worker does not count as fetch time."""
    settings = Settings(max_workers=1, fetch_timeout=0.2)

    def provider(table: str) -> int:
        if table == "slow":
            time.sleep(0.6)
        return 7

    counts, issues = collect_row_counts(
        provider,
        ["slow", "a", "b", "c"],
        settings,
    )

    assert counts == {
        "slow": settings.default_row_count,
        "a": 7,
        "b": 7,
        "c": 7,
    }
    assert [issue.table for issue in issues] == ["slow"]


def test_missing_provider_reports_once(settings: Settings) -> None:
    """Test that running without statistics raises a single issue."""
    counts, issues = collect_row_counts(None, ["a", "b", "c"], settings)

    assert counts == dict.fromkeys(["a", "b", "c"], settings.default_row_count)
    assert len(issues) == 1
    assert issues[0].table is None


def test_no_tables_no_issues(settings: Settings) -> None:
    """Test that nothing is reported when no counts are needed."""
    assert collect_row_counts(None, [], settings) == ({}, [])


def test_retry_recovers_from_transient_errors() -> None:
    """Test that a flaky provider succeeds within the attempt budget."""
    failures = iter([TimeoutError("slow"), TimeoutError("slow")])

    def flaky(_: str) -> int:
        error = next(failures, None)
        if error is not None:
            raise error
        return 3

    assert with_retry(flaky, attempts=3, delay=0)("users") == 3


def test_retry_reraises_last_error() -> None:
    """Test that the last error surfaces once attempts are exhausted."""
    calls = 0

    def failing(_: str) -> int:
        nonlocal calls
        calls += 1
        msg = f"failure {calls}"
        raise ConnectionError(msg)

    with pytest.raises(ConnectionError, match="failure 2"):
        with_retry(failing, attempts=2, delay=0)("users")
    assert calls == 2


def test_retry_requires_an_attempt() -> None:
    """Test that the attempt budget must be positive."""
    with pytest.raises(ValueError, match="at least 1"):
        with_retry(static_row_counter({}), attempts=0)
