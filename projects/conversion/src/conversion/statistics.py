"""Row-count statistics gathered from an external provider."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from logging import getLogger
from typing import TypeAlias

from conversion.issues import Issue, row_count_unavailable
from conversion.settings import Settings

logger = getLogger(__name__)

RowCountProvider: TypeAlias = Callable[[str], int]
RowCounts: TypeAlias = dict[str, int]


def static_row_counter(counts: Mapping[str, int]) -> RowCountProvider:
    """Provider answering from a fixed mapping, raising KeyError otherwise."""

    def count(table: str) -> int:
        return counts[table]

    return count


def with_retry(
    provider: RowCountProvider,
    attempts: int = 3,
    delay: float = 0.5,
) -> RowCountProvider:
    """Wrap a provider with bounded exponential backoff.

    Args:
        provider: Row-count provider to wrap
        attempts: Maximum number of calls per table
        delay: Base delay in seconds, doubled after every failed attempt

    Returns:
        Provider that re-raises the last error once all attempts failed

    """
    if attempts < 1:
        msg = f"Retry attempts must be at least 1, got {attempts}"
        raise ValueError(msg)

    def count(table: str) -> int:
        for attempt in range(attempts):
            try:
                return provider(table)
            except Exception as e:
                if attempt == attempts - 1:
                    raise
                wait_time = delay * (2**attempt)
                logger.warning(
                    "Row count for %s failed (attempt %d/%d): %s; retrying in %.2fs",
                    table,
                    attempt + 1,
                    attempts,
                    e,
                    wait_time,
                )
                time.sleep(wait_time)
        msg = "unreachable"
        raise AssertionError(msg)

    return count


def _validated(table: str, value: object) -> int:
    """Check that a provider returned a usable row count."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        msg = f"invalid row count {value!r} for {table}"
        raise ValueError(msg)
    return value


def _timed(provider: RowCountProvider, started: dict[str, float]) -> RowCountProvider:
    """Record when each fetch actually starts running on a worker."""

    def count(table: str) -> int:
        started[table] = time.monotonic()
        return provider(table)

    return count


def collect_row_counts(
    provider: RowCountProvider | None,
    table_names: Iterable[str],
    settings: Settings,
) -> tuple[RowCounts, list[Issue]]:
    """Fetch row counts for distinct tables concurrently.

    Fetches run on a bounded thread pool. A failed, invalid or slow fetch
    degrades to ``settings.default_row_count`` with one issue for that table.
    The timeout of a fetch runs from the moment a worker picks it up, so time
    spent queued behind a slow fetch does not count against it.

    Returns:
        Tuple of (row counts by table, issues)

    """
    names = list(dict.fromkeys(table_names))
    default = settings.default_row_count

    if provider is None:
        issues = (
            [row_count_unavailable(None, default, "no row-count provider")]
            if names
            else []
        )
        return dict.fromkeys(names, default), issues

    if not names:
        return {}, []

    counts: RowCounts = {}
    failures: dict[str, Issue] = {}
    started: dict[str, float] = {}
    timeout = settings.fetch_timeout

    def fail(name: str, reason: str) -> None:
        counts[name] = default
        failures[name] = row_count_unavailable(name, default, reason)

    executor = ThreadPoolExecutor(
        max_workers=max(1, min(settings.max_workers, len(names))),
        thread_name_prefix="row-count",
    )
    try:
        fetch = _timed(provider, started)
        futures: dict[Future[int], str] = {
            executor.submit(fetch, name): name for name in names
        }
        pending = set(futures)
        while pending:
            now = time.monotonic()
            running = [started[futures[f]] for f in pending if futures[f] in started]
            wait_for = min((s + timeout - now for s in running), default=timeout)
            done, pending = wait(
                pending,
                timeout=max(wait_for, 0.0),
                return_when=FIRST_COMPLETED,
            )

            for future in done:
                name = futures[future]
                try:
                    counts[name] = _validated(name, future.result())
                except Exception as e:  # noqa: BLE001
                    logger.warning("Row count for %s unavailable: %s", name, e)
                    fail(name, str(e))

            now = time.monotonic()
            expired = {
                future
                for future in pending
                if futures[future] in started
                and now - started[futures[future]] >= timeout
            }
            for future in expired:
                logger.warning("Row count for %s timed out", futures[future])
                fail(futures[future], "timed out")
            pending -= expired
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return (
        {name: counts[name] for name in names},
        [failures[name] for name in names if name in failures],
    )
