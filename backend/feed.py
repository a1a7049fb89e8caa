"""
Recommendation feed fan-out.

The feed is an external ranking service called once per enrolled course.
Calls are independent, so they run concurrently; the engine only runs once
every call has resolved, failed or timed out.
"""

import sys
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Iterable

import pandas as pd

from models import RecommendationSet
from normalizer import normalize_course_id, normalize_id_list

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_MAX_WORKERS = 8

Fetch = Callable[[int], Iterable]

# One bounded pool per worker count, shared across requests. A call that hangs
# past the timeout holds one of these threads instead of spawning new ones.
_executors: dict[int, ThreadPoolExecutor] = {}
_executors_lock = threading.Lock()


def _executor(size: int) -> ThreadPoolExecutor:
    with _executors_lock:
        executor = _executors.get(size)
        if executor is None:
            executor = ThreadPoolExecutor(max_workers=size, thread_name_prefix=f"feed-{size}")
            _executors[size] = executor
        return executor


def _fetch_candidates(fetch: Fetch, course_id: int):
    """Run one feed call and drain its result inside the worker thread."""
    raw_candidates = fetch(course_id)
    if raw_candidates is None or isinstance(raw_candidates, str):
        return raw_candidates
    return list(raw_candidates)


def _to_recommendation_set(course_id: int, raw_candidates) -> RecommendationSet:
    try:
        result = normalize_id_list(raw_candidates)
    except (TypeError, ValueError) as exc:
        print(f"[WARN] Feed returned an unreadable result for course {course_id}: {exc}", file=sys.stderr)
        return RecommendationSet(for_course_id=course_id)
    if result["invalid"]:
        print(
            f"[WARN] Feed returned {len(result['invalid'])} unreadable candidate id(s) "
            f"for course {course_id}: {result['invalid']}",
            file=sys.stderr,
        )
    return RecommendationSet(for_course_id=course_id, candidate_ids=tuple(result["valid"]))


def collect_recommendation_sets(
    enrolled_ids: Iterable[int],
    fetch: Fetch,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[RecommendationSet]:
    """
    Call fetch(course_id) for every enrolled course concurrently.

    Returns one RecommendationSet per enrolled course, in enrollment order.
    A call that raises, returns something that is not a list of ids, or does
    not finish within `timeout` seconds (measured for the whole batch)
    contributes an empty set instead of failing the batch.
    """
    course_ids: list[int] = []
    for course_id in enrolled_ids:
        if course_id not in course_ids:
            course_ids.append(course_id)
    if not course_ids:
        return []

    pool_size = max(1, int(max_workers))
    executor = _executor(pool_size)
    futures = {
        course_id: executor.submit(_fetch_candidates, fetch, course_id)
        for course_id in course_ids
    }
    wait(futures.values(), timeout=timeout)

    sets: list[RecommendationSet] = []
    stragglers = 0
    for course_id, future in futures.items():
        if not future.done():
            if not future.cancel():
                stragglers += 1
            print(f"[WARN] Recommendation feed timed out for course {course_id}", file=sys.stderr)
            sets.append(RecommendationSet(for_course_id=course_id))
            continue
        exc = future.exception()
        if exc is not None:
            print(f"[WARN] Recommendation feed failed for course {course_id}: {exc}", file=sys.stderr)
            sets.append(RecommendationSet(for_course_id=course_id))
            continue
        sets.append(_to_recommendation_set(course_id, future.result()))

    if stragglers:
        print(
            f"[WARN] {stragglers} recommendation feed call(s) still running after {timeout:.1f}s "
            f"(pool size {pool_size})",
            file=sys.stderr,
        )
    return sets


def table_feed(recommendations_df: pd.DataFrame) -> Fetch:
    """
    Adapt a loaded recommendation table (course_id, recommended_course_id)
    into a fetch callable. Row order is kept as the ranking order.
    """
    by_course: dict[int, list[int]] = {}
    if recommendations_df is not None and len(recommendations_df) > 0:
        for _, row in recommendations_df.iterrows():
            course_id = normalize_course_id(row.get("course_id"))
            candidate_id = normalize_course_id(row.get("recommended_course_id"))
            if course_id is None or candidate_id is None:
                continue
            by_course.setdefault(course_id, []).append(candidate_id)

    def fetch(course_id: int) -> list[int]:
        return list(by_course.get(course_id, []))

    return fetch
