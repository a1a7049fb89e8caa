from typing import Iterable

from models import Graph


def _reaches_enrolled(
    course_id: int,
    graph: Graph,
    enrolled_ids: frozenset[int],
    visited: frozenset[int],
    memo: dict[int, bool],
) -> tuple[bool, bool]:
    """
    Follow course -> prerequisites -> their prerequisites ... and report whether
    an enrolled course is ever reached.

    `visited` holds the ids on the current descent and is copied, not mutated,
    so sibling branches keep independent cycle guards.

    Returns (reached, exact). A negative answer is only exact when no branch
    below was cut by the cycle guard; only exact answers are memoized.
    """
    if course_id in memo:
        return memo[course_id], True

    course = graph.nodes_by_id.get(course_id)
    if course is None:
        return False, True  # outside the system

    exact = True
    for prereq_id in course.prerequisites:
        if prereq_id in enrolled_ids:
            memo[course_id] = True
            return True, True
        if prereq_id in visited:
            exact = False  # cycle guard
            continue
        reached, sub_exact = _reaches_enrolled(prereq_id, graph, enrolled_ids, visited | {prereq_id}, memo)
        if reached:
            memo[course_id] = True
            return True, True
        exact = exact and sub_exact

    if exact:
        memo[course_id] = False
    return False, exact


def depends_on_enrolled(course_id: int, graph: Graph, enrolled_ids: Iterable[int]) -> bool:
    """True if any prerequisite chain starting at course_id reaches an enrolled course."""
    reached, _ = _reaches_enrolled(course_id, graph, frozenset(enrolled_ids), frozenset({course_id}), {})
    return reached


def reclassify_recommendations(
    graph: Graph,
    recommended_ids: Iterable[int],
    enrolled_ids: Iterable[int],
) -> tuple[list[int], list[int]]:
    """
    Split feed recommendations into plain recommendations and dependent courses.

    A recommended course whose prerequisite chain reaches an enrolled course,
    directly or through any number of intermediate courses, becomes a dependent
    course on that learning path. Everything else stays a plain recommendation.

    Returns (plain_ids, dependent_ids), each in input order.
    """
    enrolled = frozenset(enrolled_ids)
    memo: dict[int, bool] = {}
    plain: list[int] = []
    dependent: list[int] = []

    for course_id in recommended_ids:
        reached, _ = _reaches_enrolled(course_id, graph, enrolled, frozenset({course_id}), memo)
        if reached:
            dependent.append(course_id)
        else:
            plain.append(course_id)

    return plain, dependent
