from collections import deque
from types import MappingProxyType
from typing import Iterable

from models import Course, Graph


def build_reverse_prereq_map(courses: list[Course]) -> dict[int, list[int]]:
    """
    Builds a reverse prerequisite map over the full catalog: for each course,
    which courses directly list it as a prerequisite.

    Returns: {1: [2, 3], 2: [4], 3: [4]}

    Dependents are listed in catalog order with duplicates removed. Prerequisite
    ids missing from the catalog still get an entry; callers that only care
    about in-system courses filter on the catalog themselves.
    """
    reverse: dict[int, list[int]] = {}

    for course in courses:
        for prereq_id in course.prerequisites:
            reverse.setdefault(prereq_id, [])
            if course.id not in reverse[prereq_id]:
                reverse[prereq_id].append(course.id)

    return reverse


def collect_relevant_ids(
    courses_by_id: dict[int, Course],
    reverse_map: dict[int, list[int]],
    seed_ids: Iterable[int],
) -> set[int]:
    """
    Closure of seed_ids over prerequisite and dependent edges.

    Starting from the seeds, repeatedly follows "X is a prerequisite of Y" in
    both directions until nothing new is reached. Ids outside the catalog are
    never part of the result.
    """
    relevant: set[int] = set()
    queue: deque[int] = deque()

    for course_id in seed_ids:
        if course_id in courses_by_id and course_id not in relevant:
            relevant.add(course_id)
            queue.append(course_id)

    while queue:
        course_id = queue.popleft()
        neighbours = list(courses_by_id[course_id].prerequisites) + reverse_map.get(course_id, [])
        for neighbour in neighbours:
            if neighbour in courses_by_id and neighbour not in relevant:
                relevant.add(neighbour)
                queue.append(neighbour)

    return relevant


def build_dependency_graph(
    courses: list[Course],
    enrolled_ids: Iterable[int],
    recommended_ids: Iterable[int],
) -> Graph:
    """
    Restrict the catalog to courses relevant to one learner.

    The reverse map is inverted once over the whole catalog so that dependents
    which only become relevant through the closure are still found.
    """
    courses_by_id = {course.id: course for course in courses}
    reverse_map = build_reverse_prereq_map(courses)

    seeds = list(enrolled_ids) + list(recommended_ids)
    relevant = collect_relevant_ids(courses_by_id, reverse_map, seeds)

    nodes_by_id = {course.id: course for course in courses if course.id in relevant}
    dependents_by_id = {
        course_id: tuple(d for d in reverse_map.get(course_id, []) if d in relevant)
        for course_id in nodes_by_id
    }
    return Graph(
        nodes_by_id=MappingProxyType(nodes_by_id),
        dependents_by_id=MappingProxyType(dependents_by_id),
    )


def is_root(course: Course, graph: Graph) -> bool:
    """True when none of the course's prerequisites are relevant courses."""
    return not any(prereq_id in graph for prereq_id in course.prerequisites)


def select_roots(graph: Graph) -> list[Course]:
    """Roots of the forest, in catalog order."""
    return [course for course in graph.nodes_by_id.values() if is_root(course, graph)]
