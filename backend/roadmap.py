"""
Roadmap engine: catalog + enrollments + recommendation feed -> forest of
learning-path trees and the linear paths through them.

build_roadmap() is a pure function of its three inputs. It recomputes the
whole forest on every call and never raises for missing, cyclic or dangling
prerequisite data; such courses end up "locked" or "outside the system".
"""

from typing import Iterable, Mapping

from classification import classify, index_enrollments, unmet_prerequisites
from dependency_graph import build_dependency_graph, select_roots
from models import Course, EnrollmentRecord, Graph, RecommendationSet, Roadmap, RoadmapNode
from paths import enumerate_paths
from reclassifier import reclassify_recommendations


def expand_tree(
    course: Course,
    graph: Graph,
    enrollment_state: Mapping[int, EnrollmentRecord],
    dependent_ids: frozenset[int] = frozenset(),
    visited: frozenset[int] | None = None,
) -> RoadmapNode:
    """
    Build the RoadmapNode tree rooted at `course` by recursing into dependents.

    `visited` is the set of ids on the current path from the root; it is copied
    on each descent so sibling branches never see each other's ids. A dependent
    already on the path is not expanded again, which keeps every course at most
    once per path and terminates on cyclic prerequisite data.
    """
    if visited is None:
        visited = frozenset({course.id})

    children: list[RoadmapNode] = []
    for dependent_id in graph.dependents_of(course.id):
        if dependent_id in visited:
            continue  # cycle guard
        dependent = graph.nodes_by_id.get(dependent_id)
        if dependent is None:
            continue
        children.append(
            expand_tree(dependent, graph, enrollment_state, dependent_ids, visited | {dependent_id})
        )

    flags = classify(course, enrollment_state, dependent_ids, graph)
    record = enrollment_state.get(course.id)
    return RoadmapNode(
        course=course,
        is_completed=flags["is_completed"],
        is_enrolled=flags["is_enrolled"],
        is_recommended=flags["is_recommended"],
        completion=record.completion if record is not None else 0.0,
        unmet_prerequisites=tuple(unmet_prerequisites(course, enrollment_state, graph)),
        children=tuple(children),
    )


def build_forest(
    graph: Graph,
    enrollment_state: Mapping[int, EnrollmentRecord],
    dependent_ids: Iterable[int] = (),
) -> tuple[RoadmapNode, ...]:
    dependent = frozenset(dependent_ids)
    return tuple(
        expand_tree(root, graph, enrollment_state, dependent)
        for root in select_roots(graph)
    )


def collect_recommended_ids(
    recommendation_sets: Iterable[RecommendationSet],
    enrollment_state: Mapping[int, EnrollmentRecord],
    catalog_ids: set[int],
) -> list[int]:
    """
    Union of candidate ids from the sets of enrolled courses, first occurrence kept.

    Sets for courses the learner is not enrolled in are ignored, as are
    candidates the learner is already enrolled in or that are not in the catalog.
    """
    recommended: list[int] = []
    seen: set[int] = set()
    for rec_set in recommendation_sets:
        if rec_set.for_course_id not in enrollment_state:
            continue
        for candidate_id in rec_set.candidate_ids:
            if candidate_id in seen:
                continue
            seen.add(candidate_id)
            if candidate_id in enrollment_state or candidate_id not in catalog_ids:
                continue
            recommended.append(candidate_id)
    return recommended


def unrooted_course_ids(graph: Graph, forest: Iterable[RoadmapNode]) -> tuple[int, ...]:
    """Relevant course ids that appear in no tree of the forest, in catalog order."""
    reached: set[int] = set()
    stack = list(forest)
    while stack:
        node = stack.pop()
        reached.add(node.course_id)
        stack.extend(node.children)
    return tuple(course_id for course_id in graph.nodes_by_id if course_id not in reached)


def build_roadmap(
    courses: list[Course],
    enrollments: list[EnrollmentRecord],
    recommendation_sets: Iterable[RecommendationSet] = (),
) -> Roadmap:
    if not enrollments:
        return Roadmap()

    enrollment_state = index_enrollments(enrollments)
    catalog_ids = {course.id for course in courses}
    enrolled_ids = [record.course_id for record in enrollments if record.course_id in catalog_ids]
    recommended_ids = collect_recommended_ids(recommendation_sets, enrollment_state, catalog_ids)

    graph = build_dependency_graph(courses, enrolled_ids, recommended_ids)
    # Reclassification must finish before expansion: classification reads it.
    _, dependent_ids = reclassify_recommendations(graph, recommended_ids, enrolled_ids)

    forest = build_forest(graph, enrollment_state, dependent_ids)
    return Roadmap(
        forest=forest,
        paths=enumerate_paths(forest),
        unrooted_ids=unrooted_course_ids(graph, forest),
    )


def node_to_payload(node: RoadmapNode, include_children: bool = True) -> dict:
    course = node.course
    payload = {
        "course_id": course.id,
        "name": course.name,
        "difficulty": course.difficulty,
        "price": course.price,
        "is_published": course.is_published,
        "prerequisites": list(course.prerequisites),
        "is_completed": node.is_completed,
        "is_enrolled": node.is_enrolled,
        "is_recommended": node.is_recommended,
        "status": node.status,
        "completion": node.completion,
        "unmet_prerequisites": list(node.unmet_prerequisites),
    }
    if include_children:
        payload["children"] = [node_to_payload(child) for child in node.children]
    return payload


def roadmap_to_payload(roadmap: Roadmap) -> dict:
    return {
        "forest": [node_to_payload(root) for root in roadmap.forest],
        "paths": [
            [node_to_payload(node, include_children=False) for node in path]
            for path in roadmap.paths
        ],
        "unrooted_course_ids": list(roadmap.unrooted_ids),
    }
