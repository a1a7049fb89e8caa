"""
Typed inputs and outputs of the roadmap engine.

Courses, enrollments and recommendation sets arrive from external
collaborators and are validated into these types at the boundary
(see validators.py). Nothing here is persisted; nodes live for one
engine invocation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping

DIFFICULTIES = ("beginner", "intermediate", "advanced")

STATUS_LOCKED = "locked"
STATUS_RECOMMENDED = "recommended"
STATUS_ENROLLED = "enrolled"
STATUS_COMPLETED = "completed"

COMPLETE_PERCENT = 100.0


@dataclass(frozen=True)
class Course:
    id: int
    name: str
    description: str = ""
    difficulty: str = "beginner"
    price: float | None = None
    is_published: bool = True
    prerequisites: tuple[int, ...] = ()


@dataclass(frozen=True)
class EnrollmentRecord:
    course_id: int
    completion: float = 0.0
    last_accessed: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.completion >= COMPLETE_PERCENT


@dataclass(frozen=True)
class RecommendationSet:
    """Candidate course ids returned by the feed for one enrolled course."""

    for_course_id: int
    candidate_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class Graph:
    """
    Relevant-course lookup built once per invocation.

    nodes_by_id keeps catalog order. dependents_by_id maps each relevant
    course to the catalog courses that list it as a prerequisite, also in
    catalog order. Both are read-only views.
    """

    nodes_by_id: Mapping[int, Course]
    dependents_by_id: Mapping[int, tuple[int, ...]]

    def __contains__(self, course_id: int) -> bool:
        return course_id in self.nodes_by_id

    def dependents_of(self, course_id: int) -> tuple[int, ...]:
        return self.dependents_by_id.get(course_id, ())


@dataclass(frozen=True)
class RoadmapNode:
    course: Course
    is_completed: bool
    is_enrolled: bool
    is_recommended: bool
    completion: float = 0.0
    unmet_prerequisites: tuple[int, ...] = ()
    children: tuple["RoadmapNode", ...] = ()

    @property
    def course_id(self) -> int:
        return self.course.id

    @property
    def status(self) -> str:
        """Display state: locked -> recommended -> enrolled -> completed."""
        if self.is_completed:
            return STATUS_COMPLETED
        if self.is_enrolled:
            return STATUS_ENROLLED
        if self.is_recommended:
            return STATUS_RECOMMENDED
        return STATUS_LOCKED


@dataclass(frozen=True)
class Roadmap:
    """
    unrooted_ids lists relevant courses that no tree reaches, in catalog
    order. They are on, or depend on, a prerequisite cycle that no course
    outside the cycle leads into.
    """

    forest: tuple[RoadmapNode, ...] = ()
    paths: tuple[tuple[RoadmapNode, ...], ...] = field(default_factory=tuple)
    unrooted_ids: tuple[int, ...] = ()
