"""
Pure input-validation helpers: raw records -> engine model types.
No Flask or data-loader imports.

Every parser raises ValueError with a message naming the offending field.
Both the /roadmap endpoint and the data loader call these before anything
reaches the engine, so the engine itself never sees a half-formed record.
"""

import math
from datetime import datetime

from models import DIFFICULTIES, Course, EnrollmentRecord, RecommendationSet
from normalizer import coerce_bool, normalize_completion, normalize_course_id, normalize_id_list

_MISSING = object()


def _pick(raw: dict, *keys, default=_MISSING):
    """Return the first key present in raw (camelCase and snake_case both accepted)."""
    for key in keys:
        if key in raw:
            return raw[key]
    return default


def _is_blank(val) -> bool:
    if val is None:
        return True
    if isinstance(val, float) and math.isnan(val):
        return True
    return isinstance(val, str) and not val.strip()


def _require_id(raw: dict, label: str, *keys) -> int:
    val = _pick(raw, *keys, default=None)
    if _is_blank(val):
        raise ValueError(f"'{label}' is required.")
    course_id = normalize_course_id(val)
    if course_id is None:
        raise ValueError(f"'{label}' value {val!r} is not a valid course id.")
    return course_id


def _parse_price(val) -> float | None:
    if _is_blank(val):
        return None
    if isinstance(val, bool):
        raise ValueError("'price' must be a number or null.")
    try:
        price = float(val)
    except (TypeError, ValueError):
        raise ValueError(f"'price' value {val!r} must be a number or null.")
    if math.isnan(price):
        return None
    if price < 0:
        raise ValueError("'price' must not be negative.")
    return price


def _parse_timestamp(val) -> datetime | None:
    if _is_blank(val):
        return None
    if isinstance(val, datetime):
        return val
    try:
        return datetime.fromisoformat(str(val).strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"'last_accessed' value {val!r} is not an ISO timestamp.")


def parse_course(raw: dict) -> Course:
    if not isinstance(raw, dict):
        raise ValueError("Each course must be an object.")
    course_id = _require_id(raw, "id", "id", "course_id", "courseId")

    name = _pick(raw, "name", "title", default="")
    name = "" if _is_blank(name) else str(name).strip()

    description = _pick(raw, "description", default="")
    description = "" if _is_blank(description) else str(description)

    difficulty = _pick(raw, "difficulty", "difficulty_level", default=None)
    if _is_blank(difficulty):
        difficulty = DIFFICULTIES[0]
    difficulty = str(difficulty).strip().lower()
    if difficulty not in DIFFICULTIES:
        raise ValueError(
            f"Course {course_id}: 'difficulty' value {difficulty!r} must be one of {', '.join(DIFFICULTIES)}."
        )

    try:
        is_published = coerce_bool(_pick(raw, "is_published", "isPublished", "published", default=None), default=True)
    except ValueError:
        raise ValueError(f"Course {course_id}: 'is_published' must be a boolean.")

    prereq_result = normalize_id_list(_pick(raw, "prerequisites", "prereqs", default=None))
    if prereq_result["invalid"]:
        raise ValueError(
            f"Course {course_id}: invalid prerequisite id(s): {', '.join(prereq_result['invalid'])}."
        )
    # A self-reference carries no ordering information.
    prerequisites = tuple(p for p in prereq_result["valid"] if p != course_id)

    return Course(
        id=course_id,
        name=name,
        description=description,
        difficulty=difficulty,
        price=_parse_price(_pick(raw, "price", default=None)),
        is_published=is_published,
        prerequisites=prerequisites,
    )


def parse_enrollment(raw: dict) -> EnrollmentRecord:
    if not isinstance(raw, dict):
        raise ValueError("Each enrollment must be an object.")
    course_id = _require_id(raw, "course_id", "course_id", "courseId")

    completion_raw = _pick(raw, "completion", "progress", default=0)
    completion = 0.0 if _is_blank(completion_raw) else normalize_completion(completion_raw)
    if completion is None or math.isnan(completion) or not (0.0 <= completion <= 100.0):
        raise ValueError(
            f"Enrollment for course {course_id}: 'completion' must be a number between 0 and 100."
        )

    return EnrollmentRecord(
        course_id=course_id,
        completion=completion,
        last_accessed=_parse_timestamp(_pick(raw, "last_accessed", "lastAccess", "lastAccessed", default=None)),
    )


def parse_recommendation_set(raw: dict) -> RecommendationSet:
    if not isinstance(raw, dict):
        raise ValueError("Each recommendation set must be an object.")
    for_course_id = _require_id(
        raw, "for_course_id", "for_course_id", "forEnrolledCourseId", "for_enrolled_course_id"
    )
    candidates = normalize_id_list(
        _pick(raw, "candidate_ids", "candidateCourseIds", "candidate_course_ids", default=None)
    )
    if candidates["invalid"]:
        raise ValueError(
            f"Recommendations for course {for_course_id}: invalid candidate id(s): "
            f"{', '.join(candidates['invalid'])}."
        )
    return RecommendationSet(for_course_id=for_course_id, candidate_ids=tuple(candidates["valid"]))


def _parse_list(body: dict, key: str, parser) -> list:
    items = body.get(key)
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValueError(f"'{key}' must be a list.")
    return [parser(item) for item in items]


def parse_roadmap_body(body) -> tuple[list[Course], list[EnrollmentRecord], list[RecommendationSet]]:
    """
    Validate a /roadmap request body.

    Returns (courses, enrollments, recommendation_sets) in request order.
    Course ids must be unique, and a learner has at most one enrollment per course.
    """
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object.")

    courses = _parse_list(body, "courses", parse_course)
    enrollments = _parse_list(body, "enrollments", parse_enrollment)
    recommendation_sets = _parse_list(body, "recommendations", parse_recommendation_set)

    seen_courses: set[int] = set()
    for course in courses:
        if course.id in seen_courses:
            raise ValueError(f"Duplicate course id {course.id}.")
        seen_courses.add(course.id)

    seen_enrollments: set[int] = set()
    for record in enrollments:
        if record.course_id in seen_enrollments:
            raise ValueError(f"Duplicate enrollment for course {record.course_id}.")
        seen_enrollments.add(record.course_id)

    return courses, enrollments, recommendation_sets
