from typing import Container, Iterable, Mapping

from models import Course, EnrollmentRecord


def index_enrollments(enrollments: Iterable[EnrollmentRecord]) -> dict[int, EnrollmentRecord]:
    """course_id -> record. The last record wins if the caller passes duplicates."""
    return {record.course_id: record for record in enrollments}


def unmet_prerequisites(
    course: Course,
    enrollment_state: Mapping[int, EnrollmentRecord],
    catalog_ids: Container[int] | None = None,
) -> list[int]:
    """
    Prerequisite ids that still block the course.

    A prerequisite is met when it has no course record (outside the system) or
    its enrollment is completed. With catalog_ids=None every prerequisite is
    treated as an in-system course.
    """
    unmet: list[int] = []
    for prereq_id in course.prerequisites:
        if catalog_ids is not None and prereq_id not in catalog_ids:
            continue
        record = enrollment_state.get(prereq_id)
        if record is None or not record.is_completed:
            unmet.append(prereq_id)
    return unmet


def classify(
    course: Course,
    enrollment_state: Mapping[int, EnrollmentRecord],
    dependent_ids: Container[int],
    catalog_ids: Container[int] | None = None,
) -> dict:
    """
    Derive the display flags of one course for one learner.

    Returns:
      {
        "is_completed":   enrolled with completion >= 100,
        "is_enrolled":    any enrollment record exists,
        "is_recommended": not enrolled, published, and either reclassified as a
                          dependent course or every prerequisite is met
      }
    """
    record = enrollment_state.get(course.id)
    is_enrolled = record is not None
    is_completed = is_enrolled and record.is_completed

    is_recommended = False
    if not is_enrolled and course.is_published:
        is_recommended = (
            course.id in dependent_ids
            or not unmet_prerequisites(course, enrollment_state, catalog_ids)
        )

    return {
        "is_completed": is_completed,
        "is_enrolled": is_enrolled,
        "is_recommended": is_recommended,
    }
