import os

import pandas as pd

from models import Course, EnrollmentRecord
from validators import parse_course, parse_enrollment

COURSES_SHEET = "courses"
ENROLLMENTS_SHEET = "enrollments"
RECOMMENDATIONS_SHEET = "recommendations"

ENROLLMENT_COLUMNS = ["learner_id", "course_id", "completion", "last_accessed"]
RECOMMENDATION_COLUMNS = ["course_id", "recommended_course_id"]


def _read_sheets(data_path: str) -> dict[str, pd.DataFrame]:
    """Read every known sheet from a CSV directory or an xlsx workbook."""
    wanted = (COURSES_SHEET, ENROLLMENTS_SHEET, RECOMMENDATIONS_SHEET)
    if os.path.isdir(data_path):
        sheets = {}
        for name in wanted:
            path = os.path.join(data_path, f"{name}.csv")
            if os.path.isfile(path):
                sheets[name] = pd.read_csv(path)
        if COURSES_SHEET not in sheets:
            raise FileNotFoundError(os.path.join(data_path, f"{COURSES_SHEET}.csv"))
        return sheets

    xl = pd.ExcelFile(data_path)
    sheets = {name: xl.parse(name) for name in wanted if name in xl.sheet_names}
    if COURSES_SHEET not in sheets:
        raise ValueError(f"Workbook {data_path} has no '{COURSES_SHEET}' sheet.")
    return sheets


def learner_key(raw) -> str:
    """'u1' -> 'u1', 7 -> '7', 7.0 (spreadsheet export) -> '7'."""
    if raw is None or (isinstance(raw, float) and pd.isna(raw)):
        return ""
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return str(raw).strip()


def _records(df: pd.DataFrame) -> list[dict]:
    # object dtype so missing cells come through as None rather than NaN
    return df.astype(object).where(pd.notna(df), None).to_dict(orient="records")


def _parse_courses(courses_df: pd.DataFrame) -> list[Course]:
    courses: list[Course] = []
    seen: set[int] = set()
    rejected: list[str] = []
    duplicates: list[int] = []

    for i, row in enumerate(_records(courses_df)):
        try:
            course = parse_course(row)
        except ValueError as exc:
            rejected.append(f"row {i + 2}: {exc}")
            continue
        if course.id in seen:
            duplicates.append(course.id)
            continue
        seen.add(course.id)
        courses.append(course)

    if rejected:
        print(f"[WARN] Skipped {len(rejected)} invalid course row(s): {rejected}")
    if duplicates:
        print(f"[WARN] {len(duplicates)} duplicate course id(s) ignored (first row kept): {sorted(duplicates)}")
    return courses


def _parse_enrollments(enrollments_df: pd.DataFrame) -> dict[str, list[EnrollmentRecord]]:
    by_learner: dict[str, list[EnrollmentRecord]] = {}
    rejected: list[str] = []
    duplicates: list[str] = []

    for i, row in enumerate(_records(enrollments_df)):
        learner_id = learner_key(row.get("learner_id"))
        if not learner_id:
            rejected.append(f"row {i + 2}: 'learner_id' is required.")
            continue
        try:
            record = parse_enrollment(row)
        except ValueError as exc:
            rejected.append(f"row {i + 2}: {exc}")
            continue
        records = by_learner.setdefault(learner_id, [])
        if any(r.course_id == record.course_id for r in records):
            duplicates.append(f"{learner_id}/{record.course_id}")
            continue
        records.append(record)

    if rejected:
        print(f"[WARN] Skipped {len(rejected)} invalid enrollment row(s): {rejected}")
    if duplicates:
        print(f"[WARN] {len(duplicates)} duplicate enrollment(s) ignored (first row kept): {duplicates}")
    return by_learner


def load_data(data_path: str) -> dict:
    """Load the course catalog, enrollments and recommendation table. Raises on file/schema errors."""
    sheets = _read_sheets(data_path)

    courses_df = sheets[COURSES_SHEET]
    enrollments_df = sheets.get(ENROLLMENTS_SHEET, pd.DataFrame(columns=ENROLLMENT_COLUMNS))
    recommendations_df = sheets.get(RECOMMENDATIONS_SHEET, pd.DataFrame(columns=RECOMMENDATION_COLUMNS))

    if "course_id" not in courses_df.columns and "id" not in courses_df.columns:
        raise ValueError("courses sheet must have a 'course_id' column.")
    for col in ("learner_id", "course_id"):
        if col not in enrollments_df.columns:
            raise ValueError(f"enrollments sheet must have a '{col}' column.")
    for col in RECOMMENDATION_COLUMNS:
        if col not in recommendations_df.columns:
            raise ValueError(f"recommendations sheet must have a '{col}' column.")

    courses = _parse_courses(courses_df)
    catalog_ids = {course.id for course in courses}
    enrollments_by_learner = _parse_enrollments(enrollments_df)

    # ── Startup data integrity checks ──────────────────────────────────────
    dangling = sorted({
        prereq_id
        for course in courses
        for prereq_id in course.prerequisites
        if prereq_id not in catalog_ids
    })
    if dangling:
        print(f"[WARN] {len(dangling)} prerequisite id(s) not found in courses sheet (treated as outside the system): {dangling}")

    unknown_enrolled = sorted({
        record.course_id
        for records in enrollments_by_learner.values()
        for record in records
        if record.course_id not in catalog_ids
    })
    if unknown_enrolled:
        print(f"[WARN] {len(unknown_enrolled)} enrolled course id(s) not found in courses sheet: {unknown_enrolled}")

    return {
        "courses": courses,
        "recommendations_df": recommendations_df,
        "catalog_ids": catalog_ids,
        "enrollments_by_learner": enrollments_by_learner,
    }


def enrollments_for(data: dict, learner_id) -> list[EnrollmentRecord]:
    return list(data.get("enrollments_by_learner", {}).get(learner_key(learner_id), []))
