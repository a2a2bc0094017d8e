"""Academic calculators for attendance, GPA and CGPA planning.

All functions are pure: they validate their inputs, compute a result and
return an immutable dataclass. Grades use the ten point scale.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

GRADE_POINTS: Mapping[str, int] = {
    "O": 10,
    "A+": 9,
    "A": 8,
    "B+": 7,
    "B": 6,
    "C": 5,
    "F": 0,
}

MAX_GRADE_POINT = 10.0
DEFAULT_DESIRED_ATTENDANCE = 75.0


@dataclass(frozen=True)
class AttendanceResult:
    """Outcome of an attendance calculation."""

    current_percentage: int
    desired_percentage: float
    classes_needed: int
    classes_can_skip: int

    @property
    def meets_target(self) -> bool:
        return self.classes_needed == 0


@dataclass(frozen=True)
class Course:
    name: str
    credits: float
    grade: str


@dataclass(frozen=True)
class GPAResult:
    gpa: float
    total_credits: float


@dataclass(frozen=True)
class Semester:
    credits: float
    gpa: float
    name: Optional[str] = None


@dataclass(frozen=True)
class CGPAPrediction:
    predicted_cgpa: float
    total_credits: float


@dataclass(frozen=True)
class RequiredGPAResult:
    required_gpa: float
    remaining_credits: float

    @property
    def achievable(self) -> bool:
        return self.required_gpa <= MAX_GRADE_POINT


def calculate_attendance(
    total_classes: int,
    attended_classes: int,
    desired_percentage: float = DEFAULT_DESIRED_ATTENDANCE
) -> AttendanceResult:
    """Work out how many classes must be attended or may be skipped.

    Attending x more classes reaches the target when
    ``(a + x) / (t + x) >= d / 100``; skipping x classes keeps it while
    ``a / (t + x) >= d / 100``.

    Args:
        total_classes: Classes held so far, at least one
        attended_classes: Classes attended, between 0 and total_classes
        desired_percentage: Target attendance, strictly between 0 and 100

    Returns:
        AttendanceResult: Current percentage and the two class counts

    Raises:
        ValueError: If any input is out of range
    """
    if total_classes < 1:
        raise ValueError("Total classes must be at least 1")
    if attended_classes < 0 or attended_classes > total_classes:
        raise ValueError("Attended classes must be between 0 and total classes")
    if not 0 < desired_percentage < 100:
        raise ValueError("Desired percentage must be between 0 and 100")

    t, a, d = total_classes, attended_classes, desired_percentage
    current = round(a / t * 100)

    needed = 0
    if d * t > 100 * a:
        needed = math.ceil((d * t - 100 * a) / (100 - d))

    can_skip = 0
    if d * t < 100 * a:
        can_skip = math.floor((100 * a - d * t) / d)

    return AttendanceResult(
        current_percentage=current,
        desired_percentage=d,
        classes_needed=max(needed, 0),
        classes_can_skip=max(can_skip, 0),
    )


def grade_point(grade: str) -> int:
    """Grade point for a letter grade (case-insensitive)."""
    try:
        return GRADE_POINTS[grade.strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown grade: {grade}") from None


def calculate_gpa(courses: Iterable[Course]) -> GPAResult:
    """Credit-weighted GPA of a set of courses, rounded to 2 decimals.

    An empty course list yields a GPA of 0.
    """
    total_credits = 0.0
    total_points = 0.0
    for course in courses:
        if course.credits <= 0:
            raise ValueError(f"Credits must be positive for course {course.name!r}")
        total_credits += course.credits
        total_points += course.credits * grade_point(course.grade)

    if total_credits == 0:
        return GPAResult(gpa=0.0, total_credits=0.0)
    return GPAResult(gpa=round(total_points / total_credits, 2), total_credits=total_credits)


def predict_cgpa(
    current_cgpa: float,
    completed_credits: float,
    semesters: Sequence[Semester]
) -> CGPAPrediction:
    """Predict the CGPA after the given semesters.

    Args:
        current_cgpa: CGPA over the completed credits
        completed_credits: Credits already counted in current_cgpa
        semesters: Further semesters with their credits and expected GPA

    Returns:
        CGPAPrediction: Credit-weighted CGPA rounded to 2 decimals
    """
    _check_grade_point("Current CGPA", current_cgpa)
    if completed_credits < 0:
        raise ValueError("Completed credits cannot be negative")

    total_credits = float(completed_credits)
    total_points = completed_credits * current_cgpa
    for semester in semesters:
        if semester.credits <= 0:
            raise ValueError("Semester credits must be positive")
        _check_grade_point("Semester GPA", semester.gpa)
        total_credits += semester.credits
        total_points += semester.credits * semester.gpa

    if not semesters or total_credits == 0:
        return CGPAPrediction(predicted_cgpa=round(current_cgpa, 2), total_credits=total_credits)
    return CGPAPrediction(predicted_cgpa=round(total_points / total_credits, 2), total_credits=total_credits)


def required_gpa(
    current_cgpa: float,
    completed_credits: float,
    desired_cgpa: float,
    remaining_semesters: int,
    credits_per_semester: float
) -> RequiredGPAResult:
    """GPA needed in every remaining semester to finish at ``desired_cgpa``.

    The result may exceed 10 (not achievable) or fall below 0 (already
    guaranteed); it is reported unclamped so callers can tell the two apart.
    """
    _check_grade_point("Current CGPA", current_cgpa)
    _check_grade_point("Desired CGPA", desired_cgpa)
    if completed_credits < 0:
        raise ValueError("Completed credits cannot be negative")
    if remaining_semesters < 1:
        raise ValueError("Remaining semesters must be at least 1")
    if credits_per_semester <= 0:
        raise ValueError("Credits per semester must be positive")

    remaining_credits = remaining_semesters * credits_per_semester
    final_credits = completed_credits + remaining_credits
    required = (desired_cgpa * final_credits - current_cgpa * completed_credits) / remaining_credits
    return RequiredGPAResult(required_gpa=round(required, 2), remaining_credits=remaining_credits)


def _check_grade_point(label: str, value: float) -> None:
    if not 0 <= value <= MAX_GRADE_POINT:
        raise ValueError(f"{label} must be between 0 and {MAX_GRADE_POINT:g}")
