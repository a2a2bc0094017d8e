"""Tests for the academic calculators."""

from __future__ import annotations

import pytest

from student_hub.services.calculators import (
    Course,
    Semester,
    calculate_attendance,
    calculate_gpa,
    grade_point,
    predict_cgpa,
    required_gpa,
)


class TestAttendance:
    """Test suite for calculate_attendance."""

    def test_classes_needed_below_target(self):
        """28 of 40 needs 8 more classes to reach 75%."""
        result = calculate_attendance(40, 28, 75)

        assert result.current_percentage == 70
        assert result.classes_needed == 8
        assert result.classes_can_skip == 0
        assert result.meets_target is False
        # 36 / 48 is exactly 75%
        assert (28 + result.classes_needed) / (40 + result.classes_needed) >= 0.75

    def test_classes_can_skip_above_target(self):
        """36 of 40 may skip 8 classes and stay at 75%."""
        result = calculate_attendance(40, 36, 75)

        assert result.current_percentage == 90
        assert result.classes_needed == 0
        assert result.classes_can_skip == 8
        assert result.meets_target is True
        assert 36 / (40 + result.classes_can_skip) >= 0.75
        assert 36 / (40 + result.classes_can_skip + 1) < 0.75

    def test_exactly_on_target(self):
        result = calculate_attendance(4, 3, 75)

        assert result.current_percentage == 75
        assert result.classes_needed == 0
        assert result.classes_can_skip == 0

    def test_default_target_is_75(self):
        assert calculate_attendance(10, 5).desired_percentage == 75

    def test_zero_attended(self):
        result = calculate_attendance(10, 0, 50)

        assert result.current_percentage == 0
        assert result.classes_needed == 10

    @pytest.mark.parametrize("total, attended, desired", [
        (0, 0, 75),
        (10, 11, 75),
        (10, -1, 75),
        (10, 5, 0),
        (10, 5, 100),
    ])
    def test_invalid_input(self, total, attended, desired):
        with pytest.raises(ValueError):
            calculate_attendance(total, attended, desired)


class TestGPA:
    """Test suite for GPA calculations."""

    def test_credit_weighted_gpa(self):
        result = calculate_gpa([
            Course(name="Mathematics", credits=4, grade="A"),
            Course(name="Physics", credits=3, grade="B+"),
        ])

        assert result.gpa == 7.57
        assert result.total_credits == 7

    def test_grades_are_case_insensitive(self):
        assert grade_point("a+") == 9
        assert grade_point(" o ") == 10

    def test_unknown_grade(self):
        with pytest.raises(ValueError):
            grade_point("Z")

    def test_empty_course_list(self):
        result = calculate_gpa([])

        assert result.gpa == 0.0
        assert result.total_credits == 0.0

    def test_non_positive_credits(self):
        with pytest.raises(ValueError):
            calculate_gpa([Course(name="Lab", credits=0, grade="A")])


class TestCGPA:
    """Test suite for CGPA prediction and planning."""

    def test_predict_cgpa(self):
        result = predict_cgpa(8.0, 60, [Semester(credits=20, gpa=9.0)])

        assert result.predicted_cgpa == 8.25
        assert result.total_credits == 80

    def test_predict_without_semesters_keeps_current(self):
        result = predict_cgpa(7.5, 40, [])

        assert result.predicted_cgpa == 7.5
        assert result.total_credits == 40

    def test_predict_rejects_out_of_range_gpa(self):
        with pytest.raises(ValueError):
            predict_cgpa(8.0, 60, [Semester(credits=20, gpa=11)])

    def test_required_gpa(self):
        result = required_gpa(7.5, 60, 8.0, 2, 20)

        assert result.required_gpa == 8.75
        assert result.remaining_credits == 40
        assert result.achievable is True

    def test_required_gpa_not_achievable(self):
        result = required_gpa(5.0, 60, 10.0, 2, 20)

        assert result.required_gpa == 17.5
        assert result.achievable is False

    def test_required_gpa_is_not_clamped_below_zero(self):
        result = required_gpa(9.0, 100, 5.0, 1, 10)

        assert result.required_gpa < 0
        assert result.achievable is True

    @pytest.mark.parametrize("kwargs", [
        {"remaining_semesters": 0},
        {"credits_per_semester": 0},
        {"completed_credits": -1},
        {"desired_cgpa": 10.5},
    ])
    def test_required_gpa_invalid_input(self, kwargs):
        arguments = {
            "current_cgpa": 7.0,
            "completed_credits": 60,
            "desired_cgpa": 8.0,
            "remaining_semesters": 2,
            "credits_per_semester": 20,
            **kwargs,
        }
        with pytest.raises(ValueError):
            required_gpa(**arguments)
