"""Academic calculator endpoints for the Student Hub API.

The calculators are stateless; request models already enforce the input
ranges, so a ``ValueError`` from the service layer indicates a combination
the models cannot express and is reported as a 400.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from student_hub.services.calculators import (
    Course,
    Semester,
    calculate_attendance,
    calculate_gpa,
    predict_cgpa,
    required_gpa,
)
from student_hub.web.api.exceptions import create_validation_error
from student_hub.web.api.schemas import (
    AttendanceRequest,
    AttendanceResponse,
    CGPAPredictRequest,
    CGPAPredictResponse,
    GPARequest,
    GPAResponse,
    RequiredGPARequest,
    RequiredGPAResponse,
)

router = APIRouter()


@router.post("/attendance", response_model=AttendanceResponse)
async def attendance(payload: AttendanceRequest, request: Request) -> AttendanceResponse:
    """Classes to attend, or that may be skipped, for a target attendance."""
    try:
        result = calculate_attendance(
            payload.total_classes,
            payload.attended_classes,
            payload.desired_percentage,
        )
    except ValueError as e:
        raise create_validation_error(str(e), request=request)

    return AttendanceResponse(
        current_percentage=result.current_percentage,
        desired_percentage=result.desired_percentage,
        classes_needed=result.classes_needed,
        classes_can_skip=result.classes_can_skip,
        meets_target=result.meets_target,
    )


@router.post("/gpa", response_model=GPAResponse)
async def gpa(payload: GPARequest, request: Request) -> GPAResponse:
    """Credit-weighted GPA of a list of courses."""
    try:
        result = calculate_gpa(
            Course(name=course.name, credits=course.credits, grade=course.grade)
            for course in payload.courses
        )
    except ValueError as e:
        raise create_validation_error(str(e), request=request)

    return GPAResponse(gpa=result.gpa, total_credits=result.total_credits)


@router.post("/cgpa/predict", response_model=CGPAPredictResponse)
async def cgpa_predict(payload: CGPAPredictRequest, request: Request) -> CGPAPredictResponse:
    """Predicted CGPA after further semesters."""
    try:
        result = predict_cgpa(
            payload.current_cgpa,
            payload.completed_credits,
            [Semester(credits=s.credits, gpa=s.gpa, name=s.name) for s in payload.semesters],
        )
    except ValueError as e:
        raise create_validation_error(str(e), request=request)

    return CGPAPredictResponse(
        predicted_cgpa=result.predicted_cgpa,
        total_credits=result.total_credits,
    )


@router.post("/cgpa/required", response_model=RequiredGPAResponse)
async def cgpa_required(payload: RequiredGPARequest, request: Request) -> RequiredGPAResponse:
    """GPA needed per remaining semester to reach a desired CGPA."""
    try:
        result = required_gpa(
            payload.current_cgpa,
            payload.completed_credits,
            payload.desired_cgpa,
            payload.remaining_semesters,
            payload.credits_per_semester,
        )
    except ValueError as e:
        raise create_validation_error(str(e), request=request)

    return RequiredGPAResponse(
        required_gpa=result.required_gpa,
        remaining_credits=result.remaining_credits,
        achievable=result.achievable,
    )
