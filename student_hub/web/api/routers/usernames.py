"""Guest username endpoint for the Student Hub API."""

from __future__ import annotations

from fastapi import APIRouter

from student_hub.services.username_generator import generate_username
from student_hub.web.api.schemas import UsernameResponse

router = APIRouter()


@router.get("/random", response_model=UsernameResponse)
async def random_username() -> UsernameResponse:
    """Generate a random guest display name."""
    return UsernameResponse(username=generate_username())
