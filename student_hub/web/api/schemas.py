"""Pydantic schemas for API request and response models.

This module defines all the request and response schemas used by the FastAPI
endpoints. Field names are snake_case in Python and camelCase on the wire;
requests accept either spelling.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, field_validator, field_serializer, model_validator
from pydantic.alias_generators import to_camel

from student_hub.services.calculators import GRADE_POINTS
from student_hub.web.models import (
    DiscussionCategory,
    DiscussionLikeEvent,
    ReplyVoteEvent,
)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with an explicit UTC offset; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class BaseAPIModel(BaseModel):
    """Base model for all API schemas with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        validate_assignment=True,
        arbitrary_types_allowed=False,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ============================================================================
# Chat Schemas
# ============================================================================

class ChatMessageResponse(BaseAPIModel):
    """A persisted chat message."""

    id: UUID = Field(description="Message ID")
    sender: str = Field(description="Display name of the sender")
    content: str = Field(description="Message text")
    created_at: datetime = Field(description="Server-assigned creation time")

    @field_serializer('created_at')
    def serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)


class UsernameResponse(BaseAPIModel):
    """A freshly generated guest name."""

    username: str = Field(description="Generated display name")


# ============================================================================
# Discussion Schemas
# ============================================================================

class DiscussionCreate(BaseAPIModel):
    """Request model for starting a discussion."""

    title: str = Field(min_length=1, max_length=200, description="Thread title")
    content: str = Field(min_length=1, description="Thread body")
    category: DiscussionCategory = Field(description="Forum category")
    guest_name: Optional[str] = Field(None, max_length=100, validate_default=True, description="Author display name")

    @field_validator('guest_name')
    @classmethod
    def default_guest_name(cls, v: Optional[str]) -> str:
        return v or "Anonymous"


class DiscussionCreateResponse(BaseAPIModel):
    """Response model for a created discussion."""

    id: UUID = Field(description="New discussion ID")


class ReplyCreate(BaseAPIModel):
    """Request model for replying to a discussion or to another reply."""

    content: str = Field(min_length=1, description="Reply body")
    guest_name: Optional[str] = Field(None, max_length=100, validate_default=True, description="Author display name")
    parent_reply_id: Optional[UUID] = Field(None, description="Reply being answered, if any")

    @field_validator('guest_name')
    @classmethod
    def default_guest_name(cls, v: Optional[str]) -> str:
        return v or "Anonymous"


class DiscussionLikeRequest(BaseAPIModel):
    """Request model for liking or unliking a discussion."""

    event: DiscussionLikeEvent = Field(description="like or unlike")


class ReplyVoteRequest(BaseAPIModel):
    """Request model for voting on a reply."""

    event: ReplyVoteEvent = Field(description="like, dislike or neutral")


class ReplyResponse(BaseAPIModel):
    """Response model for a single reply."""

    id: UUID = Field(description="Reply ID")
    content: str = Field(description="Reply body")
    guest_name: str = Field(description="Author display name")
    likes: int = Field(description="Signed vote counter")
    discussion_id: UUID = Field(description="Owning discussion ID")
    parent_reply_id: Optional[UUID] = Field(None, description="Parent reply ID")
    created_at: datetime = Field(description="Creation time")
    updated_at: datetime = Field(description="Last update time")

    @field_serializer('created_at', 'updated_at')
    def serialize_datetime(self, value: datetime) -> str:
        return format_timestamp(value)


class ReplyTreeNode(ReplyResponse):
    """A reply with its nested child replies."""

    child_replies: List[ReplyTreeNode] = Field(default_factory=list, description="Direct answers")


class DiscussionSummary(BaseAPIModel):
    """Discussion as shown in listings."""

    id: UUID = Field(description="Discussion ID")
    title: str = Field(description="Thread title")
    content: str = Field(description="Thread body")
    category: str = Field(description="Forum category")
    guest_name: str = Field(description="Author display name")
    likes: int = Field(description="Signed like counter")
    views: int = Field(description="View counter")
    reply_count: int = Field(0, description="Number of replies")
    created_at: datetime = Field(description="Creation time")
    updated_at: datetime = Field(description="Last update time")

    @field_serializer('created_at', 'updated_at')
    def serialize_datetime(self, value: datetime) -> str:
        return format_timestamp(value)


class DiscussionResponse(DiscussionSummary):
    """Discussion with its replies, both flat and as a forest."""

    replies: List[ReplyResponse] = Field(default_factory=list, description="Replies in creation order")
    reply_tree: List[ReplyTreeNode] = Field(default_factory=list, description="Replies nested by parent")


class CategoryStats(BaseAPIModel):
    """Thread and reply counts of one category."""

    threads: int = Field(ge=0, description="Number of discussions")
    messages: int = Field(ge=0, description="Number of replies across those discussions")


# ============================================================================
# Calculator Schemas
# ============================================================================

class AttendanceRequest(BaseAPIModel):
    total_classes: int = Field(ge=1, description="Classes held so far")
    attended_classes: int = Field(ge=0, description="Classes attended")
    desired_percentage: float = Field(75, ge=1, le=99, description="Target attendance percentage")

    @model_validator(mode='after')
    def check_attended(self) -> AttendanceRequest:
        if self.attended_classes > self.total_classes:
            raise ValueError("attendedClasses cannot exceed totalClasses")
        return self


class AttendanceResponse(BaseAPIModel):
    current_percentage: int = Field(description="Current attendance, rounded")
    desired_percentage: float = Field(description="Target attendance")
    classes_needed: int = Field(description="Consecutive classes to attend to reach the target")
    classes_can_skip: int = Field(description="Classes that may be missed while staying on target")
    meets_target: bool = Field(description="Whether the target is already met")


class CourseInput(BaseAPIModel):
    name: str = Field("", max_length=100, description="Course name")
    credits: float = Field(gt=0, description="Course credits")
    grade: str = Field(description="Letter grade: O, A+, A, B+, B, C or F")

    @field_validator('grade')
    @classmethod
    def validate_grade(cls, v: str) -> str:
        grade = v.upper()
        if grade not in GRADE_POINTS:
            raise ValueError(f"Grade must be one of: {', '.join(GRADE_POINTS)}")
        return grade


class GPARequest(BaseAPIModel):
    courses: List[CourseInput] = Field(default_factory=list, description="Courses of the semester")


class GPAResponse(BaseAPIModel):
    gpa: float = Field(description="Credit-weighted GPA")
    total_credits: float = Field(description="Sum of course credits")


class SemesterInput(BaseAPIModel):
    name: Optional[str] = Field(None, max_length=100, description="Semester label")
    credits: float = Field(gt=0, description="Semester credits")
    gpa: float = Field(ge=0, le=10, description="Semester GPA")


class CGPAPredictRequest(BaseAPIModel):
    current_cgpa: float = Field(ge=0, le=10, description="CGPA so far")
    completed_credits: float = Field(ge=0, description="Credits counted in the current CGPA")
    semesters: List[SemesterInput] = Field(default_factory=list, description="Further semesters")


class CGPAPredictResponse(BaseAPIModel):
    predicted_cgpa: float = Field(description="Predicted CGPA")
    total_credits: float = Field(description="Credits after all semesters")


class RequiredGPARequest(BaseAPIModel):
    current_cgpa: float = Field(ge=0, le=10, description="CGPA so far")
    completed_credits: float = Field(ge=0, description="Credits counted in the current CGPA")
    desired_cgpa: float = Field(ge=0, le=10, description="Target final CGPA")
    remaining_semesters: int = Field(ge=1, description="Semesters left")
    credits_per_semester: float = Field(gt=0, description="Credits in each remaining semester")


class RequiredGPAResponse(BaseAPIModel):
    required_gpa: float = Field(description="GPA needed in every remaining semester")
    remaining_credits: float = Field(description="Credits left")
    achievable: bool = Field(description="Whether the required GPA is at most 10")


# ============================================================================
# Error Response Schemas
# ============================================================================

class ErrorDetail(BaseAPIModel):
    """Individual error detail."""

    code: str = Field(description="Error code")
    message: str = Field(description="Human readable error message")
    field: Optional[str] = Field(None, description="Field that caused error")


class ErrorResponse(BaseAPIModel):
    """Standard error response format."""

    detail: str = Field(description="Main error message")
    type: str = Field(description="Error kind")
    errors: Optional[List[ErrorDetail]] = Field(None, description="Detailed error list")
    timestamp: datetime = Field(description="Error timestamp")
    request_id: Optional[str] = Field(None, description="Request ID for tracking")

    @field_serializer('timestamp')
    def serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)

    def to_content(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ValidationErrorResponse(ErrorResponse):
    """Validation error response format."""

    type: str = Field(default="validation_failed", description="Error kind")
    errors: List[ErrorDetail] = Field(description="Validation error details")


# ============================================================================
# Utility Response Schemas
# ============================================================================

class HealthResponse(BaseAPIModel):
    """Health check response."""

    status: str = Field(description="Service health status")
    version: str = Field(description="API version")
    timestamp: datetime = Field(description="Health check timestamp")

    @field_serializer('timestamp')
    def serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)
