"""Student Hub services package.

This package contains stateless domain services shared by the API and the
client side: guest username generation and the academic calculators.
"""

from .calculators import (
    calculate_attendance,
    calculate_gpa,
    predict_cgpa,
    required_gpa,
)
from .username_generator import UsernameGenerator, generate_username

__all__ = [
    "UsernameGenerator",
    "calculate_attendance",
    "calculate_gpa",
    "generate_username",
    "predict_cgpa",
    "required_gpa",
]
