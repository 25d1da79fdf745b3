"""Pydantic schemas for request/response validation."""
from abexp.schemas.experiment import (
    ApiResponse,
    CreateExperimentBody,
    ErrorResponse,
    PatchExperimentBody,
)

__all__ = ["ApiResponse", "CreateExperimentBody", "ErrorResponse", "PatchExperimentBody"]
