"""
Base schemas with standardized field types for consistent API responses.
"""

from pydantic import BaseModel, ConfigDict


class StandardizedModel(BaseModel):
    """Response base: ORM attributes in, enum values out."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True, populate_by_name=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class ErrorBody(StandardizedModel):
    code: str
    message: str
    details: dict = {}


class ErrorResponse(StandardizedModel):
    success: bool = False
    error: ErrorBody
