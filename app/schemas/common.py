"""
Common schema pieces.

The React client speaks camelCase; Python code speaks snake_case. Every
response schema inherits CamelModel so fields are declared in snake_case
and serialized as camelCase (FastAPI dumps response models by alias).
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for request/response schemas exchanged with the web client."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,   # allow SheetOut(owner_email=...) in Python
        from_attributes=True,    # allow SheetOut.model_validate(orm_row)
    )


class MessageResponse(CamelModel):
    """Generic {"success": true, "message": "..."} response."""

    success: bool = True
    message: str
