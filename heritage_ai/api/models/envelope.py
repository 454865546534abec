"""
Response envelope shared by every endpoint.
"""

from typing import Any, Optional

from pydantic import BaseModel


class FieldError(BaseModel):
    """One failed validation rule."""
    field: Optional[str] = None
    message: str


class Envelope(BaseModel):
    """``{success, data | message, errors?}``"""
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    errors: Optional[list[FieldError]] = None
    error: Optional[str] = None

    def to_body(self) -> dict:
        """Serialize, leaving out unset top-level keys."""
        return {k: v for k, v in self.model_dump().items() if v is not None}

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> dict:
        return cls(success=True, data=data, message=message).to_body()

    @classmethod
    def fail(
        cls,
        message: str,
        errors: Optional[list[dict]] = None,
        error: Optional[str] = None,
    ) -> dict:
        return cls(
            success=False,
            message=message,
            errors=[FieldError(**e) for e in errors] if errors else None,
            error=error,
        ).to_body()
