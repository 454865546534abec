"""
Pydantic models (schemas) for API request/response types.

All models are re-exported here for convenience:
    from heritage_ai.api.models import AskRequest, Envelope, ...
"""

from heritage_ai.api.models.ai import (
    AskRequest,
    TagLocation,
    TagsRequest,
)
from heritage_ai.api.models.envelope import (
    Envelope,
    FieldError,
)

__all__ = [
    "AskRequest",
    "TagLocation",
    "TagsRequest",
    "Envelope",
    "FieldError",
]
