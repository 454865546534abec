"""
AI-related API models: ask, tag generation.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from heritage_ai.db import ENTRY_CATEGORIES


class AskRequest(BaseModel):
    """Request body for /ai/ask."""
    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(min_length=1, max_length=2000)
    context: Optional[str] = Field(default=None, max_length=2000)
    include_entries: bool = Field(default=False, alias="includeEntries")
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    # None defers to AI_TEMPERATURE / AI_MAX_TOKENS
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0, le=4000, alias="maxTokens")


class TagLocation(BaseModel):
    country: Optional[str] = Field(default=None, max_length=100)


class TagsRequest(BaseModel):
    """Request body for /ai/tags."""
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=5000)
    category: str
    cultural_context: Optional[str] = Field(default=None, max_length=2000, alias="culturalContext")
    location: Optional[TagLocation] = None

    @field_validator("category")
    @classmethod
    def category_is_known(cls, value: str) -> str:
        if value not in ENTRY_CATEGORIES:
            raise ValueError(
                f"Invalid category. Must be one of: {', '.join(ENTRY_CATEGORIES)}"
            )
        return value
