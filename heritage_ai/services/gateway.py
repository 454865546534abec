"""
Gateway: orchestrates context assembly, text generation and persistence.

Q&A requests are conversational and persisted. Suggestions, tag generation
and significance analysis are single-shot and leave the store untouched
apart from reading the entry they describe.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from heritage_ai.config import GatewaySettings
from heritage_ai.services.context import ContextAssembler
from heritage_ai.db import utcnow
from heritage_ai.errors import (
    ForbiddenError,
    InternalError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationFailedError,
    from_provider_error,
)
from heritage_ai.llm import GenerationResult, ProviderError, TextGenerationProvider
from heritage_ai.prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    ASK_SYSTEM_PROMPT,
    SUGGESTIONS_SYSTEM_PROMPT,
    TAGS_SYSTEM_PROMPT,
    build_analysis_prompt,
    build_ask_prompt,
    build_suggestions_prompt,
    build_tags_prompt,
)
from heritage_ai.store import HeritageStore

logger = logging.getLogger(__name__)

MAX_TAGS = 15
MAX_TAG_LENGTH = 49
LAST_MESSAGE_PREVIEW = 100

# (temperature, max_tokens) for the single-shot variants
SUGGESTION_SAMPLING = (0.6, 1200)
TAG_SAMPLING = (0.5, 200)
ANALYSIS_SAMPLING = (0.7, 1500)

FEATURES = (
    "questionsAndAnswers",
    "conversationHistory",
    "entrySuggestions",
    "tagGeneration",
    "culturalAnalysis",
)


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated caller."""
    user_id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def parse_tags(text: Optional[str]) -> list[str]:
    """Split a comma-separated model reply into at most 15 clean tags."""
    tags = []
    for raw in (text or "").split(","):
        tag = raw.strip()
        if 0 < len(tag) <= MAX_TAG_LENGTH:
            tags.append(tag)
    return tags[:MAX_TAGS]


def _message(role: str, content: str) -> dict:
    return {"role": role, "content": content, "timestamp": utcnow()}


def _conversation_summary(conv: dict) -> dict:
    messages = conv.get("messages") or []
    last = messages[-1]["content"][:LAST_MESSAGE_PREVIEW] if messages else ""
    return {
        "id": conv["id"],
        "title": conv["title"],
        "createdAt": conv["created_at"],
        "updatedAt": conv["updated_at"],
        "messageCount": len(messages),
        "lastMessage": last,
    }


def _conversation_detail(conv: dict) -> dict:
    return {
        "id": conv["id"],
        "userId": conv["user_id"],
        "title": conv["title"],
        "messages": conv.get("messages") or [],
        "createdAt": conv["created_at"],
        "updatedAt": conv["updated_at"],
    }


class Gateway:
    """Provider-agnostic text generation with conversation persistence."""

    def __init__(
        self,
        provider: Optional[TextGenerationProvider],
        store: HeritageStore,
        settings: Optional[GatewaySettings] = None,
    ):
        self.provider = provider
        self.store = store
        self.settings = settings or GatewaySettings()
        self.assembler = ContextAssembler(store, self.settings)

    @property
    def available(self) -> bool:
        return self.provider is not None

    def _require_provider(self) -> TextGenerationProvider:
        if self.provider is None:
            raise ServiceUnavailableError("AI service not available. Please check configuration.")
        return self.provider

    def _describe(self) -> dict:
        if self.provider is None:
            return {"provider": "none", "model": "none"}
        return self.provider.describe()

    async def _generate(
        self,
        action: str,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> GenerationResult:
        provider = self._require_provider()
        try:
            return await provider.generate(
                system_prompt,
                user_prompt,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except ProviderError as e:
            raise from_provider_error(e, action) from e
        except ValueError as e:
            raise ValidationFailedError(errors=[{"message": str(e)}]) from e

    async def _accessible_entry(self, entry_id: str, user: CurrentUser) -> dict:
        entry = await self.store.get_entry(entry_id)
        if not entry:
            raise NotFoundError("Cultural entry not found")

        can_access = (
            entry.get("author_id") == user.user_id
            or entry.get("is_public")
            or user.is_admin
        )
        if not can_access:
            raise ForbiddenError("Access denied to this entry")
        return entry

    # =========================================================================
    # Generation
    # =========================================================================

    async def ask(
        self,
        user: CurrentUser,
        question: str,
        context: Optional[str] = None,
        include_entries: bool = False,
        conversation_id: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> dict:
        """
        Answer a cultural-heritage question and record the exchange.

        Sampling parameters left as None fall back to the provider's
        configured defaults.

        A ``conversation_id`` that does not exist or belongs to another
        user is ignored and a new conversation is started.

        Raises:
            ValidationFailedError: For a blank question.
            ServiceUnavailableError: When no provider is configured.
            InternalError: When the answer could not be saved.
        """
        question = (question or "").strip()
        if not question:
            raise ValidationFailedError(
                errors=[{"field": "question", "message": "Question cannot be empty"}]
            )
        self._require_provider()

        reference_block = await self.assembler.reference_context(
            user.user_id, include_entries
        )
        conversation = await self.assembler.load_conversation(
            conversation_id, user.user_id
        )
        history = self.assembler.history(conversation)

        user_prompt = build_ask_prompt(question, context, reference_block, history)
        result = await self._generate(
            "processing AI request",
            ASK_SYSTEM_PROMPT,
            user_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        answer = result.content

        exchange = [_message("user", question), _message("assistant", answer)]
        try:
            saved_id = None
            if conversation is not None:
                if await self.store.append_messages(conversation["id"], exchange):
                    saved_id = conversation["id"]
            if saved_id is None:
                created = await self.store.create_conversation(
                    user.user_id,
                    question[:self.settings.title_length],
                    exchange,
                )
                saved_id = created["id"]
        except Exception as e:
            # The generated answer is not returned on this path
            logger.error(
                "Failed to save conversation for user %s, discarding %d-char answer: %s",
                user.user_id, len(answer), e,
            )
            raise InternalError(
                "Internal server error while processing AI request", detail=str(e)
            ) from e

        return {
            "question": question,
            "answer": answer,
            "conversationId": saved_id,
            "timestamp": utcnow(),
            **self._describe(),
            "usage": {
                "prompt": result.usage.prompt,
                "completion": result.usage.completion,
                "total": result.usage.total,
            },
        }

    async def suggest_for_entry(self, entry_id: str, user: CurrentUser) -> dict:
        """Suggestions for improving an entry the caller can see."""
        self._require_provider()
        entry = await self._accessible_entry(entry_id, user)

        temperature, max_tokens = SUGGESTION_SAMPLING
        result = await self._generate(
            "generating suggestions",
            SUGGESTIONS_SYSTEM_PROMPT,
            build_suggestions_prompt(entry),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return {
            "entryId": entry_id,
            "entryTitle": entry.get("title"),
            "suggestions": result.content,
            "timestamp": utcnow(),
        }

    async def generate_tags(
        self,
        title: str,
        description: str,
        category: str,
        cultural_context: Optional[str] = None,
        country: Optional[str] = None,
    ) -> dict:
        """Tags for a draft entry that may not be saved yet."""
        self._require_provider()

        temperature, max_tokens = TAG_SAMPLING
        result = await self._generate(
            "generating tags",
            TAGS_SYSTEM_PROMPT,
            build_tags_prompt(
                title,
                description,
                category,
                cultural_context,
                country,
            ),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        tags = parse_tags(result.content)
        return {"tags": tags, "count": len(tags), "timestamp": utcnow()}

    async def analyze_significance(self, entry_id: str, user: CurrentUser) -> dict:
        """Cultural significance analysis of an entry the caller can see."""
        self._require_provider()
        entry = await self._accessible_entry(entry_id, user)

        temperature, max_tokens = ANALYSIS_SAMPLING
        result = await self._generate(
            "analyzing cultural significance",
            ANALYSIS_SYSTEM_PROMPT,
            build_analysis_prompt(entry),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return {
            "entryId": entry_id,
            "entryTitle": entry.get("title"),
            "analysis": result.content,
            "timestamp": utcnow(),
        }

    # =========================================================================
    # Conversations
    # =========================================================================

    async def list_conversations(self, user: CurrentUser, page: int = 1, limit: int = 20) -> dict:
        offset = (page - 1) * limit
        conversations = await self.store.list_conversations(user.user_id, limit=limit, offset=offset)
        total = await self.store.count_conversations(user.user_id)
        total_pages = math.ceil(total / limit) if limit else 0
        return {
            "conversations": [_conversation_summary(c) for c in conversations],
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "total": total,
                "hasNext": page < total_pages,
                "hasPrev": page > 1,
            },
        }

    async def get_conversation(self, conversation_id: str, user: CurrentUser) -> dict:
        conversation = await self.store.get_conversation(conversation_id, user.user_id)
        if not conversation:
            raise NotFoundError("Conversation not found")
        return {"conversation": _conversation_detail(conversation)}

    async def delete_conversation(self, conversation_id: str, user: CurrentUser) -> None:
        """Owners delete their own conversations; admins may delete any."""
        owner = None if user.is_admin else user.user_id
        deleted = await self.store.delete_conversation(conversation_id, owner)
        if not deleted:
            raise NotFoundError("Conversation not found")
        logger.info("Conversation %s deleted by %s", conversation_id, user.user_id)

    def status(self) -> dict:
        available = self.available
        return {
            "available": available,
            **self._describe(),
            "features": {name: available for name in FEATURES},
        }
