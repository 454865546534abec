"""
Context assembly: reference entries and conversation history for prompts.

Lookups here never fail a request. Errors are logged and the caller gets
an empty context instead.
"""

import logging
from typing import Optional

from heritage_ai.config import GatewaySettings
from heritage_ai.store import HeritageStore

logger = logging.getLogger(__name__)

ELLIPSIS = "..."


def truncate(text: Optional[str], budget: int) -> str:
    """Cut ``text`` so the result, ellipsis included, fits in ``budget`` characters."""
    text = (text or "").strip()
    if len(text) <= budget:
        return text
    if budget <= len(ELLIPSIS):
        return text[:budget]
    return text[:budget - len(ELLIPSIS)].rstrip() + ELLIPSIS


def format_reference_block(
    entries: list[dict],
    description_budget: int = 200,
    cultural_context_budget: int = 150,
) -> str:
    """Render entries as a numbered block for the user prompt."""
    if not entries:
        return ""

    lines = ["Relevant cultural entries from your collection:"]
    for index, entry in enumerate(entries, start=1):
        lines.append(f"{index}. {entry.get('title', '')} ({entry.get('category') or 'Other'})")
        lines.append(f"   Description: {truncate(entry.get('description'), description_budget)}")
        if entry.get("cultural_context"):
            lines.append(
                f"   Cultural Context: {truncate(entry['cultural_context'], cultural_context_budget)}"
            )
        if entry.get("location_country"):
            lines.append(f"   Location: {entry['location_country']}")
    return "\n".join(lines)


class ContextAssembler:
    """Gathers reference entries and prior turns for a user."""

    def __init__(self, store: HeritageStore, settings: Optional[GatewaySettings] = None):
        self.store = store
        self.settings = settings or GatewaySettings()

    async def reference_context(self, owner_id: str, include: bool) -> str:
        """Context block built from the owner's own published entries."""
        if not include:
            return ""
        try:
            entries = await self.store.get_published_entries(
                owner_id, limit=self.settings.reference_limit
            )
        except Exception as e:
            logger.warning("Failed to fetch user entries for context: %s", e)
            return ""

        return format_reference_block(
            entries[:self.settings.reference_limit],
            description_budget=self.settings.description_budget,
            cultural_context_budget=self.settings.cultural_context_budget,
        )

    async def load_conversation(self, conversation_id: Optional[str], owner_id: str) -> Optional[dict]:
        """The conversation if it exists and belongs to ``owner_id``."""
        if not conversation_id:
            return None
        try:
            conversation = await self.store.get_conversation(conversation_id, owner_id)
        except Exception as e:
            logger.warning("Failed to load conversation %s: %s", conversation_id, e)
            return None
        if conversation and conversation.get("user_id") != owner_id:
            return None
        return conversation

    def history(self, conversation: Optional[dict]) -> list[dict]:
        """The last few messages of a conversation."""
        if not conversation:
            return []
        messages = conversation.get("messages") or []
        limit = self.settings.history_limit
        return [
            {"role": m["role"], "content": m["content"]}
            for m in messages[-limit:]
        ] if limit > 0 else []
