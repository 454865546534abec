"""
AI routes: /ai/ask, /ai/tags, /ai/entries/{id}/*, /ai/status
"""

import logging

from fastapi import APIRouter, Depends

from heritage_ai.api.dependencies import get_current_user, get_gateway
from heritage_ai.api.models import AskRequest, Envelope, TagsRequest
from heritage_ai.services.gateway import CurrentUser, Gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["AI"])


@router.post("/ask")
async def ask_question(
    request: AskRequest,
    user: CurrentUser = Depends(get_current_user),
    gateway: Gateway = Depends(get_gateway),
):
    """
    Ask a cultural-heritage question.

    Omit ``conversationId`` to start a new conversation; pass the returned
    id to continue it. ``includeEntries`` adds up to five of the caller's
    published entries as context.
    """
    data = await gateway.ask(
        user,
        request.question,
        context=request.context,
        include_entries=request.include_entries,
        conversation_id=request.conversation_id,
        temperature=request.temperature,
        max_tokens=request.max_tokens,
    )
    return Envelope.ok(data)


@router.post("/entries/{entry_id}/suggestions")
async def entry_suggestions(
    entry_id: str,
    user: CurrentUser = Depends(get_current_user),
    gateway: Gateway = Depends(get_gateway),
):
    """Suggestions for enhancing an entry."""
    return Envelope.ok(await gateway.suggest_for_entry(entry_id, user))


@router.post("/tags")
async def generate_tags(
    request: TagsRequest,
    user: CurrentUser = Depends(get_current_user),
    gateway: Gateway = Depends(get_gateway),
):
    """Generate up to 15 tags for an entry's content."""
    data = await gateway.generate_tags(
        request.title,
        request.description,
        request.category,
        cultural_context=request.cultural_context,
        country=request.location.country if request.location else None,
    )
    return Envelope.ok(data)


@router.post("/entries/{entry_id}/analyze")
async def analyze_entry(
    entry_id: str,
    user: CurrentUser = Depends(get_current_user),
    gateway: Gateway = Depends(get_gateway),
):
    """Analyze the cultural significance of an entry."""
    return Envelope.ok(await gateway.analyze_significance(entry_id, user))


@router.get("/status")
async def service_status(gateway: Gateway = Depends(get_gateway)):
    """Report whether a provider is configured and which model it uses."""
    return Envelope.ok(gateway.status())
