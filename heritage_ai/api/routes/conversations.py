"""
Conversation routes: /ai/conversations, /ai/conversations/{id}
"""

import logging

from fastapi import APIRouter, Depends, Query

from heritage_ai.api.dependencies import get_current_user, get_gateway
from heritage_ai.api.models import Envelope
from heritage_ai.services.gateway import CurrentUser, Gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai/conversations", tags=["Conversations"])


@router.get("")
async def list_conversations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    gateway: Gateway = Depends(get_gateway),
):
    """
    List the caller's conversations, most recently updated first.
    """
    return Envelope.ok(await gateway.list_conversations(user, page=page, limit=limit))


@router.get("/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    user: CurrentUser = Depends(get_current_user),
    gateway: Gateway = Depends(get_gateway),
):
    """
    Get one of the caller's conversations with all messages.
    """
    return Envelope.ok(await gateway.get_conversation(conversation_id, user))


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    user: CurrentUser = Depends(get_current_user),
    gateway: Gateway = Depends(get_gateway),
):
    await gateway.delete_conversation(conversation_id, user)
    return Envelope.ok(message="Conversation deleted successfully")
