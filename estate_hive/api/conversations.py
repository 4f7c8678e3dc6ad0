"""
Conversations & Messages API Endpoints

CRUD, search and read-state endpoints consumed by the CRM inbox UI.
"""
from fastapi import APIRouter, HTTPException, Query, Depends, status
from typing import Optional
import logging

from estate_hive.auth.dependencies import get_current_user
from estate_hive.models.conversation import (
    Conversation,
    ConversationCreate,
    ConversationListResponse,
    ConversationStats,
    ConversationUpdate,
    Message,
    MessageCreate,
    MessageListResponse,
    Platform,
)
from estate_hive.models.user import User
from estate_hive.services.conversation_service import get_conversation_service
from estate_hive.services.exceptions import ConversationNotFoundError, ConversationStoreError
from estate_hive.services.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["conversations"])


# ============================================
# CONVERSATIONS
# ============================================

@router.get(
    "/conversations",
    response_model=ConversationListResponse,
    summary="List conversations",
    description="All conversations, most recent activity first"
)
async def list_conversations(
    platform: Optional[Platform] = Query(None, description="Filter by platform"),
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client)
):
    try:
        conversations = await get_conversation_service(supabase).list_conversations(platform)
        return ConversationListResponse(conversations=conversations, total=len(conversations))
    except ConversationStoreError as e:
        logger.error(f"Error fetching conversations: {e}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch conversations")


@router.get(
    "/conversations/search",
    response_model=ConversationListResponse,
    summary="Search conversations",
    description="Case-insensitive search on client name and Telegram username"
)
async def search_conversations(
    q: str = Query(..., min_length=1, description="Search term"),
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client)
):
    try:
        conversations = await get_conversation_service(supabase).search_conversations(q)
        return ConversationListResponse(conversations=conversations, total=len(conversations))
    except ConversationStoreError as e:
        logger.error(f"Error searching conversations: {e}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to search conversations")


@router.get(
    "/conversations/stats",
    response_model=ConversationStats,
    summary="Conversation stats",
    description="Totals per platform, unread messages and messages in the last 24 hours"
)
async def get_conversation_stats(
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client)
):
    try:
        return await get_conversation_service(supabase).get_conversation_stats()
    except ConversationStoreError as e:
        logger.error(f"Error fetching conversation stats: {e}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch conversation stats")


@router.get("/conversations/{conversation_id}", response_model=Conversation, summary="Get conversation")
async def get_conversation(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client)
):
    try:
        return await get_conversation_service(supabase).get_conversation(conversation_id)
    except ConversationNotFoundError as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(e))
    except ConversationStoreError as e:
        logger.error(f"Error fetching conversation {conversation_id}: {e}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch conversation")


@router.post(
    "/conversations",
    response_model=Conversation,
    status_code=status.HTTP_201_CREATED,
    summary="Create conversation"
)
async def create_conversation(
    data: ConversationCreate,
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client)
):
    try:
        return await get_conversation_service(supabase).create_conversation(data, current_user.user_id)
    except ConversationStoreError as e:
        logger.error(f"Error creating conversation: {e}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create conversation")


@router.put("/conversations/{conversation_id}", response_model=Conversation, summary="Update conversation")
async def update_conversation(
    conversation_id: int,
    updates: ConversationUpdate,
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client)
):
    try:
        return await get_conversation_service(supabase).update_conversation(conversation_id, updates)
    except ConversationNotFoundError as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(e))
    except ConversationStoreError as e:
        logger.error(f"Error updating conversation {conversation_id}: {e}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update conversation")


@router.delete(
    "/conversations/{conversation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete conversation"
)
async def delete_conversation(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client)
):
    try:
        await get_conversation_service(supabase).delete_conversation(conversation_id)
    except ConversationNotFoundError as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(e))
    except ConversationStoreError as e:
        logger.error(f"Error deleting conversation {conversation_id}: {e}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete conversation")


# ============================================
# MESSAGES
# ============================================

@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=MessageListResponse,
    summary="Get conversation messages",
    description="Messages of a conversation, oldest first"
)
async def get_conversation_messages(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client)
):
    try:
        messages = await get_conversation_service(supabase).get_messages(conversation_id)
        return MessageListResponse(messages=messages, total=len(messages))
    except ConversationStoreError as e:
        logger.error(f"Error fetching messages: {e}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch messages")


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=Message,
    status_code=status.HTTP_201_CREATED,
    summary="Record agent message",
    description="Store an agent message without sending it to a provider (use /telegram/send or /whatsapp/send to deliver)"
)
async def create_conversation_message(
    conversation_id: int,
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client)
):
    try:
        return await get_conversation_service(supabase).create_message(
            conversation_id, data.content, current_user.user_id
        )
    except ConversationNotFoundError as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(e))
    except ConversationStoreError as e:
        logger.error(f"Error creating message: {e}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create message")


@router.post(
    "/conversations/{conversation_id}/read",
    response_model=Conversation,
    summary="Mark conversation read",
    description="Mark client messages as read and reset the unread counter"
)
async def mark_conversation_read(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client)
):
    try:
        return await get_conversation_service(supabase).mark_messages_as_read(conversation_id)
    except ConversationNotFoundError as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(e))
    except ConversationStoreError as e:
        logger.error(f"Error marking conversation {conversation_id} read: {e}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to mark messages as read")


@router.get(
    "/messages/search",
    response_model=MessageListResponse,
    summary="Search messages",
    description="Case-insensitive search on message content, newest first"
)
async def search_messages(
    q: str = Query(..., min_length=1, description="Search term"),
    conversation_id: Optional[int] = Query(None, description="Restrict to one conversation"),
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client)
):
    try:
        messages = await get_conversation_service(supabase).search_messages(q, conversation_id)
        return MessageListResponse(messages=messages, total=len(messages))
    except ConversationStoreError as e:
        logger.error(f"Error searching messages: {e}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to search messages")
