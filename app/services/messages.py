# app/services/messages.py

import logging
from typing import AsyncIterator, Dict, List, Optional

from pymongo.errors import PyMongoError

from database import MESSAGES, get_collection, new_id
from errors import StoreError, store_operation
from models.schemas import Conversation, Message
from app.services.users import get_user_profiles

logger = logging.getLogger(__name__)


@store_operation("sending message")
async def send_message(sender_id: str, receiver_id: str, content: str,
                       appointment_id: Optional[str] = None) -> str:
    message_id = new_id()
    message = {
        "senderId": sender_id,
        "receiverId": receiver_id,
        "content": content,
        "read": False,
    }
    if appointment_id:
        message["appointmentId"] = appointment_id

    await get_collection(MESSAGES).update_one(
        {"_id": message_id},
        {"$setOnInsert": message, "$currentDate": {"timestamp": True}},
        upsert=True,
    )
    return message_id


@store_operation("getting message")
async def get_message(message_id: str) -> Optional[Message]:
    doc = await get_collection(MESSAGES).find_one({"_id": message_id})
    if doc:
        return Message.from_document(doc)
    return None


@store_operation("marking message as read")
async def mark_message_as_read(message_id: str):
    result = await get_collection(MESSAGES).update_one({"_id": message_id}, {"$set": {"read": True}})
    if result.matched_count == 0:
        raise StoreError.not_found("Message", message_id)


# --- Thread ---

def _in_pair(message: Message, user_id1: str, user_id2: str) -> bool:
    return ((message.sender_id == user_id1 and message.receiver_id == user_id2)
            or (message.sender_id == user_id2 and message.receiver_id == user_id1))


@store_operation("getting messages")
async def get_thread(user_id1: str, user_id2: str) -> List[Message]:
    """Messages exchanged between two users, oldest first."""
    participants = [user_id1, user_id2]
    cursor = get_collection(MESSAGES).find({
        "senderId": {"$in": participants},
        "receiverId": {"$in": participants},
    }).sort([("timestamp", 1), ("_id", 1)])

    messages = [Message.from_document(doc) for doc in await cursor.to_list(length=None)]
    # The store query also matches self-addressed messages; keep exact pairs only
    return [message for message in messages if _in_pair(message, user_id1, user_id2)]


# --- Conversations ---

def derive_conversations(messages: List[Message], viewer_id: str) -> List[Conversation]:
    """Groups messages by counterparty.

    `messages` must be ordered newest first: the first message seen for a
    counterparty is taken as the latest one.
    """
    groups: Dict[str, List[Message]] = {}
    for message in messages:
        if message.sender_id == viewer_id:
            other_id = message.receiver_id
        elif message.receiver_id == viewer_id:
            other_id = message.sender_id
        else:
            continue
        groups.setdefault(other_id, []).append(message)

    conversations = []
    for other_id, group in groups.items():
        last_message = group[0]
        conversations.append(Conversation(
            participant_id=other_id,
            last_message=last_message.content,
            timestamp=last_message.timestamp,
            unread=sum(1 for m in group if not m.read and m.receiver_id == viewer_id),
        ))
    return conversations


@store_operation("getting conversations")
async def get_conversations(user_id: str) -> List[Conversation]:
    cursor = get_collection(MESSAGES).find({
        "$or": [{"senderId": user_id}, {"receiverId": user_id}]
    }).sort([("timestamp", -1), ("_id", -1)])
    messages = [Message.from_document(doc) for doc in await cursor.to_list(length=None)]

    conversations = derive_conversations(messages, user_id)
    profiles = await get_user_profiles([c.participant_id for c in conversations])
    for conversation in conversations:
        profile = profiles.get(conversation.participant_id)
        conversation.participant_name = profile.name if profile else None
    return conversations


# --- Subscriptions ---

async def watch_changes(collection_name: str) -> AsyncIterator[dict]:
    """Yields change events of a collection (needs a replica set or sharded cluster)."""
    try:
        async with get_collection(collection_name).watch() as stream:
            async for change in stream:
                yield change
    except PyMongoError as e:
        logger.error(f"Error watching {collection_name}: {e}")
        raise StoreError.from_pymongo(e) from e


async def stream_conversations(user_id: str) -> AsyncIterator[List[Conversation]]:
    """Full conversation snapshot now and after every change to the messages collection."""
    yield await get_conversations(user_id)
    async for _ in watch_changes(MESSAGES):
        yield await get_conversations(user_id)


async def stream_thread(user_id1: str, user_id2: str) -> AsyncIterator[List[Message]]:
    yield await get_thread(user_id1, user_id2)
    async for _ in watch_changes(MESSAGES):
        yield await get_thread(user_id1, user_id2)
