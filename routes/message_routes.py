# routes/message_routes.py

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from typing import List

from errors import StoreError
from models.schemas import Conversation, Message, MessageCreateBody
from security import SessionContext, get_profile_context, resolve_session_context
from app.services.messages import (
    get_conversations, get_message, get_thread, mark_message_as_read,
    send_message, stream_conversations, stream_thread
)
from app.services.users import get_user_profile

router = APIRouter()
logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008
INTERNAL_ERROR = 1011


@router.post("", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send(body: MessageCreateBody, context: SessionContext = Depends(get_profile_context)):
    if body.receiver_id == context.user.id:
        raise HTTPException(status_code=400, detail="Cannot send a message to yourself.")
    if not await get_user_profile(body.receiver_id):
        raise HTTPException(status_code=404, detail="Recipient not found.")

    message_id = await send_message(
        sender_id=context.user.id,
        receiver_id=body.receiver_id,
        content=body.content,
        appointment_id=body.appointment_id,
    )
    return await get_message(message_id)


@router.get("/conversations", response_model=List[Conversation])
async def list_conversations(context: SessionContext = Depends(get_profile_context)):
    return await get_conversations(context.user.id)


@router.get("/thread/{other_id}", response_model=List[Message])
async def get_conversation_thread(other_id: str, context: SessionContext = Depends(get_profile_context)):
    return await get_thread(context.user.id, other_id)


@router.post("/{message_id}/read")
async def mark_read(message_id: str, context: SessionContext = Depends(get_profile_context)):
    message = await get_message(message_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found.")
    if message.receiver_id != context.user.id:
        raise HTTPException(status_code=403, detail="Only the recipient can mark a message as read.")

    await mark_message_as_read(message_id)
    return {"message": "Marked as read."}


# --- LIVE SNAPSHOTS ---

async def _send_snapshots(websocket: WebSocket, snapshots):
    async for snapshot in snapshots:
        await websocket.send_json(jsonable_encoder(snapshot))


async def _wait_for_disconnect(websocket: WebSocket):
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def _pump(websocket: WebSocket, snapshots):
    """Sends every snapshot until the stream ends or fails, or the client leaves."""
    await websocket.accept()
    sender = asyncio.create_task(_send_snapshots(websocket, snapshots))
    listener = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        await asyncio.wait({sender, listener}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sender, listener):
            task.cancel()
        await asyncio.gather(sender, listener, return_exceptions=True)
        await snapshots.aclose()

    if not listener.cancelled():
        logger.info("Snapshot subscriber disconnected.")
        return

    error = sender.exception()
    if isinstance(error, WebSocketDisconnect):
        logger.info("Snapshot subscriber disconnected.")
    elif isinstance(error, StoreError):
        logger.error(f"Snapshot stream failed: {error.message}")
        await websocket.close(code=INTERNAL_ERROR)
    elif error is not None:
        raise error
    else:
        await websocket.close()


async def _socket_user_id(websocket: WebSocket):
    context = await resolve_session_context(websocket)
    if not context or context.profile is None:
        await websocket.close(code=POLICY_VIOLATION)
        return None
    return context.profile.id


@router.websocket("/ws/conversations")
async def conversations_socket(websocket: WebSocket):
    user_id = await _socket_user_id(websocket)
    if user_id:
        await _pump(websocket, stream_conversations(user_id))


@router.websocket("/ws/thread/{other_id}")
async def thread_socket(websocket: WebSocket, other_id: str):
    user_id = await _socket_user_id(websocket)
    if user_id:
        await _pump(websocket, stream_thread(user_id, other_id))
