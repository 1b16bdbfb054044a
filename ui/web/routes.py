"""
Web Routes - HTTP bridge endpoints
==================================

This module defines the endpoints through which a chat bridge delivers
messages to the bot and inspects its actions.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from core.logging import get_logger
from rules.actions import ChatMode
from rules.store import PAGE_SIZE
from services.transport import ChatMessage

logger = get_logger("web.routes")

router = APIRouter()


class MessageIn(BaseModel):
    """An incoming chat message as delivered by the bridge."""
    chat_mode: ChatMode = ChatMode.CHANNEL
    text: str
    sender_name: str
    sender_uid: Optional[str] = None
    target: Optional[str] = None


class MessageResult(BaseModel):
    handled: bool
    response: Optional[str] = None
    rate_limited: bool = False


@router.post("/messages", response_model=MessageResult)
def post_message(message: MessageIn, request: Request):
    """
    Handle one incoming message.

    Requests are served on worker threads; the bot serializes them.
    """
    bot = request.app.state.bot
    if not bot.running:
        raise HTTPException(status_code=503, detail="Bot is not running")

    outcome = bot.handle_message(ChatMessage.from_dict(message.model_dump(mode="json")))

    if not bot.running:
        server = getattr(request.app.state, "server", None)
        if server is not None:
            server.should_exit = True

    if outcome is None:
        return MessageResult(handled=False)

    return MessageResult(
        handled=outcome.handled,
        response=outcome.reply.text if outcome.reply else None,
        rate_limited=outcome.rate_limited,
    )


@router.get("/actions")
def list_actions(request: Request, page: int = Query(1, ge=1)):
    """Page through the dynamically added actions."""
    store = request.app.state.bot.store
    return {
        "page": page,
        "pages": store.page_count(),
        "page_size": PAGE_SIZE,
        "actions": [
            {"trigger": trigger_text, "reaction": summary}
            for trigger_text, summary in store.list(page)
        ],
    }


@router.get("/health")
def health(request: Request):
    """Bot status and rule counts."""
    bot = request.app.state.bot
    store = bot.store
    return {
        "status": "running" if bot.running else "stopped",
        "name": bot.settings.name,
        "actions": {
            "static": len(store.static),
            "builtin": len(store.builtin),
            "dynamic": len(store.dynamic),
        },
        "rate_limit": bot.settings.rate_limit,
    }
