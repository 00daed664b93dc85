"""
FastAPI route: disaster-aware chat assistant.

    POST /api/v1/ai/chat  {"message": "...", "context": {...}}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.app.api.deps import get_chat_assistant
from backend.app.api.schemas import ChatRequest, ChatResponse
from backend.app.chat.assistant import ChatAssistant

router = APIRouter(prefix="/api/v1/ai", tags=["chat"])


@router.post("/chat", response_model=ChatResponse, summary="Ask the disaster-risk assistant")
async def chat(req: ChatRequest, assistant: ChatAssistant = Depends(get_chat_assistant)):
    context = req.context.model_dump(exclude_none=True) if req.context else None
    reply = await assistant.reply(req.message, context)
    return reply.to_dict()
