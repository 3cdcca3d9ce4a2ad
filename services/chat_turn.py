# services/chat_turn.py
"""
One chat turn: window the history, ask the model, clean the reply,
decide whether a lead notification is due.

The handler is built once with the process Settings; it keeps no state
between turns.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from models import ChatMessage, ChatRequest, LeadInfo, LeadNotification
from services.openai_client import MissingCredentialError, ProviderError, chat_completion
from settings import Settings
from text_filters import is_lead, strip_scheduling_links

logger = logging.getLogger("martivi-chat.turn")

CompletionFn = Callable[..., str]

LEAD_SOURCE = "chatbot"


def build_system_prompt(calendly_link: str) -> str:
    return (
        "You are MARTIVI CONSULTING's assistant.\n"
        "Goals:\n"
        "1) Understand the user's need in 2-3 short questions max.\n"
        "2) Explain services clearly, concise, in the user's language (English/Georgian).\n"
        f"3) Always offer: free 20-min discovery call ({calendly_link}), or leave contacts.\n"
        "4) If unsure, ask 1 clarifying question; do not invent facts.\n"
        "5) Collect lead fields when the user shows purchase intent:\n"
        "   - Full name, Email, Company (optional), Budget range, Timeline, Country.\n"
        "Tone: warm, expert, practical. Keep answers under 8 sentences unless asked."
    )


def window(messages: Sequence[ChatMessage], size: int) -> List[ChatMessage]:
    """Last `size` messages, oldest first."""
    if size <= 0:
        return []
    return list(messages[-size:])


def build_notification(raw_reply: str, lead: Optional[LeadInfo]) -> LeadNotification:
    return LeadNotification(
        source=LEAD_SOURCE,
        lead=lead.model_dump(exclude_none=True) if lead is not None else {},
        raw_reply=raw_reply,
        when=datetime.now(timezone.utc).isoformat(),
    )


@dataclass
class TurnResult:
    reply: str
    notification: Optional[LeadNotification] = None


class ChatTurnHandler:
    def __init__(self, settings: Settings, completion: CompletionFn = chat_completion):
        self.settings = settings
        self.completion = completion
        self.system_prompt = build_system_prompt(settings.CALENDLY_LINK)

    def handle(self, req: ChatRequest) -> TurnResult:
        s = self.settings
        if not s.OPENAI_API_KEY:
            raise MissingCredentialError("OPENAI_API_KEY missing")

        trimmed: List[Dict[str, str]] = [
            m.model_dump() for m in window(req.messages, s.HISTORY_WINDOW)
        ]
        try:
            raw = self.completion(
                messages=trimmed,
                system_prompt=self.system_prompt,
                model=s.MODEL_NAME,
                temperature=s.TEMPERATURE,
                api_key=s.OPENAI_API_KEY,
            ) or ""
        except (MissingCredentialError, ProviderError):
            raise
        except Exception as e:
            raise ProviderError(str(e)) from e

        reply = strip_scheduling_links(raw, s.SCHEDULING_DOMAIN)

        notification = None
        if is_lead(raw, req.lead):
            if s.LEAD_WEBHOOK_URL:
                notification = build_notification(raw, req.lead)
                logger.info("[LEAD] detected, webhook queued")
            else:
                logger.info("[LEAD] detected, no LEAD_WEBHOOK_URL configured")

        return TurnResult(reply=reply, notification=notification)
