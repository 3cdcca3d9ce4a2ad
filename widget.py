# widget.py
"""
Client side of the chat: keeps the conversation, talks to /api/chat/ and
decides per message whether to show the "Book a Call" button.

`ChatWidget` is UI-agnostic. A front end hands in an `on_change` callback
(the message viewport) which is invoked whenever the history or the loading
flag changes; `run_terminal()` is the small console front end used for
local testing.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import httpx

from models import ChatMessage
from settings import Settings
from text_filters import DEFAULT_SCHEDULING_DOMAIN, clean_reply_for_display, suggests_call

logger = logging.getLogger("martivi-chat.widget")

CHAT_ENDPOINT = "/api/chat/"
CTA_LABEL = "📅 Book a Call"


@dataclass(frozen=True)
class RenderedMessage:
    role: str
    content: str
    align: str
    cta_url: Optional[str] = None


class ChatWidget:
    def __init__(self,
                 api_base: str = "",
                 calendly_link: str = "https://calendly.com/martividigital/30min",
                 scheduling_domain: str = DEFAULT_SCHEDULING_DOMAIN,
                 client: Optional[httpx.AsyncClient] = None,
                 on_change: Optional[Callable[["ChatWidget"], None]] = None):
        self.api_base = api_base.rstrip("/")
        self.calendly_link = calendly_link
        self.scheduling_domain = scheduling_domain
        self.client = client
        self.on_change = on_change

        self.is_open = False
        self.messages: List[ChatMessage] = []
        self.draft = ""
        self.loading = False

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "ChatWidget":
        return cls(
            api_base=settings.CHAT_API_BASE,
            calendly_link=settings.CALENDLY_LINK,
            scheduling_domain=settings.SCHEDULING_DOMAIN,
            **kwargs,
        )

    # ── state changes ───────────────────────────────────────

    def _changed(self) -> None:
        # auto-scroll: the viewport follows the newest content
        if self.on_change is not None:
            self.on_change(self)

    def _append(self, msg: ChatMessage) -> None:
        self.messages.append(msg)
        self._changed()

    def _set_loading(self, value: bool) -> None:
        self.loading = value
        self._changed()

    def toggle(self) -> bool:
        self.is_open = not self.is_open
        return self.is_open

    def type(self, text: str) -> None:
        self.draft = text

    async def handle_key(self, key: str) -> bool:
        if key == "Enter":
            return await self.send()
        return False

    # ── send ────────────────────────────────────────────────

    async def send(self) -> bool:
        """
        Send the draft. Returns True when a request went out.

        Blocked while a previous turn is still in flight; the draft is kept
        so the user can send it once the reply arrives.
        """
        if not self.draft.strip():
            return False
        if self.loading:
            logger.debug("[WIDGET] send ignored, request in flight")
            return False

        self._append(ChatMessage(role="user", content=self.draft))
        history = [m.model_dump() for m in self.messages]
        self.draft = ""
        self._set_loading(True)

        try:
            data = await self._post({"messages": history})
            raw_reply = data.get("reply") if isinstance(data, dict) else None
            if not isinstance(raw_reply, str):
                raise ValueError(f"no reply in response: {data!r}")
            cleaned = clean_reply_for_display(raw_reply, self.scheduling_domain)
            self._append(ChatMessage(role="assistant", content=cleaned))
        except (httpx.HTTPError, ValueError) as e:
            logger.error("[WIDGET][ERROR] %s", e)
        finally:
            self._set_loading(False)
        return True

    async def _post(self, body: dict):
        url = f"{self.api_base}{CHAT_ENDPOINT}"
        if self.client is not None:
            res = await self.client.post(url, json=body)
        else:
            async with httpx.AsyncClient(timeout=60) as c:
                res = await c.post(url, json=body)
        return res.json()

    # ── render ──────────────────────────────────────────────

    def render(self) -> List[RenderedMessage]:
        out = []
        for m in self.messages:
            is_bot = m.role == "assistant"
            out.append(RenderedMessage(
                role=m.role,
                content=m.content,
                align="left" if is_bot else "right",
                cta_url=self.calendly_link if is_bot and suggests_call(m.content) else None,
            ))
        return out


# ─────────────────────────────────────────────────────────────
# Terminal front end
# ─────────────────────────────────────────────────────────────

class TerminalViewport:
    """Prints whatever is new since the last change."""

    def __init__(self, print_fn: Callable[[str], None] = print):
        self.print_fn = print_fn
        self.shown = 0
        self.was_loading = False

    def __call__(self, widget: ChatWidget) -> None:
        rendered = widget.render()
        for r in rendered[self.shown:]:
            if r.role == "assistant":
                self.print_fn(f"assistant: {r.content}")
                if r.cta_url:
                    self.print_fn(f"  {CTA_LABEL}: {r.cta_url}")
        self.shown = len(rendered)
        if widget.loading and not self.was_loading:
            self.print_fn("assistant is typing…")
        self.was_loading = widget.loading


async def run_terminal(settings: Optional[Settings] = None) -> None:
    settings = settings or Settings()
    widget = ChatWidget.from_settings(settings, on_change=TerminalViewport())
    widget.toggle()
    print("MARTIVI CONSULTING — type a message, Ctrl-D to quit")
    while widget.is_open:
        try:
            line = await asyncio.to_thread(input, "you: ")
        except EOFError:
            widget.toggle()
            break
        widget.type(line)
        await widget.handle_key("Enter")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_terminal())
