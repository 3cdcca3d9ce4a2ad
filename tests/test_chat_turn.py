"""Tests for the chat turn pipeline (no HTTP)."""

import pytest

from conftest import WEBHOOK_URL, FakeCompletion, make_settings
from models import ChatMessage, ChatRequest, LeadInfo
from services.chat_turn import ChatTurnHandler, build_system_prompt, window
from services.openai_client import MissingCredentialError, ProviderError


def make_history(n):
    roles = ["user", "assistant"]
    return [ChatMessage(role=roles[i % 2], content=f"message {i}") for i in range(n)]


# =============================================================================
# Windowing
# =============================================================================


class TestWindow:
    @pytest.mark.parametrize("n", [0, 1, 11, 12])
    def test_short_history_forwarded_whole(self, n):
        history = make_history(n)
        assert window(history, 12) == history

    def test_long_history_keeps_last_twelve(self):
        history = make_history(15)
        kept = window(history, 12)
        assert kept == history[3:]
        assert [m.content for m in kept][0] == "message 3"

    def test_zero_window(self):
        assert window(make_history(3), 0) == []


# =============================================================================
# Handler
# =============================================================================


class TestChatTurnHandler:
    def test_provider_receives_prompt_and_window(self):
        completion = FakeCompletion("ok")
        handler = ChatTurnHandler(make_settings(), completion)
        history = make_history(15)

        handler.handle(ChatRequest(messages=history))

        assert len(completion.calls) == 1
        call = completion.calls[0]
        assert call["messages"] == [m.model_dump() for m in history[3:]]
        assert call["system_prompt"] == build_system_prompt(make_settings().CALENDLY_LINK)
        assert call["model"] == "gpt-4o-mini"
        assert call["temperature"] == 0.4
        assert call["api_key"] == "sk-test"

    def test_window_size_is_configurable(self):
        completion = FakeCompletion("ok")
        handler = ChatTurnHandler(make_settings(HISTORY_WINDOW=2), completion)
        history = make_history(5)

        handler.handle(ChatRequest(messages=history))

        assert completion.calls[0]["messages"] == [m.model_dump() for m in history[3:]]

    def test_prompt_mentions_scheduling_link(self):
        prompt = build_system_prompt("https://calendly.com/someone/20min")
        assert "https://calendly.com/someone/20min" in prompt
        assert "discovery call" in prompt

    def test_reply_is_sanitized(self):
        completion = FakeCompletion("Let's talk: [book](https://calendly.com/m/30min)")
        result = ChatTurnHandler(make_settings(), completion).handle(ChatRequest())
        assert result.reply == "Let's talk: "

    def test_none_content_becomes_empty_reply(self):
        result = ChatTurnHandler(make_settings(), FakeCompletion(None)).handle(ChatRequest())
        assert result.reply == ""

    def test_missing_key_skips_provider(self):
        completion = FakeCompletion("never")
        handler = ChatTurnHandler(make_settings(OPENAI_API_KEY=None), completion)

        with pytest.raises(MissingCredentialError):
            handler.handle(ChatRequest(messages=make_history(1)))
        assert completion.calls == []

    def test_unexpected_provider_failure_is_wrapped(self):
        handler = ChatTurnHandler(make_settings(), FakeCompletion(error=TimeoutError("slow")))
        with pytest.raises(ProviderError):
            handler.handle(ChatRequest(messages=make_history(1)))


class TestLeadNotification:
    def test_email_in_reply_builds_notification(self):
        raw = "Great, we'll contact you at a@b.com. https://calendly.com/m/30min"
        handler = ChatTurnHandler(make_settings(LEAD_WEBHOOK_URL=WEBHOOK_URL), FakeCompletion(raw))

        result = handler.handle(ChatRequest(messages=make_history(1)))

        assert result.notification is not None
        wire = result.notification.to_wire()
        assert wire["source"] == "chatbot"
        assert wire["lead"] == {}
        assert wire["rawReply"] == raw
        assert wire["when"]
        assert "calendly.com" not in result.reply

    def test_caller_lead_email_builds_notification(self):
        handler = ChatTurnHandler(make_settings(LEAD_WEBHOOK_URL=WEBHOOK_URL), FakeCompletion("Thanks!"))
        lead = LeadInfo(name="Nino", email="nino@example.ge", budget="5k")

        result = handler.handle(ChatRequest(lead=lead))

        assert result.notification.lead == {"name": "Nino", "email": "nino@example.ge", "budget": "5k"}

    def test_no_webhook_no_notification(self):
        handler = ChatTurnHandler(make_settings(), FakeCompletion("write to a@b.com"))
        assert handler.handle(ChatRequest()).notification is None

    def test_no_signal_no_notification(self):
        handler = ChatTurnHandler(make_settings(LEAD_WEBHOOK_URL=WEBHOOK_URL), FakeCompletion("Hi!"))
        assert handler.handle(ChatRequest()).notification is None
