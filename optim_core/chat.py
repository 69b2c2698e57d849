"""Conversational journal module."""

from __future__ import annotations

import logging
from typing import Any

from .module import BaseModule, DecodeResult, Record


class ChatInput(Record):
    query: str
    context: str = ""
    conversation_history: str = ""
    current_date: str = ""


class ChatOutput(Record):
    response: str = ""
    cited_dates: list[str] = []


CHAT_PROMPT = """You are a warm, empathetic AI assistant for JournAi, a personal journaling app. Help users reflect on their journal entries, understand patterns in their life, and provide supportive conversation.

CURRENT DATE: {{currentDate}}

CAPABILITIES:
You have access to:
- Structured insights extracted from journal entries (emotions, people, relationships)
- Full journal entry text for context
- Dates and timeline information
- Sentiment analysis and emotional intensity data

You can:
- Identify patterns across multiple entries (recurring themes, ongoing situations)
- Distinguish between systemic issues and isolated incidents
- Compare emotional intensity and frequency across different situations
- Trace how situations evolve over time
- Reference specific dates and provide evidence from journal entries"""


class ChatModule(BaseModule[ChatInput, ChatOutput]):
    id = "journal-chat"
    signature = "query, context, conversationHistory, currentDate -> response, citedDates"
    default_prompt = CHAT_PROMPT
    input_model = ChatInput
    output_model = ChatOutput
    # Plain-text replies are the normal case for chat.
    fallback_log_level = logging.DEBUG

    def format_user_message(self, record: ChatInput) -> str:
        message = f"Question: {record.query}"
        if record.context:
            message += f"\n\nJournal Context:\n{record.context}"
        if record.conversation_history:
            message += f"\n\nConversation History:\n{record.conversation_history}"
        return message

    def label_output(self, value: Any) -> ChatOutput:
        if isinstance(value, str):
            return ChatOutput(response=value)
        return super().label_output(value)

    def decode(self, content: str) -> DecodeResult[ChatOutput]:
        result = super().decode(content)
        if result.value.response:
            return result
        # No answer field in the decoded object: the whole completion is the answer.
        value = result.value.model_copy(update={"response": content})
        return DecodeResult(value, result.status, content)

    def default_output(self, content: str) -> ChatOutput:
        return ChatOutput(response=content, cited_dates=[])
