"""Conversations between renters, investors and homeowners."""

from __future__ import annotations

from typing import Any

from rentvest.core.endpoints.catalog import Backend
from rentvest.core.query.client import QueryOptions, QuerySubscription
from rentvest.core.query.keys import query_keys
from rentvest.core.services.base import ServiceBase
from rentvest.core.services.models import ChatMessage, SendMessageRequest

_chat = query_keys.chat


class ChatService(ServiceBase):
    backend = Backend.CHAT

    async def list_chats(self, options: QueryOptions | None = None) -> Any:
        return await self.read(_chat.lists(), self.request("list_chats"), options=options)

    def watch_messages(
        self, chat_id: str | int, options: QueryOptions | None = None
    ) -> QuerySubscription:
        request = self.request("messages", chat_id)
        return self.watch(_chat.messages(chat_id), request, options=options)

    async def messages(self, chat_id: str | int, options: QueryOptions | None = None) -> Any:
        request = self.request("messages", chat_id)
        return await self.read(_chat.messages(chat_id), request, options=options)

    async def send_message(self, chat_id: str | int, text: str) -> ChatMessage:
        """Post a message; the conversation and the chat list refetch."""
        payload = await self.write(
            "send_message",
            chat_id,
            data=SendMessageRequest(text=text),
            invalidates=(_chat.messages(chat_id), _chat.lists()),
        )
        return ChatMessage.model_validate(payload)
