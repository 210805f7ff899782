"""
Conversations and messages between property owners and interested users.
"""

from typing import Any, Callable, Iterator, List, Optional
import logging
import queue

from ..models.schemas import Conversation, ConversationSummary, Message, Property
from .backend_client import BackendClient, Subscription

logger = logging.getLogger(__name__)


class MessageStream:
    """
    Iterable view of a conversation's incoming messages.

    Messages are queued as they arrive; iteration blocks until the next one
    or until ``close()`` is called.
    """

    _CLOSED = object()

    def __init__(self):
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._subscription: Optional[Subscription] = None
        self.closed = False

    def _attach(self, subscription: Subscription):
        self._subscription = subscription

    def _push(self, message: Message):
        if not self.closed:
            self._queue.put(message)

    def get(self, timeout: Optional[float] = None) -> Optional[Message]:
        """Next message, or None on timeout or after close."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        return None if item is self._CLOSED else item

    def close(self):
        """Unsubscribe and wake any blocked reader."""
        if self.closed:
            return
        self.closed = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
        self._queue.put(self._CLOSED)

    def __iter__(self) -> Iterator[Message]:
        while True:
            item = self._queue.get()
            if item is self._CLOSED:
                return
            yield item

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class MessagingService:
    """
    Chat between the owner of a property and an interested user.

    All persistence goes through the backend; new messages reach
    subscribers through the backend's realtime channel.
    """

    def __init__(self, backend: BackendClient):
        self._backend = backend

    def start_conversation(self, prop: Property, interested_id: str) -> Conversation:
        """
        Return the conversation about ``prop`` for this user, creating it if needed.

        Raises:
            ValueError: if the user owns the property or it has no owner
        """
        if not prop.user_id:
            raise ValueError("Property has no owner to contact")
        if prop.user_id == interested_id:
            raise ValueError("Cannot start a conversation about your own property")

        existing = self._backend.select(
            "conversations",
            {"property_id": prop.id, "interested_id": interested_id},
        )
        if existing:
            return Conversation.model_validate(existing[0])

        record = self._backend.insert("conversations", {
            "property_id": prop.id,
            "property_title": prop.title,
            "owner_id": prop.user_id,
            "interested_id": interested_id,
        })
        logger.info(f"Conversation {record['id']} opened on property {prop.id}")
        return Conversation.model_validate(record)

    def get_conversation(self, conversation_id: Any) -> Optional[Conversation]:
        record = self._backend.get("conversations", conversation_id)
        return Conversation.model_validate(record) if record else None

    def conversations_for_user(self, user_id: str) -> List[Conversation]:
        """Conversations where the user is owner or interested party."""
        rows = (
            self._backend.select("conversations", {"owner_id": user_id})
            + self._backend.select("conversations", {"interested_id": user_id})
        )
        seen = set()
        result = []
        for row in rows:
            if str(row["id"]) not in seen:
                seen.add(str(row["id"]))
                result.append(Conversation.model_validate(row))
        return result

    def inbox(self, user_id: str) -> List[ConversationSummary]:
        """The user's conversations with their last message and unread count."""
        summaries = []
        for conversation in self.conversations_for_user(user_id):
            messages = self.list_messages(conversation.id)
            summaries.append(ConversationSummary(
                **conversation.model_dump(),
                unread_count=self.unread_count(conversation.id, user_id),
                last_message=messages[-1].content if messages else None,
            ))
        return summaries

    def list_messages(self, conversation_id: Any) -> List[Message]:
        """Messages oldest first."""
        rows = self._backend.select(
            "messages", {"conversation_id": conversation_id}, order_by="created_at"
        )
        return [Message.model_validate(row) for row in rows]

    def send_message(self, conversation_id: Any, sender_id: str, content: str) -> Message:
        """
        Raises:
            ValueError: if the content is empty after trimming
        """
        text = (content or "").strip()
        if not text:
            raise ValueError("Message content cannot be empty")

        record = self._backend.insert("messages", {
            "conversation_id": conversation_id,
            "sender_id": sender_id,
            "content": text,
            "read": False,
        })
        return Message.model_validate(record)

    def mark_read(self, conversation_id: Any, reader_id: str) -> int:
        """
        Mark messages sent by the other party as read.

        Returns:
            Number of messages updated
        """
        updated = 0
        for row in self._backend.select("messages", {"conversation_id": conversation_id, "read": False}):
            if row.get("sender_id") != reader_id:
                self._backend.update("messages", row["id"], {"read": True})
                updated += 1
        return updated

    def unread_count(self, conversation_id: Any, reader_id: str) -> int:
        rows = self._backend.select("messages", {"conversation_id": conversation_id, "read": False})
        return sum(1 for row in rows if row.get("sender_id") != reader_id)

    def subscribe(self, conversation_id: Any, callback: Callable[[Message], None]) -> Subscription:
        """
        Call ``callback`` for each new message in the conversation.

        Returns:
            Subscription; ``unsubscribe()`` stops delivery
        """
        def handle(record):
            callback(Message.model_validate(record))

        return self._backend.subscribe("messages", handle, {"conversation_id": conversation_id})

    def stream(self, conversation_id: Any) -> MessageStream:
        """Open an iterable stream of new messages; close it to unsubscribe."""
        stream = MessageStream()
        stream._attach(self.subscribe(conversation_id, stream._push))
        return stream
