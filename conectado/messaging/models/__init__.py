from conectado.messaging.models.conversation import Conversation
from conectado.messaging.models.message import Message, MessageType

__all__ = ["Conversation", "Message", "MessageType"]
