__all__ = ["CompletionClient", "Message", "strip_reasoning", "EndpointChatModel"]

from .client import CompletionClient, Message, strip_reasoning
from .endpoint import EndpointChatModel
