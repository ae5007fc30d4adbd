from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_core.output_parsers import StrOutputParser

from ..config import Profile
from .endpoint import DEFAULT_TIMEOUT
from .model_factory import get_chat_model


THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)


def strip_reasoning(text: str) -> str:
    """Remove every `<think>...</think>` span and nothing else."""
    return THINK_RE.sub("", text)


@dataclass(frozen=True)
class Message:
    role: str  # "user" | "assistant"
    content: str

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role="assistant", content=content)

    def to_langchain(self) -> BaseMessage:
        if self.role == "user":
            return HumanMessage(content=self.content)
        if self.role == "assistant":
            return AIMessage(content=self.content)
        raise ValueError(f"Unsupported message role: {self.role}")


class CompletionClient:
    """Send a conversation to a profile's endpoint and return the reply text.

    - Supports supplying a ready `llm` for tests, used for every profile.
    - Otherwise a chat model is built per call from the profile.
    - Reasoning spans are stripped from the reply.
    """

    def __init__(
        self,
        llm: Optional[BaseChatModel] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._llm = llm
        self._timeout = timeout

    def _build_llm(self, profile: Profile) -> BaseChatModel:
        if self._llm is not None:
            return self._llm
        return get_chat_model(profile, timeout=self._timeout)

    def _build_chain(self, profile: Profile):
        return self._build_llm(profile) | StrOutputParser()

    def complete(self, conversation: Sequence[Message], profile: Profile) -> str:
        if not conversation:
            raise ValueError("conversation must contain at least one message")
        chain = self._build_chain(profile)
        reply = chain.invoke([m.to_langchain() for m in conversation])
        return strip_reasoning(reply.strip())
