from __future__ import annotations

import json
from typing import Any, List, Optional

import httpx
from langchain_core.callbacks import CallbackManagerForLLMRun
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import ConfigDict, Field

from ..errors import ConfigurationError, NetworkError, ProtocolError


# Sampling parameters sent with every request.
TEMPERATURE = 0.7
TOP_P = 0.7
MAX_TOKENS = 512
DEFAULT_TIMEOUT = 1200.0


def message_role(message: BaseMessage) -> str:
    if isinstance(message, HumanMessage):
        return "user"
    if isinstance(message, AIMessage):
        return "assistant"
    if isinstance(message, SystemMessage):
        return "system"
    raise ValueError(f"Unsupported message type: {type(message).__name__}")


def parse_reply(raw_body: str, status_code: Optional[int] = None) -> str:
    """Return the first choice's content from a chat-completions response body."""
    try:
        data = json.loads(raw_body)
    except ValueError as e:
        raise ProtocolError(f"response is not valid JSON: {e}", raw_body, status_code) from e
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices:
        raise ProtocolError("response contains no reply choices", raw_body, status_code)
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise ProtocolError("first choice has no message content", raw_body, status_code)
    return content


class EndpointChatModel(BaseChatModel):
    """Chat model for any endpoint speaking the chat-completions protocol.

    The profile's endpoint URL is used as-is (it already names the
    `/chat/completions` route). Transport failures surface as
    `NetworkError`; unusable bodies as `ProtocolError` with the raw body.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, protected_namespaces=())

    endpoint: str
    api_key: str = Field(repr=False)
    model_name: str
    temperature: float = TEMPERATURE
    top_p: float = TOP_P
    max_tokens: int = MAX_TOKENS
    timeout: float = DEFAULT_TIMEOUT
    # Tests plug an httpx.MockTransport in here.
    transport: Optional[httpx.BaseTransport] = Field(default=None, repr=False)

    @property
    def _llm_type(self) -> str:
        return "chatstep-endpoint"

    def build_payload(self, messages: List[BaseMessage]) -> dict[str, Any]:
        return {
            "model": self.model_name,
            "messages": [
                {"role": message_role(m), "content": m.content} for m in messages
            ],
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
        }

    def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                return client.post(self.endpoint, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"request to {self.endpoint} timed out after {self.timeout:g}s"
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(f"request to {self.endpoint} failed: {e}") from e
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"invalid endpoint URL {self.endpoint!r}: {e}") from e

    def _generate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> ChatResult:
        resp = self._post(self.build_payload(messages))
        content = parse_reply(resp.text, resp.status_code)
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=content))])
