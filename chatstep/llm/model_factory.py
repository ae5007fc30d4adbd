from __future__ import annotations

import os

from langchain_core.language_models.chat_models import BaseChatModel

from ..config import Profile
from .endpoint import DEFAULT_TIMEOUT, EndpointChatModel


FAKE_PREFIX = "fake:"


def is_fake_endpoint(endpoint: str) -> bool:
    return endpoint.lower().startswith(FAKE_PREFIX)


def get_chat_model(profile: Profile, *, timeout: float = DEFAULT_TIMEOUT) -> BaseChatModel:
    if is_fake_endpoint(profile.endpoint):
        from langchain_core.language_models.fake_chat_models import FakeListChatModel

        resp = os.environ.get("CHATSTEP_FAKE_RESPONSE", "OK")
        return FakeListChatModel(responses=[resp])
    return EndpointChatModel(
        endpoint=profile.endpoint,
        api_key=profile.api_key,
        model_name=profile.model_name,
        timeout=timeout,
    )
