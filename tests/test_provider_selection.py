from __future__ import annotations

import logging

import pytest
from pydantic import SecretStr

from chat_gateway.chat.providers import ProviderRegistry, ProviderTarget, select_provider
from chat_gateway.config import is_placeholder_key


def test_text_conversation_uses_text_provider(make_settings):
    providers = ProviderRegistry.from_settings(make_settings())

    selection = select_provider(False, providers)

    assert selection.target is providers.text
    assert selection.target.model == "deepseek-chat"
    assert selection.has_image is False


def test_image_conversation_switches_to_vision(make_settings, caplog):
    providers = ProviderRegistry.from_settings(make_settings())

    with caplog.at_level(logging.INFO, logger="chat_gateway.chat.providers"):
        selection = select_provider(True, providers)

    assert selection.target.model == "vision-model"
    assert selection.target.url == "https://vision.example/chat/completions"
    assert selection.target.api_key == "vision-key"
    assert selection.has_image is True
    assert "switching to vision" in caplog.text


@pytest.mark.parametrize(
    "vision_key",
    [None, SecretStr(""), SecretStr("your_vision_api_key_here")],
)
def test_image_conversation_degrades_without_vision_key(
    make_settings, caplog, vision_key
):
    providers = ProviderRegistry.from_settings(make_settings(vision_api_key=vision_key))

    with caplog.at_level(logging.WARNING, logger="chat_gateway.chat.providers"):
        selection = select_provider(True, providers)

    assert selection.target is providers.text
    assert selection.has_image is False
    assert any(record.levelno == logging.WARNING for record in caplog.records)


def test_registry_is_immutable():
    target = ProviderTarget(name="text", api_key="k", url="https://t", model="m")
    registry = ProviderRegistry(text=target)

    with pytest.raises(AttributeError):
        registry.text = target  # type: ignore[misc]
    assert registry.vision_available is False


def test_target_repr_hides_key():
    target = ProviderTarget(name="text", api_key="secret", url="https://t", model="m")
    assert "secret" not in repr(target)


def test_placeholder_detection():
    assert is_placeholder_key(None)
    assert is_placeholder_key("   ")
    assert is_placeholder_key("your_key")
    assert not is_placeholder_key(SecretStr("sk-123"))
