"""Upstream provider targets and vision-aware selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import Settings, is_placeholder_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderTarget:
    """Credential, endpoint, and model for one upstream chat provider."""

    name: str
    api_key: str
    url: str
    model: str

    def __repr__(self) -> str:
        return (
            f"ProviderTarget(name={self.name!r}, url={self.url!r}, "
            f"model={self.model!r})"
        )


@dataclass(frozen=True)
class ProviderRegistry:
    """Immutable provider configuration established once at startup.

    ``vision`` is None when no usable vision credential was configured.
    """

    text: ProviderTarget
    vision: Optional[ProviderTarget] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderRegistry":
        text = ProviderTarget(
            name="text",
            api_key=settings.text_api_key.get_secret_value(),
            url=settings.text_api_url,
            model=settings.text_model,
        )
        vision: Optional[ProviderTarget] = None
        if settings.vision_api_key is not None:
            vision = ProviderTarget(
                name="vision",
                api_key=settings.vision_api_key.get_secret_value(),
                url=settings.vision_api_url,
                model=settings.vision_model,
            )
        return cls(text=text, vision=vision)

    @property
    def vision_available(self) -> bool:
        return self.vision is not None and not is_placeholder_key(self.vision.api_key)


@dataclass(frozen=True)
class ProviderSelection:
    target: ProviderTarget
    has_image: bool


def select_provider(has_image: bool, providers: ProviderRegistry) -> ProviderSelection:
    """Pick the upstream for a conversation.

    Image conversations go to the vision provider when one is configured.
    Otherwise they degrade to the text provider with images treated as absent.
    """

    if not has_image:
        return ProviderSelection(target=providers.text, has_image=False)

    logger.info("Image detected, switching to vision model")
    if providers.vision is None or not providers.vision_available:
        logger.warning(
            "No vision API key configured; falling back to %s with text placeholders",
            providers.text.model,
        )
        return ProviderSelection(target=providers.text, has_image=False)

    return ProviderSelection(target=providers.vision, has_image=True)


__all__ = [
    "ProviderRegistry",
    "ProviderSelection",
    "ProviderTarget",
    "select_provider",
]
