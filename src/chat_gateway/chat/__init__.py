"""Request transformation pipeline for the chat gateway."""

from .classifier import conversation_has_images
from .media import EncodedMedia, MediaReadError, MediaResolver
from .providers import ProviderRegistry, ProviderSelection, ProviderTarget, select_provider
from .rewriter import ContentRewriter

__all__ = [
    "ContentRewriter",
    "EncodedMedia",
    "MediaReadError",
    "MediaResolver",
    "ProviderRegistry",
    "ProviderSelection",
    "ProviderTarget",
    "conversation_has_images",
    "select_provider",
]
