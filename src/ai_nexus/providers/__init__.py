"""Generation provider abstractions and implementations.

Provider classes live in their own modules (``gemini``, ``openai_compatible``,
``pollinations``, ``huggingface``, ``stability``, ``aihorde``) and are reached
through ``dispatcher.ProviderDispatcher``. Only the configuration models are
exported here, since the domain models depend on them.
"""

from .config_models import (
    ChatProviderConfig,
    ChatService,
    ImageProviderConfig,
    ImageService,
    SpeechProviderConfig,
)

__all__ = [
    "ChatProviderConfig",
    "ChatService",
    "ImageProviderConfig",
    "ImageService",
    "SpeechProviderConfig",
]
