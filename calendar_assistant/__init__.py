"""Voice and text calendar assistant service."""

__version__ = "0.1.0"

from calendar_assistant.services.conversation import ConversationOrchestrator, TurnInProgressError  # noqa: E402
from calendar_assistant.services.speech import (  # noqa: E402
    InputMode,
    SpeechRecognitionError,
    SpeechRecognizer,
    SpeechSynthesizer,
    VoiceInterface,
)

__all__ = [
    "ConversationOrchestrator",
    "InputMode",
    "SpeechRecognitionError",
    "SpeechRecognizer",
    "SpeechSynthesizer",
    "TurnInProgressError",
    "VoiceInterface",
    "__version__",
]
