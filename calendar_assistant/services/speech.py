"""Voice input/output around the conversation orchestrator."""

import re
from enum import StrEnum
from typing import Protocol

from calendar_assistant.services.conversation import ConversationOrchestrator, TurnInProgressError
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)

_BREAK_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]*>")


class SpeechRecognitionError(Exception):
    """Raised by recognizers when a transcription attempt fails."""


class SpeechRecognizer(Protocol):
    """Capability producing one transcript per call."""

    async def transcribe_once(self) -> str:
        """Listen for a single utterance and return its transcript."""
        ...


class SpeechSynthesizer(Protocol):
    """Capability reading text aloud."""

    @property
    def is_speaking(self) -> bool: ...

    async def speak(self, text: str) -> None: ...

    def cancel(self) -> None: ...


class InputMode(StrEnum):
    TEXT = "text"
    AUDIO = "audio"


def clean_for_speech(text: str) -> str:
    """Strip markup so it is not read aloud."""
    text = _BREAK_PATTERN.sub(" ", text)
    text = _TAG_PATTERN.sub("", text)
    return " ".join(text.split())


class VoiceInterface:
    """Binds a recognizer and a synthesizer to an orchestrator.

    Transcripts are submitted like typed input, so they obey the same
    one-turn-at-a-time rule. Replies are only spoken in audio mode.
    """

    def __init__(
        self,
        orchestrator: ConversationOrchestrator,
        recognizer: SpeechRecognizer,
        synthesizer: SpeechSynthesizer,
        mode: InputMode = InputMode.TEXT,
    ):
        self.orchestrator = orchestrator
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.mode = mode

    def set_mode(self, mode: InputMode) -> None:
        if mode == InputMode.TEXT and self.synthesizer.is_speaking:
            self.synthesizer.cancel()
        logger.info(f"Input mode set to {mode}")
        self.mode = mode

    async def listen_once(self) -> str | None:
        """Transcribe one utterance, submit it and deliver the reply.

        Returns:
            The assistant's reply, or None when nothing was heard

        Raises:
            TurnInProgressError: If a turn is already running
        """
        if self.orchestrator.is_busy:
            raise TurnInProgressError("Cannot listen while a turn is in progress")

        try:
            transcript = await self.recognizer.transcribe_once()
        except SpeechRecognitionError as e:
            logger.error(f"Speech recognition error: {e}", exc_info=True)
            return None

        if not transcript.strip():
            logger.debug("Empty transcript, nothing submitted")
            return None

        logger.info(f"Transcript: {transcript[:50]}")
        reply = await self.orchestrator.submit_user_turn(transcript)
        if reply:
            await self.deliver(reply)
        return reply

    async def deliver(self, text: str) -> bool:
        """Speak an assistant reply when in audio mode.

        Returns:
            True if the text was handed to the synthesizer
        """
        if self.mode != InputMode.AUDIO:
            return False

        if self.synthesizer.is_speaking:
            self.synthesizer.cancel()

        await self.synthesizer.speak(clean_for_speech(text))
        return True
