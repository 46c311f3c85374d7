"""Text-to-speech for voice replies."""

from __future__ import annotations

import base64
import logging

from openai import AsyncOpenAI

from hybrid_memory.config import Settings, settings

logger = logging.getLogger(__name__)


class SpeechSynthesizer:
    """Turn a finished answer into base64-encoded audio.

    Parameters
    ----------
    client:
        Async OpenAI client.
    model:
        TTS model name.
    voice:
        Voice preset.
    """

    def __init__(self, client: AsyncOpenAI, *, model: str = "tts-1", voice: str = "alloy") -> None:
        self._client = client
        self.model = model
        self.voice = voice

    @classmethod
    def from_settings(cls, config: Settings = settings) -> SpeechSynthesizer:
        return cls(
            AsyncOpenAI(api_key=config.openai_api_key),
            model=config.tts_model,
            voice=config.tts_voice,
        )

    async def synthesize(self, text: str) -> str:
        """Return the spoken rendition of *text* as a base64 string (mp3)."""
        logger.info("Generating TTS for response (%d chars)", len(text))
        response = await self._client.audio.speech.create(
            model=self.model,
            voice=self.voice,
            input=text,
        )
        audio = response.content
        logger.info("TTS generated successfully (%d bytes)", len(audio))
        return base64.b64encode(audio).decode("ascii")
