"""Request ingestion helpers (Stage 01 of the conversation pipeline)."""

from __future__ import annotations

import logging
import mimetypes

from fastapi import HTTPException, UploadFile, status

from concierge.application.interfaces import SpeechToTextInterface

from .types import AudioInput

logger = logging.getLogger("concierge.pipelines.conversation")


class MissingInputError(ValueError):
    """Raised when a request carries neither text nor audio."""


def resolve_content_type(audio_file: UploadFile) -> str:
    """Accept any audio upload, guessing the type from the filename if unset."""

    content_type = audio_file.content_type
    if (not content_type or content_type == "application/octet-stream") and audio_file.filename:
        guessed_type, _ = mimetypes.guess_type(audio_file.filename)
        content_type = guessed_type or content_type

    content_type = content_type or "audio/webm"

    if not content_type.startswith("audio/") and content_type != "video/webm":
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Only audio uploads are supported",
        )
    return content_type


async def read_audio_bytes(audio_file: UploadFile) -> bytes:
    """Load the upload fully into memory, rejecting empty payloads."""

    audio_bytes = await audio_file.read()
    await audio_file.close()

    if not audio_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded audio file is empty",
        )
    return audio_bytes


async def resolve_utterance(
    text: str | None,
    audio: AudioInput | None,
    speech_to_text: SpeechToTextInterface,
) -> str:
    """Return the utterance, transcribing audio when it was provided."""

    if audio is not None and audio.data:
        transcript = await speech_to_text.transcribe(audio.data, audio.mime_type)
        logger.info("Transcribed %d bytes into %d chars", len(audio.data), len(transcript))
        if transcript.strip():
            return transcript.strip()
        raise MissingInputError("The audio did not contain any recognisable speech")

    if text and text.strip():
        return text.strip()

    raise MissingInputError("Either a text message or an audio recording is required")


__all__ = ["MissingInputError", "read_audio_bytes", "resolve_content_type", "resolve_utterance"]
