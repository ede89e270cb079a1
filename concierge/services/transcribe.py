"""Speech-to-text over the Amazon Transcribe streaming API.

Uploaded clips (webm, ogg, mp4, wav...) are decoded by ``ffmpeg`` into
16-bit mono PCM, then paced into a streaming session. Only final
(non-partial) results make it into the transcript.
"""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
import tempfile

from amazon_transcribe.client import TranscribeStreamingClient
from amazon_transcribe.handlers import TranscriptResultStreamHandler
from amazon_transcribe.model import TranscriptEvent
from fastapi.concurrency import run_in_threadpool

from concierge.application.interfaces import SpeechToTextInterface
from concierge.config.settings import settings
from concierge.services.aws import resolve_aws_credentials

logger = logging.getLogger(__name__)

FRAME_BYTES = 8192


class TranscriptionError(RuntimeError):
    """Audio could not be decoded or the streaming session failed."""


def decode_to_pcm(audio_bytes: bytes, sample_rate_hz: int) -> bytes:
    """Run ffmpeg over a temp copy of the clip; containers like mp4 need seeking."""

    fd, source = tempfile.mkstemp(suffix=".audio")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(audio_bytes)
        command = [
            "ffmpeg", "-y", "-i", source,
            "-f", "s16le", "-ac", "1", "-ar", str(sample_rate_hz),
            "pipe:1",
        ]
        completed = subprocess.run(command, capture_output=True, check=True)
    except FileNotFoundError as exc:
        raise TranscriptionError("ffmpeg is not installed") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or b"").decode("utf-8", errors="replace").strip()
        logger.error("ffmpeg exited with %s: %s", exc.returncode, stderr)
        raise TranscriptionError(f"Could not decode audio: {stderr or 'no output'}") from exc
    finally:
        os.remove(source)
    return completed.stdout


class _FinalSegments(TranscriptResultStreamHandler):
    def __init__(self, output_stream) -> None:
        super().__init__(output_stream)
        self.segments: list[str] = []

    async def handle_transcript_event(self, transcript_event: TranscriptEvent) -> None:
        for result in transcript_event.transcript.results:
            if not result.is_partial and result.alternatives:
                self.segments.append(result.alternatives[0].transcript)

    @property
    def text(self) -> str:
        return " ".join(segment.strip() for segment in self.segments if segment.strip())


class TranscribeService(SpeechToTextInterface):
    def __init__(self, region: str, language_code: str = "en-US", sample_rate_hz: int = 16000) -> None:
        self.region = region
        self.language_code = language_code
        self.sample_rate_hz = sample_rate_hz
        self._client: TranscribeStreamingClient | None = None

    @property
    def client(self) -> TranscribeStreamingClient:
        if self._client is None:
            # The streaming SDK resolves credentials from the environment only.
            pair = resolve_aws_credentials()
            if pair:
                os.environ.setdefault("AWS_ACCESS_KEY_ID", pair[0])
                os.environ.setdefault("AWS_SECRET_ACCESS_KEY", pair[1])
            self._client = TranscribeStreamingClient(region=self.region)
        return self._client

    async def transcribe(self, audio_bytes: bytes, mime_type: str) -> str:
        if not audio_bytes:
            raise TranscriptionError("The uploaded audio file is empty.")

        logger.info("Transcribing %d bytes of %s (%s)", len(audio_bytes), mime_type, self.language_code)
        pcm = await run_in_threadpool(decode_to_pcm, audio_bytes, self.sample_rate_hz)
        if not pcm:
            raise TranscriptionError("Audio conversion produced no samples.")

        try:
            stream = await self.client.start_stream_transcription(
                language_code=self.language_code,
                media_sample_rate_hz=self.sample_rate_hz,
                media_encoding="pcm",
            )
        except Exception as exc:
            raise TranscriptionError(f"Could not open transcription stream: {exc}") from exc

        collector = _FinalSegments(stream.output_stream)
        # 2 bytes per sample, so one frame covers FRAME_BYTES / (rate * 2) seconds.
        frame_seconds = FRAME_BYTES / (self.sample_rate_hz * 2)

        async def send_frames() -> None:
            for start in range(0, len(pcm), FRAME_BYTES):
                await stream.input_stream.send_audio_event(audio_chunk=pcm[start : start + FRAME_BYTES])
                await asyncio.sleep(frame_seconds)
            await stream.input_stream.end_stream()

        try:
            await asyncio.gather(send_frames(), collector.handle_events())
        except Exception as exc:
            raise TranscriptionError(f"Streaming transcription failed: {exc}") from exc

        transcript = collector.text
        logger.info("Transcription finished with %d characters", len(transcript))
        return transcript


def create_transcribe_service() -> TranscribeService:
    config = settings.transcribe
    return TranscribeService(
        region=config.region,
        language_code=config.language_code,
        sample_rate_hz=config.media_sample_rate_hz,
    )
