"""Speech-to-text for interviews, 911 calls and surveillance audio."""

from pathlib import Path
from typing import Optional

from case_parser.config import TranscriptionConfig
from case_parser.engines import EngineHandle, make_openai_loader
from case_parser.extractor import BaseExtractor
from case_parser.logger import Timer, get_logger
from case_parser.models import ExtractionMethod, ExtractionResult

logger = get_logger(__name__)


class AudioTranscriptionExtractor(BaseExtractor):
    """Delegates audio to the OpenAI transcription endpoint."""

    method = ExtractionMethod.TRANSCRIPTION
    failure_label = "Transcription failed"

    def __init__(self, client: Optional[EngineHandle] = None, config: Optional[TranscriptionConfig] = None):
        self.config = config or TranscriptionConfig()
        self.client = client or EngineHandle("openai-transcription", make_openai_loader(self.config))

    def _extract(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        client = self.client.get()
        if client is None:
            logger.warning("Transcription service not configured", extra_data={"file_name": file_name})
            return ExtractionResult(
                text="[Audio transcription requires OPENAI_API_KEY in environment variables]",
                method=self.method,
                confidence=0.0,
                error=(
                    "OPENAI_API_KEY is not configured. Add it to your environment "
                    "variables to enable audio transcription."
                ),
                needs_review=True,
            )

        with Timer("transcription") as timer:
            transcription = client.audio.transcriptions.create(
                file=(Path(file_name).name, file_bytes),
                model=self.config.model,
                language=self.config.language,
                response_format=self.config.response_format,
            )

        text = getattr(transcription, "text", "") or ""
        logger.info(
            "Audio transcription completed",
            extra_data={
                "file_name": file_name,
                "characters_extracted": len(text),
                "transcription_time_ms": timer.get_elapsed_ms(),
            },
        )

        return ExtractionResult(
            text=text,
            method=self.method,
            confidence=self.config.confidence,
            metadata={
                "duration": getattr(transcription, "duration", None),
                "language": getattr(transcription, "language", None),
            },
        )
