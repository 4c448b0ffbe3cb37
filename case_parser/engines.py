"""Lazily initialised handles for external engines.

Engines (PyMuPDF, Tesseract, the transcription client) are loaded on first use
by an :class:`EngineHandle`. Loading happens at most once per handle, even
when many batch workers ask for it at the same time; a failed load is
remembered as ``None`` so callers can take their fallback path.
"""

import importlib
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from case_parser.config import OCRConfig, TranscriptionConfig
from case_parser.logger import get_logger

logger = get_logger(__name__)


class EngineHandle:
    """Single-init guard around an engine loader."""

    def __init__(self, name: str, loader: Callable[[], Any]):
        self.name = name
        self._loader = loader
        self._lock = threading.Lock()
        self._initialized = False
        self._engine: Optional[Any] = None

    @classmethod
    def of(cls, name: str, engine: Any) -> "EngineHandle":
        """Handle around an already constructed engine (or None for 'unavailable')."""
        return cls(name, lambda: engine)

    def get(self) -> Optional[Any]:
        """Return the engine, loading it on first call; None if it is unavailable."""
        if self._initialized:
            return self._engine

        with self._lock:
            if not self._initialized:
                try:
                    self._engine = self._loader()
                    if self._engine is not None:
                        logger.info("Engine ready", extra_data={"engine": self.name})
                    else:
                        logger.warning("Engine not configured", extra_data={"engine": self.name})
                except Exception as exc:
                    logger.error(
                        "Failed to load engine",
                        extra_data={
                            "engine": self.name,
                            "error_type": type(exc).__name__,
                            "error": str(exc),
                        },
                    )
                    self._engine = None
                self._initialized = True
        return self._engine

    @property
    def available(self) -> bool:
        return self.get() is not None


def load_pymupdf() -> Any:
    module = importlib.import_module("fitz")
    logger.debug(
        "Loaded PyMuPDF",
        extra_data={"version": getattr(module, "VersionBind", "unknown")},
    )
    return module


def make_tesseract_loader(config: OCRConfig) -> Callable[[], Any]:
    def load():
        import pytesseract

        if config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd
        if config.tessdata_prefix:
            os.environ["TESSDATA_PREFIX"] = config.tessdata_prefix

        version = pytesseract.get_tesseract_version()
        logger.debug("Tesseract available", extra_data={"version": version})
        return pytesseract

    return load


def make_openai_loader(config: TranscriptionConfig) -> Callable[[], Any]:
    def load():
        if not config.configured:
            return None

        from openai import OpenAI

        return OpenAI(api_key=config.api_key)

    return load


@dataclass
class Engines:
    """The set of engine handles injected into extractors."""

    pdf: EngineHandle
    tesseract: EngineHandle
    transcription: EngineHandle = field(repr=False)

    @classmethod
    def from_config(
        cls,
        ocr_config: Optional[OCRConfig] = None,
        transcription_config: Optional[TranscriptionConfig] = None,
    ) -> "Engines":
        return cls(
            pdf=EngineHandle("pymupdf", load_pymupdf),
            tesseract=EngineHandle("tesseract", make_tesseract_loader(ocr_config or OCRConfig())),
            transcription=EngineHandle(
                "openai-transcription",
                make_openai_loader(transcription_config or TranscriptionConfig()),
            ),
        )


_default_engines: Optional[Engines] = None
_default_lock = threading.Lock()


def get_default_engines() -> Engines:
    """Process-wide engine handles built from default configuration."""
    global _default_engines
    with _default_lock:
        if _default_engines is None:
            _default_engines = Engines.from_config()
        return _default_engines
