"""
Tests for lazy engine handles.
"""

import threading
import time
from unittest.mock import Mock

from case_parser.config import TranscriptionConfig
from case_parser.engines import EngineHandle, Engines


class TestEngineHandle:

    def test_loads_once_under_contention(self):
        def slow_loader():
            time.sleep(0.05)
            return object()

        loader = Mock(side_effect=slow_loader)
        handle = EngineHandle("slow", loader)
        seen = []

        threads = [threading.Thread(target=lambda: seen.append(handle.get())) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        loader.assert_called_once()
        assert len({id(engine) for engine in seen}) == 1

    def test_failed_load_is_remembered(self):
        loader = Mock(side_effect=OSError("tesseract not found"))
        handle = EngineHandle("tesseract", loader)

        assert handle.get() is None
        assert handle.available is False
        loader.assert_called_once()

    def test_from_config_is_lazy(self):
        engines = Engines.from_config(transcription_config=TranscriptionConfig(api_key=None))
        assert engines.transcription.get() is None
