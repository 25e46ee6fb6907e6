"""Recognition oracle interface and engine factory.

The pipeline treats the recognition engine as a black box: given one image
variant and a typed call configuration it returns a text + confidence
Candidate. Any object with a matching ``recognize`` method can be plugged in
(tests use a deterministic stub), and :func:`create_engine` builds the
configured production engine.

Example:
    >>> from src.ocr import create_engine, EngineCallConfig, PageSegMode
    >>> engine = create_engine(config.recognition)
    >>> candidate = engine.recognize(roi, EngineCallConfig(PageSegMode.SINGLE_LINE))
    >>> print(candidate.digits, candidate.confidence)
    '0424102470200259' 87.5
"""

import logging
from typing import Protocol, runtime_checkable

from src.common.config_loader import RecognitionConfig
from src.common.types import PixelBuffer

from .types import Candidate, EngineCallConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class RecognitionOracle(Protocol):
    """Anything that turns an image variant into a text Candidate.

    Implementations may be slow and may return empty text; the confidence
    they report is only used to rank candidates against each other.
    Implementations are called from worker threads and must not mutate the
    image they receive.
    """

    def recognize(self, image: PixelBuffer, config: EngineCallConfig) -> Candidate:
        ...


def create_engine(config: RecognitionConfig) -> RecognitionOracle:
    """Create the recognition engine named in the configuration.

    Args:
        config: Recognition configuration (``engine`` selects the backend).

    Returns:
        Initialized engine.

    Raises:
        ValueError: If the engine type is unknown.
        RuntimeError: If the engine backend is not installed.
    """
    engine_type = config.engine.strip().lower()
    if engine_type == "tesseract":
        from .engine_tesseract import TesseractEngine

        return TesseractEngine(lang=config.lang)

    raise ValueError(f"Unknown recognition engine: {config.engine!r}")
