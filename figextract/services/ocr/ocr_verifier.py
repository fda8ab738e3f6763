# services/ocr/ocr_verifier.py
from typing import Optional, Tuple

import numpy as np
from loguru import logger

from figextract.config import ClassificationThresholds
from figextract.models.schemas import OCRResult
from figextract.services.ocr.ocr_manager import OCREngine
from figextract.utils.helpers import to_grayscale


class OCRVerifier:
    """Decides whether a region is a paragraph of text"""

    def __init__(self, thresholds: ClassificationThresholds = None):
        self.thresholds = thresholds or ClassificationThresholds()

    def is_text_block(self, region: np.ndarray,
                      engine: Optional[OCREngine]) -> Tuple[bool, Optional[OCRResult]]:
        """
        True only when OCR is both confident and finds a substantial amount of
        words, so ambiguous regions lean towards being kept as figures.
        Without an engine nothing is recognised and the answer is False.
        """
        if engine is None:
            return False, None

        result = engine.recognize(to_grayscale(region))
        is_text = (result.confidence > self.thresholds.ocr_min_confidence and
                   result.word_count > self.thresholds.ocr_min_words)
        logger.debug(
            f"OCR confidence={result.confidence:.1f} words={result.word_count} -> "
            f"{'text block' if is_text else 'not text'}"
        )
        return is_text, result
