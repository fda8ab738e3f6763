# services/ocr/ocr_manager.py
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pytesseract
from loguru import logger
from PIL import Image

from figextract.config import Settings
from figextract.models.schemas import OCRResult
from figextract.utils.exceptions import OCRUnavailableError
from figextract.utils.helpers import count_words


class OCREngine(ABC):
    """
    One OCR engine instance. Instances hold per-call image state and must
    not be shared between concurrently running work units.
    """

    @abstractmethod
    def recognize(self, gray: np.ndarray) -> OCRResult:
        """Recognise text in a grayscale region"""
        pass

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class TesseractEngine(OCREngine):
    """Tesseract through pytesseract"""

    def __init__(self, language: str = "eng", page_segmentation_mode: int = 3, timeout: int = 30):
        self.language = language
        self.page_segmentation_mode = page_segmentation_mode
        self.timeout = timeout
        try:
            self.version = pytesseract.get_tesseract_version()
            available = pytesseract.get_languages(config="")
        except (pytesseract.TesseractNotFoundError, OSError, RuntimeError) as e:
            raise OCRUnavailableError(f"Tesseract not available: {e}") from e

        missing = [lang for lang in language.split("+") if lang not in available]
        if missing:
            raise OCRUnavailableError(
                f"Tesseract language data missing: {', '.join(missing)}",
                {"language": language, "available": available},
            )

    @property
    def config(self) -> str:
        return f"--psm {self.page_segmentation_mode}"

    def recognize(self, gray: np.ndarray) -> OCRResult:
        data = pytesseract.image_to_data(
            Image.fromarray(gray),
            lang=self.language,
            config=self.config,
            output_type=pytesseract.Output.DICT,
            timeout=self.timeout,
        )
        text, confidences = self._collect_words(data)
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return OCRResult(text=text, confidence=confidence, word_count=count_words(text))

    @staticmethod
    def _collect_words(data: Dict[str, List]) -> Tuple[str, List[float]]:
        """Rebuild line-broken text and the word confidences from image_to_data output"""
        lines: Dict[Tuple[int, int, int], List[str]] = {}
        confidences: List[float] = []

        for i, word in enumerate(data.get("text", [])):
            conf = float(data["conf"][i])
            if conf < 0:
                continue  # layout rows carry conf -1
            confidences.append(conf)
            word = (word or "").strip()
            if word:
                key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
                lines.setdefault(key, []).append(word)

        text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
        return text, confidences


class OCRManager:
    """
    Creates OCR engines for work units.

    Every classification unit asks for its own engine; a failed
    initialization disables OCR for that unit only.
    """

    def __init__(self, settings: Settings, engine_factory: Callable[[], OCREngine] = None):
        self.settings = settings
        self.engine_factory = engine_factory or self._tesseract_factory

    def _tesseract_factory(self) -> OCREngine:
        return TesseractEngine(
            language=self.settings.ocr_language,
            page_segmentation_mode=self.settings.ocr_page_segmentation_mode,
            timeout=self.settings.ocr_timeout,
        )

    def create_engine(self) -> Optional[OCREngine]:
        """New engine, or None when OCR is disabled or cannot start"""
        if not self.settings.use_ocr:
            return None
        try:
            return self.engine_factory()
        except OCRUnavailableError as e:
            logger.warning(f"OCR disabled for this unit: {e.message}")
            return None
