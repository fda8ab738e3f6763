# services/extractors/figure_extractor.py
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np
from loguru import logger

from figextract.config import Settings
from figextract.models.schemas import ClassificationResult, ImageExtractionResult
from figextract.services.extractors.candidate_detector import CandidateRegionDetector, FigureCandidate
from figextract.services.extractors.classification import ClassificationPolicy
from figextract.services.ocr.ocr_manager import OCREngine, OCRManager
from figextract.utils.exceptions import ImageLoadError
from figextract.utils.helpers import ensure_directory, load_image


class FigureExtractor:
    """
    Per-image figure extraction: detect candidates, classify them and write
    every accepted region as its own PNG.

    Nothing here is fatal. An unreadable image is a skip, a failing candidate
    is a rejection, and an OCR engine that cannot start means the ambiguous
    band is decided by graphical content alone.
    """

    def __init__(self, settings: Settings, ocr_manager: OCRManager = None,
                 detector: CandidateRegionDetector = None,
                 policy: ClassificationPolicy = None):
        self.settings = settings
        self.thresholds = settings.thresholds
        self.ocr_manager = ocr_manager or OCRManager(settings)
        self.detector = detector or CandidateRegionDetector(self.thresholds)
        self.policy = policy or ClassificationPolicy(self.thresholds)

    def figures_dir(self, folder: Path) -> Path:
        return folder / self.settings.figures_dirname

    def extract_image(self, image_path: Path, output_dir: Optional[Path] = None) -> ImageExtractionResult:
        """
        Extract figures from one page image into ``output_dir`` (defaults to the
        figures folder next to the image). Files are named
        ``<image stem>_figure_<n>.png`` with n counting accepted candidates in
        detector order, starting at 1.
        """
        output_dir = output_dir or self.figures_dir(image_path.parent)

        try:
            image = load_image(image_path)
        except ImageLoadError as e:
            logger.warning(f"Skipping {image_path.name}: {e.message}")
            return ImageExtractionResult(image_path=image_path, skipped=True)
        ensure_directory(output_dir)

        try:
            candidates = self.detector.detect(image)
        except cv2.error as e:
            logger.error(f"Candidate detection failed for {image_path.name}: {e}")
            candidates = []

        result = ImageExtractionResult(image_path=image_path, candidate_count=len(candidates))
        if not candidates:
            return result

        # one engine per unit, never shared across threads
        engine = self.ocr_manager.create_engine()
        result.ocr_used = engine is not None
        try:
            accepted = self.select_figures(candidates, image, engine)
        finally:
            if engine is not None:
                engine.close()

        for index, decision in enumerate(accepted, start=1):
            path = output_dir / f"{image_path.stem}_figure_{index}.png"
            rows, cols = decision.bbox.slices()
            if cv2.imwrite(str(path), image[rows, cols]):
                result.figure_paths.append(path)
            else:
                logger.warning(f"Could not write figure {path}")

        logger.info(
            f"{image_path.name}: {len(candidates)} candidates, {len(result.figure_paths)} figures"
        )
        return result

    def select_figures(self, candidates: List[FigureCandidate], image: np.ndarray,
                       engine: Optional[OCREngine]) -> List[ClassificationResult]:
        """Accepted classifications, in candidate order"""
        accepted = []
        use_ocr = engine is not None
        for candidate in candidates:
            try:
                decision = self.policy.classify(candidate, image, engine=engine, use_ocr=use_ocr)
            except Exception as e:
                logger.warning(f"Rejecting candidate {candidate.bbox} after error: {e}")
                continue
            if decision.accepted:
                accepted.append(decision)
        return accepted
