# services/extractors/classification.py
from typing import Optional

import numpy as np
from loguru import logger

from figextract.config import ClassificationThresholds
from figextract.models.enums import Decision, DecisionReason
from figextract.models.schemas import ClassificationResult
from figextract.services.extractors.candidate_detector import FigureCandidate
from figextract.services.extractors.graphical_content import GraphicalContentDetector
from figextract.services.ocr.ocr_manager import OCREngine
from figextract.services.ocr.ocr_verifier import OCRVerifier


class ClassificationPolicy:
    """
    Accepts or rejects one candidate from its text density, edge density and
    (optionally) OCR. The first matching rule wins:

    1. density > high: keep only if the region also has graphical content
    2. density < low: keep
    3. density > pure-text cutoff: drop
    4. ambiguous band: drop if OCR confirms a text block, otherwise keep only
       with graphical content

    Candidates are independent of each other.
    """

    def __init__(self, thresholds: ClassificationThresholds = None,
                 graphics_detector: GraphicalContentDetector = None,
                 ocr_verifier: OCRVerifier = None):
        self.thresholds = thresholds or ClassificationThresholds()
        self.graphics_detector = graphics_detector or GraphicalContentDetector(self.thresholds)
        self.ocr_verifier = ocr_verifier or OCRVerifier(self.thresholds)

    def classify(self, candidate: FigureCandidate, image: np.ndarray,
                 engine: Optional[OCREngine] = None, use_ocr: bool = False) -> ClassificationResult:
        t = self.thresholds
        rows, cols = candidate.bbox.slices()
        region = image[rows, cols]
        density = candidate.text_density

        # computed once, shared by every branch
        has_graphics = self.graphics_detector.has_graphical_content(region)

        def result(decision: Decision, reason: DecisionReason, ocr=None) -> ClassificationResult:
            logger.debug(f"Candidate {candidate.bbox} density={density:.2f} -> {decision.value} ({reason.value})")
            return ClassificationResult(
                bbox=candidate.bbox, decision=decision, reason=reason,
                text_density=density, has_graphics=has_graphics, ocr=ocr,
            )

        if density > t.text_density_high:
            if has_graphics:
                return result(Decision.ACCEPT, DecisionReason.DENSE_WITH_GRAPHICS)
            return result(Decision.REJECT, DecisionReason.DENSE_TEXT)

        if density < t.text_density_low:
            return result(Decision.ACCEPT, DecisionReason.LOW_TEXT_DENSITY)

        if density > t.pure_text_density:
            return result(Decision.REJECT, DecisionReason.PURE_TEXT)

        ocr = None
        if use_ocr and engine is not None:
            is_text, ocr = self.ocr_verifier.is_text_block(region, engine)
            if is_text:
                return result(Decision.REJECT, DecisionReason.OCR_TEXT_BLOCK, ocr)

        if has_graphics:
            return result(Decision.ACCEPT, DecisionReason.GRAPHICAL_CONTENT, ocr)
        return result(Decision.REJECT, DecisionReason.NO_GRAPHICAL_CONTENT, ocr)
