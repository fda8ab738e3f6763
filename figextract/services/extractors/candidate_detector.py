# services/extractors/candidate_detector.py
from dataclasses import dataclass
from typing import List

import cv2
import numpy as np
from loguru import logger

from figextract.config import ClassificationThresholds
from figextract.models.schemas import BoundingBox
from figextract.services.extractors.text_density import TextDensityEstimator
from figextract.utils.helpers import to_grayscale


@dataclass(frozen=True)
class FigureCandidate:
    """Detected region awaiting classification"""
    bbox: BoundingBox      # padded box, clamped to the page
    text_density: float    # measured on the padded region
    area: float            # area of the unpadded box


class CandidateRegionDetector:
    """
    Finds geometrically plausible figure regions on a page image.

    Dark content is binarized with an adaptive threshold and dilated so that
    nearby ink merges into blobs; the bounding box of every external contour
    is a candidate unless it is too small, too thin or covers most of the page.
    """

    def __init__(self, thresholds: ClassificationThresholds = None,
                 density_estimator: TextDensityEstimator = None):
        self.thresholds = thresholds or ClassificationThresholds()
        self.density_estimator = density_estimator or TextDensityEstimator(self.thresholds)

    def detect(self, image: np.ndarray) -> List[FigureCandidate]:
        """Candidates ordered by descending (unpadded) area"""
        if image is None or image.size == 0:
            return []

        page_height, page_width = image.shape[:2]
        candidates: List[FigureCandidate] = []

        for bbox in self.find_boxes(image):
            padded = self.pad_box(bbox, page_width, page_height)
            rows, cols = padded.slices()
            density = self.density_estimator.estimate(image[rows, cols])
            candidates.append(FigureCandidate(bbox=padded, text_density=density, area=float(bbox.area)))

        # stable sort keeps contour order among equal areas
        candidates.sort(key=lambda c: c.area, reverse=True)
        logger.debug(f"Detected {len(candidates)} figure candidates on {page_width}x{page_height} page")
        return candidates

    def find_boxes(self, image: np.ndarray) -> List[BoundingBox]:
        """Bounding boxes of ink blobs that pass the size filters"""
        t = self.thresholds
        gray = to_grayscale(image)

        binary = cv2.adaptiveThreshold(
            gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY_INV,
            t.detector_block_size, t.detector_offset
        )
        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (t.dilate_kernel, t.dilate_kernel))
        binary = cv2.dilate(binary, kernel, iterations=t.dilate_iterations)

        contours, _ = cv2.findContours(binary, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        page_area = gray.shape[0] * gray.shape[1]
        min_area = page_area * t.min_area_fraction
        max_area = page_area * t.max_area_fraction

        boxes = []
        for contour in contours:
            x, y, w, h = cv2.boundingRect(contour)
            area = w * h
            if area < min_area or area > max_area:
                continue
            if w < t.min_width or h < t.min_height:
                continue
            boxes.append(BoundingBox(x=x, y=y, width=w, height=h))
        return boxes

    def pad_box(self, bbox: BoundingBox, page_width: int, page_height: int) -> BoundingBox:
        """Grow a box by the padding fraction on each side, clamped to the page"""
        pad_x = int(bbox.width * self.thresholds.padding_fraction)
        pad_y = int(bbox.height * self.thresholds.padding_fraction)

        x = max(0, bbox.x - pad_x)
        y = max(0, bbox.y - pad_y)
        width = min(bbox.width + 2 * pad_x, page_width - x)
        height = min(bbox.height + 2 * pad_y, page_height - y)

        return BoundingBox(x=x, y=y, width=width, height=height)
