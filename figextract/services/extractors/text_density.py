# services/extractors/text_density.py
import cv2
import numpy as np

from figextract.config import ClassificationThresholds
from figextract.utils.helpers import to_grayscale


class TextDensityEstimator:
    """
    Scores how text-like a region is.

    The score is the number of glyph-sized connected components per
    10000 pixels of region area. It is not a probability: a page of body
    text at 200 dpi typically lands well above 10, a photograph or a plot
    with few labels below 2.
    """

    def __init__(self, thresholds: ClassificationThresholds = None):
        self.thresholds = thresholds or ClassificationThresholds()

    def estimate(self, region: np.ndarray) -> float:
        if region is None or region.size == 0:
            return 0.0

        t = self.thresholds
        gray = to_grayscale(region)
        pixel_count = gray.shape[0] * gray.shape[1]

        binary = cv2.adaptiveThreshold(
            gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY_INV,
            t.density_block_size, t.density_offset
        )
        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (t.close_kernel, t.close_kernel))
        binary = cv2.morphologyEx(binary, cv2.MORPH_CLOSE, kernel)

        count = self.count_text_components(binary)
        return count / pixel_count * t.density_scale

    def count_text_components(self, binary: np.ndarray) -> int:
        """Number of connected components with single glyph/word-fragment geometry"""
        t = self.thresholds
        num, _, stats, _ = cv2.connectedComponentsWithStats(binary, connectivity=8)
        if num <= 1:
            return 0

        # label 0 is the background
        widths = stats[1:, cv2.CC_STAT_WIDTH]
        heights = stats[1:, cv2.CC_STAT_HEIGHT]
        areas = stats[1:, cv2.CC_STAT_AREA]

        sized = (
            (heights > t.glyph_min_height) & (heights < t.glyph_max_height) &
            (widths > t.glyph_min_width) & (widths < t.glyph_max_width)
        )
        aspect = widths / np.maximum(heights, 1)
        shaped = (aspect > t.glyph_min_aspect) & (aspect < t.glyph_max_aspect) & (areas > t.glyph_min_area)

        return int(np.count_nonzero(sized & shaped))
