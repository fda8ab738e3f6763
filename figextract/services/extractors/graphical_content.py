# services/extractors/graphical_content.py
import cv2
import numpy as np

from figextract.config import ClassificationThresholds
from figextract.utils.helpers import to_grayscale


class GraphicalContentDetector:
    """Edge-density test for line art and photographic content"""

    def __init__(self, thresholds: ClassificationThresholds = None):
        self.thresholds = thresholds or ClassificationThresholds()

    def edge_density(self, region: np.ndarray) -> float:
        """Fraction of Canny edge pixels over the region area"""
        if region is None or region.size == 0:
            return 0.0

        gray = to_grayscale(region)
        edges = cv2.Canny(gray, self.thresholds.canny_low, self.thresholds.canny_high)
        return np.count_nonzero(edges) / edges.size

    def has_graphical_content(self, region: np.ndarray) -> bool:
        # Blank regions fall under the band, dense text and noise above it
        density = self.edge_density(region)
        return self.thresholds.edge_density_min < density < self.thresholds.edge_density_max
