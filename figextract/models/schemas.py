# models/schemas.py
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import Decision, DecisionReason, DocumentType, RunStatus


class BoundingBox(BaseModel):
    """Axis-aligned box in pixel space"""
    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def x2(self) -> int:
        return self.x + self.width

    @property
    def y2(self) -> int:
        return self.y + self.height

    def slices(self):
        """Row/column slices for indexing a numpy image"""
        return slice(self.y, self.y2), slice(self.x, self.x2)


class OCRResult(BaseModel):
    """Text recognised in a region"""
    text: str = ""
    confidence: float = 0.0  # mean word confidence, 0-100
    word_count: int = 0


class ClassificationResult(BaseModel):
    """Decision for one candidate, with the signals that produced it"""
    bbox: BoundingBox
    decision: Decision
    reason: DecisionReason
    text_density: float
    has_graphics: bool
    ocr: Optional[OCRResult] = None

    @property
    def accepted(self) -> bool:
        return self.decision == Decision.ACCEPT


class ImageExtractionResult(BaseModel):
    """Outcome of the figure pipeline for one page image"""
    image_path: Path
    skipped: bool = False
    candidate_count: int = 0
    figure_paths: List[Path] = []
    ocr_used: bool = False


class DocumentExtractionResult(BaseModel):
    """Outcome for one input document or image directory"""
    source: Path
    document_type: DocumentType
    target_folder: Optional[Path] = None
    skipped: bool = False
    pages_rendered: bool = False
    images: List[ImageExtractionResult] = []
    errors: List[str] = []

    @property
    def figure_count(self) -> int:
        return sum(len(image.figure_paths) for image in self.images)


class RunSummary(BaseModel):
    """Totals for a complete run"""
    status: RunStatus = RunStatus.PENDING
    documents: List[DocumentExtractionResult] = []
    estimated_units: int = 0
    dispatched_units: int = 0
    completed_units: int = 0
    processing_time: float = 0.0

    @property
    def figure_count(self) -> int:
        return sum(document.figure_count for document in self.documents)

    @property
    def figure_paths(self) -> List[Path]:
        return [
            path
            for document in self.documents
            for image in document.images
            for path in image.figure_paths
        ]
