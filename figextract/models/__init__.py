"""Data Models Package"""
from figextract.models.schemas import *
from figextract.models.enums import *

__all__ = [
    'BoundingBox',
    'OCRResult',
    'ClassificationResult',
    'ImageExtractionResult',
    'DocumentExtractionResult',
    'RunSummary',
    'DocumentType',
    'Decision',
    'DecisionReason',
    'RunStatus'
]
