# models/enums.py
from enum import Enum


class DocumentType(str, Enum):
    """Input kinds recognised by the document converter"""
    PDF = "pdf"
    DJVU = "djvu"
    ZIP_CONTAINER = "zip_container"
    DOC_LEGACY = "doc_legacy"
    IMAGE_DIR = "image_dir"
    UNKNOWN = "unknown"


class Decision(str, Enum):
    """Outcome of classifying one candidate region"""
    ACCEPT = "accept"
    REJECT = "reject"


class DecisionReason(str, Enum):
    """Which branch of the classification cascade produced a decision"""
    DENSE_WITH_GRAPHICS = "dense_with_graphics"
    DENSE_TEXT = "dense_text"
    LOW_TEXT_DENSITY = "low_text_density"
    PURE_TEXT = "pure_text"
    OCR_TEXT_BLOCK = "ocr_text_block"
    GRAPHICAL_CONTENT = "graphical_content"
    NO_GRAPHICAL_CONTENT = "no_graphical_content"


class RunStatus(str, Enum):
    """Run lifecycle"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
