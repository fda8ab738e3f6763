# utils/exceptions.py
from typing import Optional, Dict, Any


class FigureExtractorException(Exception):
    """Base exception for the figure extractor"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ImageLoadError(FigureExtractorException):
    """Page image is unreadable or empty"""
    pass


class OCRUnavailableError(FigureExtractorException):
    """OCR engine missing or failed to initialize"""
    pass


class ConversionError(FigureExtractorException):
    """External converter failed, timed out or is not installed"""
    pass


class ConfigurationError(FigureExtractorException):
    """Configuration error"""
    pass
