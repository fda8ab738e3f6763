# utils/__init__.py
"""Utilities Package"""
from figextract.utils.exceptions import *
from figextract.utils.helpers import *

__all__ = [
    'FigureExtractorException',
    'ImageLoadError',
    'OCRUnavailableError',
    'ConversionError',
    'ConfigurationError',
    'list_page_images',
    'load_image',
    'to_grayscale',
    'count_words',
    'ensure_directory'
]
