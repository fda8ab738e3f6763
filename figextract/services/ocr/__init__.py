"""OCR Package"""
from figextract.services.ocr.ocr_manager import OCREngine, OCRManager, TesseractEngine
from figextract.services.ocr.ocr_verifier import OCRVerifier

__all__ = [
    'OCREngine',
    'OCRManager',
    'TesseractEngine',
    'OCRVerifier'
]
