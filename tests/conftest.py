"""
Shared fixtures: synthetic page images and test doubles for OCR and
external commands.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence

import cv2
import numpy as np
import pytest

from figextract.config import Settings
from figextract.models.schemas import OCRResult
from figextract.services.converters.command_runner import CommandResult, CommandRunner
from figextract.services.ocr.ocr_manager import OCREngine

PAGE_HEIGHT = 1000
PAGE_WIDTH = 800


def blank_page(height: int = PAGE_HEIGHT, width: int = PAGE_WIDTH) -> np.ndarray:
    return np.full((height, width, 3), 255, dtype=np.uint8)


def blob_page(height: int = PAGE_HEIGHT, width: int = PAGE_WIDTH) -> np.ndarray:
    """One solid dark square covering 20% of the page"""
    page = blank_page(height, width)
    cv2.rectangle(page, (200, 300), (599, 699), (0, 0, 0), thickness=-1)
    return page


def text_page(height: int = PAGE_HEIGHT, width: int = PAGE_WIDTH) -> np.ndarray:
    """Dense body text from margin to margin"""
    page = blank_page(height, width)
    line = "lorem ipsum dolor sit amet consectetur adipiscing elit sed do eiusmod " * 2
    y = 30
    while y < height - 20:
        cv2.putText(page, line, (20, y), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 0), 1)
        y += 14
    return page


def paragraph_page(height: int = PAGE_HEIGHT, width: int = PAGE_WIDTH) -> np.ndarray:
    """A 600x400 block of body text, about 30% of the page, with blank margins"""
    block = blank_page(400, 600)
    line = "lorem ipsum dolor sit amet consectetur adipiscing elit sed do eiusmod " * 2
    for y in range(14, 396, 14):
        cv2.putText(block, line, (0, y), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 0), 1)
    page = blank_page(height, width)
    page[300:700, 100:700] = block
    return page


def write_image(path: Path, image: np.ndarray) -> Path:
    assert cv2.imwrite(str(path), image)
    return path


class FakeOCREngine(OCREngine):
    """Returns a fixed result and records how it was used"""

    def __init__(self, confidence: float = 0.0, words: int = 0):
        text = " ".join(["word"] * words)
        self.result = OCRResult(text=text, confidence=confidence, word_count=words)
        self.calls = 0
        self.closed = False

    def recognize(self, gray: np.ndarray) -> OCRResult:
        assert gray.ndim == 2
        self.calls += 1
        return self.result

    def close(self) -> None:
        self.closed = True


class FakeCommandRunner(CommandRunner):
    """
    Scripted command runner. ``responses`` maps the program name to the
    CommandResult it returns; ``available`` lists tools reported as installed.
    """

    def __init__(self, available: Sequence[str] = (), responses: Optional[Dict[str, CommandResult]] = None):
        self.available = set(available)
        self.responses = responses or {}
        self.calls: List[List[str]] = []

    def run(self, args, timeout=None) -> CommandResult:
        args = [str(arg) for arg in args]
        self.calls.append(args)
        return self.responses.get(args[0], CommandResult(args, 1))

    def is_available(self, tool: str) -> bool:
        return tool in self.available


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, log_file=None, use_ocr=False, max_workers=4)


@pytest.fixture
def page_dir(tmp_path) -> Path:
    """Blank page, page with one large blob, page of dense text"""
    folder = tmp_path / "pages"
    folder.mkdir()
    write_image(folder / "page1.png", blank_page())
    write_image(folder / "page2.png", blob_page())
    write_image(folder / "page3.png", text_page())
    return folder
