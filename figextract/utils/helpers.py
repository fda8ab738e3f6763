# utils/helpers.py
from pathlib import Path
from typing import Iterable, List

import cv2
import numpy as np
from loguru import logger

from figextract.utils.exceptions import ImageLoadError


def list_page_images(folder: Path, extensions: Iterable[str]) -> List[Path]:
    """
    Page images directly inside ``folder``, sorted by name so that work is
    dispatched in a stable order
    """
    if not folder.is_dir():
        return []

    suffixes = {ext.lower() for ext in extensions}
    images = [
        path for path in folder.iterdir()
        if path.is_file() and path.suffix.lower() in suffixes
    ]
    return sorted(images, key=lambda p: p.name)


def load_image(image_path: Path) -> np.ndarray:
    """
    Read a page image as 3-channel BGR
    """
    image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if image is None or image.size == 0:
        raise ImageLoadError(f"Unreadable or empty image: {image_path}", {"path": str(image_path)})
    return image


def to_grayscale(region: np.ndarray) -> np.ndarray:
    """Grayscale view of a BGR, BGRA or already single-channel region"""
    if region.ndim == 2:
        return region
    channels = region.shape[2]
    if channels == 1:
        return region[:, :, 0]
    if channels == 4:
        return cv2.cvtColor(region, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(region, cv2.COLOR_BGR2GRAY)


def count_words(text: str) -> int:
    """Whitespace-delimited word count"""
    return len(text.split())


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Ensured directory exists: {path}")
    return path
