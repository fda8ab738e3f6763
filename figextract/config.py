# figextract/config.py
import os
from pathlib import Path
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from figextract.utils.exceptions import ConfigurationError


class ClassificationThresholds(BaseModel):
    """Constants used by candidate detection and figure/text classification"""

    model_config = ConfigDict(frozen=True)

    # Candidate geometry (fractions of the page area, pixels)
    min_area_fraction: float = 0.01
    max_area_fraction: float = 0.7
    min_width: int = 100
    min_height: int = 100
    padding_fraction: float = 0.05

    # Candidate binarization
    detector_block_size: int = 25
    detector_offset: int = 15
    dilate_kernel: int = 5
    dilate_iterations: int = 3

    # Text density
    density_block_size: int = 15
    density_offset: int = 10
    close_kernel: int = 3
    glyph_min_height: int = 5
    glyph_max_height: int = 50
    glyph_min_width: int = 3
    glyph_max_width: int = 200
    glyph_min_aspect: float = 0.2
    glyph_max_aspect: float = 10.0
    glyph_min_area: int = 20
    density_scale: float = 10000.0

    # Classification cascade
    text_density_high: float = 20.0
    text_density_low: float = 2.0
    pure_text_density: float = 10.0

    # Edge density band
    canny_low: int = 50
    canny_high: int = 150
    edge_density_min: float = 0.005
    edge_density_max: float = 0.15

    # OCR acceptance floor
    ocr_min_confidence: float = 70.0
    ocr_min_words: int = 25

    @model_validator(mode="after")
    def _check_bands(self):
        bands = {
            "area_fraction": (self.min_area_fraction, self.max_area_fraction),
            "text_density": (self.text_density_low, self.text_density_high),
            "edge_density": (self.edge_density_min, self.edge_density_max),
            "canny": (self.canny_low, self.canny_high),
        }
        for name, (low, high) in bands.items():
            if low >= high:
                raise ConfigurationError(
                    f"Invalid {name} band: {low} >= {high}",
                    {"band": name, "low": low, "high": high},
                )
        if not self.text_density_low <= self.pure_text_density <= self.text_density_high:
            raise ConfigurationError(
                "pure_text_density must lie inside the text density band",
                {"pure_text_density": self.pure_text_density},
            )
        for name in ("detector_block_size", "density_block_size"):
            size = getattr(self, name)
            if size < 3 or size % 2 == 0:
                raise ConfigurationError(f"{name} must be an odd number >= 3", {name: size})
        return self


class Settings(BaseSettings):
    """Application configuration settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FIGEX_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "FigureExtractor"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    log_file: Optional[Path] = Path("logs/figextract.log")

    # Stages
    use_opencv: bool = True        # render pages and classify them
    use_ocr: bool = False          # tesseract verification of ambiguous regions
    ocr_language: str = "eng"
    ocr_page_segmentation_mode: int = 3   # PSM_AUTO
    ocr_timeout: int = 30

    # Scheduling
    use_multithreading: bool = True
    max_workers: Optional[int] = None

    # Conversion
    render_dpi: int = 200
    command_timeout: int = 300

    # Output
    figures_dirname: str = "opencv_figures"
    image_extensions: Tuple[str, ...] = (".png", ".jpg", ".jpeg", ".tif")

    # Progress estimation
    single_shot_units: int = 2

    thresholds: ClassificationThresholds = ClassificationThresholds()

    @property
    def concurrency(self) -> int:
        """Maximum number of work units running at once (never below 2)"""
        workers = self.max_workers or os.cpu_count() or 2
        return max(2, workers)

