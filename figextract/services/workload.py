# services/workload.py
from pathlib import Path
from typing import Iterable

from loguru import logger

from figextract.config import Settings
from figextract.models.enums import DocumentType
from figextract.services.converters.document_converter import DocumentConverter
from figextract.utils.helpers import list_page_images


class WorkloadEstimator:
    """
    Approximate number of work units a run will dispatch, used only as the
    denominator of the progress percentage.

    Paginated documents count one unit per page, single-shot conversions a
    small constant; both are doubled when pages are rendered and then
    classified. The scheduler's dispatched count stays authoritative.
    """

    def __init__(self, settings: Settings, converter: DocumentConverter):
        self.settings = settings
        self.converter = converter

    def estimate(self, inputs: Iterable[Path]) -> int:
        total = sum(self.estimate_document(path) for path in inputs)
        logger.debug(f"Estimated {total} work units")
        return total

    def estimate_document(self, path: Path) -> int:
        doc_type = self.converter.detect_file_type(path)
        return self.estimate_for_type(path, doc_type)

    def estimate_for_type(self, path: Path, doc_type: DocumentType) -> int:
        classify = self.settings.use_opencv

        if doc_type == DocumentType.IMAGE_DIR:
            if not classify:
                return 0
            return len(list_page_images(path, self.settings.image_extensions))

        if doc_type == DocumentType.UNKNOWN:
            return 0

        render = classify and self.converter.can_render(doc_type)
        if render and doc_type in (DocumentType.PDF, DocumentType.DJVU):
            units = self.converter.page_count(path, doc_type) or self.settings.single_shot_units
        else:
            units = self.settings.single_shot_units

        return units * 2 if classify else units
