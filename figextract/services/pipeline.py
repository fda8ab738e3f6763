# services/pipeline.py
from functools import partial
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from loguru import logger

from figextract.config import Settings
from figextract.models.enums import DocumentType, RunStatus
from figextract.models.schemas import DocumentExtractionResult, ImageExtractionResult, RunSummary
from figextract.services.converters.command_runner import CommandRunner, SubprocessCommandRunner
from figextract.services.converters.document_converter import DocumentConverter
from figextract.services.extractors.figure_extractor import FigureExtractor
from figextract.services.ocr.ocr_manager import OCREngine, OCRManager
from figextract.services.scheduler import BoundedTaskScheduler, RunContext, WorkUnit
from figextract.services.workload import WorkloadEstimator
from figextract.utils.exceptions import ConversionError
from figextract.utils.helpers import ensure_directory, list_page_images


class ExtractionPipeline:
    """
    Runs figure extraction over a list of documents and page-image folders.

    Documents are handled one after another. For each, page images are
    produced first (stage 1) and then classified (stage 2); both stages go
    through the same bounded scheduler and report into one RunContext.
    """

    def __init__(self, settings: Settings, runner: CommandRunner = None,
                 converter: DocumentConverter = None,
                 ocr_engine_factory: Callable[[], OCREngine] = None,
                 scheduler: BoundedTaskScheduler = None):
        self.settings = settings
        self.runner = runner or SubprocessCommandRunner(timeout=settings.command_timeout)
        self.converter = converter or DocumentConverter(settings, self.runner)
        self.figure_extractor = FigureExtractor(settings, OCRManager(settings, ocr_engine_factory))
        self.estimator = WorkloadEstimator(settings, self.converter)
        self.scheduler = scheduler or BoundedTaskScheduler(
            max_concurrency=settings.concurrency,
            use_multithreading=settings.use_multithreading,
        )

    def run(self, inputs: Sequence[Path], output_root: Optional[Path] = None,
            progress_callback: Callable[[RunContext], None] = None,
            context: RunContext = None) -> RunSummary:
        inputs = [Path(p) for p in inputs]
        context = context or RunContext(progress_callback=progress_callback)
        context.estimated_total = self.estimator.estimate(inputs)
        summary = RunSummary(status=RunStatus.PROCESSING, estimated_units=context.estimated_total)

        logger.info(
            f"Processing {len(inputs)} input(s), ~{context.estimated_total} units, "
            f"{'parallel x' + str(self.scheduler.max_concurrency) if self.scheduler.use_multithreading else 'serial'}"
        )

        for path in inputs:
            summary.documents.append(self.process_document(path, output_root, context))

        context.finish()
        context.notify()
        summary.status = RunStatus.COMPLETED
        summary.dispatched_units = context.dispatched
        summary.completed_units = context.progress.value
        summary.processing_time = context.elapsed()

        logger.info(
            f"Finished: {summary.figure_count} figures from {len(summary.documents)} input(s) "
            f"in {summary.processing_time:.1f}s"
        )
        return summary

    def process_document(self, path: Path, output_root: Optional[Path],
                         context: RunContext) -> DocumentExtractionResult:
        doc_type = self.converter.detect_file_type(path)
        result = DocumentExtractionResult(source=path, document_type=doc_type)

        if doc_type == DocumentType.UNKNOWN:
            logger.warning(f"Skipping unsupported input: {path}")
            result.skipped = True
            return result

        if doc_type == DocumentType.IMAGE_DIR:
            target = path
        else:
            if output_root is None:
                logger.error(f"Skipping {path}: document inputs need an output folder")
                result.skipped = True
                result.errors.append("no output folder for document input")
                return result
            target = ensure_directory(output_root / path.stem)
            result.pages_rendered = self._produce_page_images(path, doc_type, target, result, context)
        result.target_folder = target

        if self.settings.use_opencv:
            result.images = self.classify_folder(target, context)

        return result

    def _produce_page_images(self, path: Path, doc_type: DocumentType, target: Path,
                             result: DocumentExtractionResult, context: RunContext) -> bool:
        """Stage 1. Returns True when pages were rendered rather than extracted."""
        units: List[WorkUnit] = []
        rendered = False

        if self.settings.use_opencv and self.converter.can_render(doc_type):
            try:
                units = self.converter.render_units(path, doc_type, target)
                rendered = bool(units)
            except ConversionError as e:
                logger.warning(f"Rendering {path.name} failed, extracting embedded images: {e.message}")
                result.errors.append(e.message)

        if not rendered:
            units = self.converter.extraction_units(path, doc_type, target)

        try:
            self.scheduler.run(units, context)
        finally:
            self.converter.cleanup(target)
        return rendered

    def classify_folder(self, folder: Path, context: RunContext) -> List[ImageExtractionResult]:
        """Stage 2: one unit per page image, figures go to the folder's figures directory"""
        images = list_page_images(folder, self.settings.image_extensions)
        figures_dir = ensure_directory(self.figure_extractor.figures_dir(folder))
        units = [
            WorkUnit(f"classify:{image.name}", partial(self.figure_extractor.extract_image, image, figures_dir))
            for image in images
        ]
        outcomes = self.scheduler.run(units, context)

        # a unit that raised yields None
        return [
            outcome if outcome is not None else ImageExtractionResult(image_path=image, skipped=True)
            for image, outcome in zip(images, outcomes)
        ]
