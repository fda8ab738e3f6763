# figextract/main.py
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from figextract.config import Settings
from figextract.services.pipeline import ExtractionPipeline
from figextract.services.scheduler import RunContext
from figextract.utils.exceptions import ConfigurationError


def setup_logging(settings: Settings) -> None:
    """stderr sink at the configured level, plus an optional rotating file"""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    if settings.log_file:
        logger.add(
            str(settings.log_file),
            rotation="500 MB",
            retention="10 days",
            level=settings.log_level,
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="figextract",
        description="Extract figures from documents and page images, dropping text-only regions.",
    )
    parser.add_argument("inputs", nargs="+", type=Path,
                        help="documents (pdf, djvu, epub, docx, doc) or folders of page images")
    parser.add_argument("-o", "--output", type=Path,
                        help="output folder for document inputs")
    parser.add_argument("--no-opencv", action="store_true",
                        help="only extract embedded images, no page rendering or classification")
    parser.add_argument("--ocr", action="store_true",
                        help="verify ambiguous regions with tesseract")
    parser.add_argument("--serial", action="store_true",
                        help="process one unit at a time")
    parser.add_argument("--workers", type=int, help="maximum concurrent units (minimum 2)")
    parser.add_argument("--dpi", type=int, help="page rendering resolution")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ...")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.no_opencv:
        overrides["use_opencv"] = False
    if args.ocr:
        overrides["use_ocr"] = True
    if args.serial:
        overrides["use_multithreading"] = False
    if args.workers is not None:
        overrides["max_workers"] = args.workers
    if args.dpi is not None:
        overrides["render_dpi"] = args.dpi
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    return Settings(**overrides)


def log_progress(context: RunContext) -> None:
    logger.info(f"Progress: {context.percent():.0f}% ({context.progress.value} units done)")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = settings_from_args(args)
    except (ValidationError, ConfigurationError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    needs_output = any(not path.is_dir() for path in args.inputs)
    if needs_output and args.output is None:
        parser.error("--output is required when documents are given")

    setup_logging(settings)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    pipeline = ExtractionPipeline(settings)
    summary = pipeline.run(args.inputs, args.output, progress_callback=log_progress)

    print(
        f"Extraction completed: {summary.figure_count} figure(s) from "
        f"{len(summary.documents)} input(s) in {summary.processing_time:.1f}s"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
