# services/converters/document_converter.py
"""
Turns input documents into a folder of page images.

Two modes per document type:
- rendering, one work unit per page (PDF via PyMuPDF, DJVU via ddjvu,
  office/EPUB documents via a LibreOffice PDF conversion)
- single-shot extraction of embedded images, used when rendering is
  disabled or unavailable (pdfimages, DJVU background layers, zip members)
"""

import fnmatch
import mimetypes
import shutil
import threading
import zipfile
from functools import partial
from pathlib import Path
from typing import List, Optional

import fitz  # PyMuPDF
from loguru import logger

from figextract.config import Settings
from figextract.models.enums import DocumentType
from figextract.services.converters.command_runner import CommandRunner, SubprocessCommandRunner
from figextract.services.scheduler import WorkUnit
from figextract.utils.exceptions import ConversionError
from figextract.utils.helpers import ensure_directory

MIME_TYPES = {
    "application/pdf": DocumentType.PDF,
    "image/vnd.djvu": DocumentType.DJVU,
    "application/epub+zip": DocumentType.ZIP_CONTAINER,
    "application/zip": DocumentType.ZIP_CONTAINER,
    "application/msword": DocumentType.DOC_LEGACY,
}

EXTENSIONS = {
    ".pdf": DocumentType.PDF,
    ".djvu": DocumentType.DJVU,
    ".djv": DocumentType.DJVU,
    ".epub": DocumentType.ZIP_CONTAINER,
    ".docx": DocumentType.ZIP_CONTAINER,
    ".odt": DocumentType.ZIP_CONTAINER,
    ".zip": DocumentType.ZIP_CONTAINER,
    ".doc": DocumentType.DOC_LEGACY,
}

ZIP_IMAGE_PATTERNS = ("*.png", "*.jpg", "*.jpeg", "*.gif", "*.bmp", "*.tif*", "*.svg", "*.wmf", "*.emf")
ZIP_EXCLUDE_PATTERNS = ("*/thumbnail*",)

# DJVU background layers this small hold no picture
BG44_MIN_BYTES = 200
MIN_PAGE_IMAGE_BYTES = 1000
MIN_CONVERTED_PDF_BYTES = 1000

PDF_CONVERT_DIR = "_temp_pdf_convert"
DOC_CONVERT_DIR = "_temp_doc"
DJVU_TEMP_DIR = "_djvu_temp"

# PyMuPDF is not thread-safe, even across separate Document objects
_FITZ_LOCK = threading.Lock()


def page_image_name(page: int) -> str:
    return f"page_{page:04d}.png"


class DocumentConverter:
    """Page-image production for one document at a time"""

    def __init__(self, settings: Settings, runner: CommandRunner = None):
        self.settings = settings
        self.runner = runner or SubprocessCommandRunner(timeout=settings.command_timeout)

    # ------------------------------------------------------------------
    # Type detection
    # ------------------------------------------------------------------

    def detect_file_type(self, path: Path) -> DocumentType:
        if path.is_dir():
            return DocumentType.IMAGE_DIR
        if not path.is_file():
            return DocumentType.UNKNOWN

        mime = self._mime_type(path)
        if mime:
            if mime in MIME_TYPES:
                return MIME_TYPES[mime]
            if "djvu" in mime:
                return DocumentType.DJVU
            if "opendocument" in mime or "openxmlformats" in mime:
                return DocumentType.ZIP_CONTAINER

        return EXTENSIONS.get(path.suffix.lower(), DocumentType.UNKNOWN)

    def _mime_type(self, path: Path) -> Optional[str]:
        if self.runner.is_available("file"):
            try:
                result = self.runner.run(["file", "--brief", "--mime-type", str(path)])
                if result.ok and result.stdout.strip():
                    return result.stdout.strip()
            except ConversionError as e:
                logger.debug(f"file(1) failed for {path.name}: {e.message}")
        mime, _ = mimetypes.guess_type(str(path))
        return mime

    # ------------------------------------------------------------------
    # Page counting
    # ------------------------------------------------------------------

    def page_count(self, path: Path, doc_type: DocumentType) -> int:
        """Number of pages, 0 when unknown"""
        try:
            if doc_type == DocumentType.PDF:
                with _FITZ_LOCK, fitz.open(str(path)) as doc:
                    return len(doc)
            if doc_type == DocumentType.DJVU:
                result = self.runner.run(["djvused", "-e", "n", str(path)])
                if result.ok:
                    return int(result.stdout.strip().splitlines()[0])
        except (RuntimeError, OSError, ValueError, IndexError, ConversionError) as e:
            logger.warning(f"Could not count pages of {path.name}: {e}")
        return 0

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def can_render(self, doc_type: DocumentType) -> bool:
        if doc_type == DocumentType.PDF:
            return True
        if doc_type == DocumentType.DJVU:
            return self.runner.is_available("ddjvu") and self.runner.is_available("djvused")
        if doc_type in (DocumentType.ZIP_CONTAINER, DocumentType.DOC_LEGACY):
            return self.runner.is_available("soffice")
        return False

    def render_units(self, path: Path, doc_type: DocumentType, target: Path) -> List[WorkUnit]:
        """
        One unit per page writing ``page_NNNN.png`` into ``target``. Office
        documents are converted to PDF first; ConversionError means the caller
        should fall back to embedded image extraction.
        """
        ensure_directory(target)

        if doc_type == DocumentType.PDF:
            return self._pdf_render_units(path, target)

        if doc_type == DocumentType.DJVU:
            pages = self.page_count(path, doc_type)
            return [
                WorkUnit(f"render:{path.name}:{page}", partial(self.render_djvu_page, path, page, target))
                for page in range(1, pages + 1)
            ]

        if doc_type in (DocumentType.ZIP_CONTAINER, DocumentType.DOC_LEGACY):
            converted = self.convert_to_pdf(path, target / PDF_CONVERT_DIR)
            return self._pdf_render_units(converted, target)

        raise ConversionError(f"Cannot render {doc_type.value} documents", {"path": str(path)})

    def _pdf_render_units(self, pdf_path: Path, target: Path) -> List[WorkUnit]:
        pages = self.page_count(pdf_path, DocumentType.PDF)
        return [
            WorkUnit(f"render:{pdf_path.name}:{page}", partial(self.render_pdf_page, pdf_path, page, target))
            for page in range(1, pages + 1)
        ]

    def render_pdf_page(self, pdf_path: Path, page_number: int, target: Path) -> Path:
        """Rasterize one page. Calls are serialized across pool threads"""
        output = target / page_image_name(page_number)
        zoom = self.settings.render_dpi / 72
        with _FITZ_LOCK, fitz.open(str(pdf_path)) as doc:
            page = doc[page_number - 1]
            pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom))
            pix.save(str(output))
        return output

    def render_djvu_page(self, djvu_path: Path, page_number: int, target: Path) -> Path:
        output = target / page_image_name(page_number)
        result = self.runner.run([
            "ddjvu", "-format=png", f"-page={page_number}", str(djvu_path), str(output)
        ])
        if not result.ok:
            raise ConversionError(f"ddjvu failed on page {page_number}", {"returncode": result.returncode})
        return output

    def convert_to_pdf(self, path: Path, temp_dir: Path) -> Path:
        ensure_directory(temp_dir)
        self.runner.run([
            "soffice", "--headless", "--convert-to", "pdf", "--outdir", str(temp_dir), str(path)
        ])
        for candidate in sorted(temp_dir.glob("*.pdf")):
            if candidate.stat().st_size > MIN_CONVERTED_PDF_BYTES:
                return candidate
        raise ConversionError(f"LibreOffice produced no PDF for {path.name}", {"path": str(path)})

    # ------------------------------------------------------------------
    # Embedded image extraction
    # ------------------------------------------------------------------

    def extraction_units(self, path: Path, doc_type: DocumentType, target: Path) -> List[WorkUnit]:
        """Single-shot fallback extraction, empty for unknown types"""
        extractors = {
            DocumentType.PDF: self.extract_pdf_images,
            DocumentType.DJVU: self.extract_djvu_images,
            DocumentType.ZIP_CONTAINER: self.extract_zip_container,
            DocumentType.DOC_LEGACY: self.extract_legacy_doc,
        }
        extractor = extractors.get(doc_type)
        if extractor is None:
            return []
        ensure_directory(target)
        return [WorkUnit(f"extract:{path.name}", partial(extractor, path, target))]

    def extract_pdf_images(self, path: Path, target: Path) -> int:
        result = self.runner.run(["pdfimages", "-all", str(path), str(target / "img")])
        if not result.ok:
            raise ConversionError(f"pdfimages failed for {path.name}", {"returncode": result.returncode})
        return len(list(target.glob("img-*")))

    def extract_djvu_images(self, path: Path, target: Path) -> int:
        """Render only the pages whose background layer carries a picture"""
        pages = self.page_count(path, DocumentType.DJVU)
        if pages <= 0:
            return 0

        temp_dir = ensure_directory(target / DJVU_TEMP_DIR)
        extracted = 0
        try:
            for page in range(1, pages + 1):
                layer = temp_dir / f"page_{page}.iw44"
                result = self.runner.run(["djvuextract", str(path), f"BG44={layer}", f"-page={page}"])
                if not result.ok or not layer.exists() or layer.stat().st_size <= BG44_MIN_BYTES:
                    layer.unlink(missing_ok=True)
                    continue

                output = target / page_image_name(extracted + 1)
                self.runner.run(["ddjvu", "-format=png", f"-page={page}", str(path), str(output)])
                if output.exists() and output.stat().st_size > MIN_PAGE_IMAGE_BYTES:
                    extracted += 1
                layer.unlink(missing_ok=True)
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

        return extracted

    def extract_zip_container(self, path: Path, target: Path) -> int:
        """Copy image members of a zip-based document flat into ``target``"""
        extracted = 0
        try:
            with zipfile.ZipFile(path) as archive:
                for member in archive.infolist():
                    if member.is_dir() or not self._is_zip_image(member.filename):
                        continue
                    output = target / Path(member.filename).name
                    with archive.open(member) as source, open(output, "wb") as sink:
                        shutil.copyfileobj(source, sink)
                    extracted += 1
        except zipfile.BadZipFile as e:
            raise ConversionError(f"Not a zip container: {path.name}", {"path": str(path)}) from e
        return extracted

    @staticmethod
    def _is_zip_image(name: str) -> bool:
        lowered = name.lower()
        if any(fnmatch.fnmatch(lowered, pattern) for pattern in ZIP_EXCLUDE_PATTERNS):
            return False
        return any(fnmatch.fnmatch(lowered, pattern) for pattern in ZIP_IMAGE_PATTERNS)

    def extract_legacy_doc(self, path: Path, target: Path) -> int:
        temp_dir = ensure_directory(target / DOC_CONVERT_DIR)
        try:
            self.runner.run([
                "soffice", "--headless", "--convert-to", "docx", "--outdir", str(temp_dir), str(path)
            ])
            converted = sorted(temp_dir.glob("*.docx"))
            if not converted:
                raise ConversionError(f"LibreOffice produced no DOCX for {path.name}", {"path": str(path)})
            return self.extract_zip_container(converted[0], target)
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    def cleanup(self, target: Path) -> None:
        """Remove conversion leftovers from a document folder"""
        for name in (PDF_CONVERT_DIR, DOC_CONVERT_DIR, DJVU_TEMP_DIR):
            shutil.rmtree(target / name, ignore_errors=True)
