"""End-to-end tests for the extraction run"""

import shutil

import fitz
import pytest

from figextract.config import Settings
from figextract.models.enums import DocumentType, RunStatus
from figextract.services.pipeline import ExtractionPipeline
from figextract.services.scheduler import RunContext

from tests.conftest import FakeCommandRunner, FakeOCREngine, blank_page, paragraph_page, write_image


def pipeline_for(settings, **kwargs):
    return ExtractionPipeline(settings, runner=FakeCommandRunner(), **kwargs)


def figure_names(folder):
    figures = folder / "opencv_figures"
    if not figures.exists():
        return []
    return sorted(p.name for p in figures.iterdir())


def test_three_page_folder(page_dir, settings):
    context = RunContext()

    summary = pipeline_for(settings).run([page_dir], context=context)

    assert figure_names(page_dir) == ["page2_figure_1.png"]
    assert not [n for n in figure_names(page_dir) if n.startswith(("page1_", "page3_"))]
    assert context.progress.value == 3
    assert context.is_complete()
    assert context.percent() == 100.0

    assert summary.status == RunStatus.COMPLETED
    assert summary.figure_count == 1
    assert summary.completed_units == summary.dispatched_units == 3
    assert summary.estimated_units == 3
    document = summary.documents[0]
    assert document.document_type == DocumentType.IMAGE_DIR
    assert [len(image.figure_paths) for image in document.images] == [0, 1, 0]


def test_serial_and_parallel_runs_agree(page_dir, tmp_path):
    copy = tmp_path / "copy"
    shutil.copytree(page_dir, copy)

    parallel = Settings(_env_file=None, log_file=None, max_workers=3)
    serial = Settings(_env_file=None, log_file=None, use_multithreading=False)

    parallel_summary = pipeline_for(parallel).run([page_dir])
    serial_summary = pipeline_for(serial).run([copy])

    assert figure_names(page_dir) == figure_names(copy)
    assert parallel_summary.completed_units == serial_summary.completed_units == 3


def test_unreadable_image_still_counts(page_dir, settings):
    (page_dir / "page4.png").write_bytes(b"garbage")

    summary = pipeline_for(settings).run([page_dir])

    assert summary.completed_units == 4
    skipped = [image for image in summary.documents[0].images if image.skipped]
    assert [image.image_path.name for image in skipped] == ["page4.png"]


def test_pdf_document_is_rendered_and_classified(tmp_path):
    pdf = tmp_path / "paper.pdf"
    doc = fitz.open()
    page = doc.new_page()
    page.draw_rect(fitz.Rect(150, 200, 400, 450), color=(0, 0, 0), fill=(0, 0, 0))
    doc.new_page()
    doc.save(str(pdf))
    doc.close()

    settings = Settings(_env_file=None, log_file=None, render_dpi=72, max_workers=2)
    output = tmp_path / "out"
    progress = []

    summary = pipeline_for(settings).run([pdf], output, progress_callback=lambda c: progress.append(c.percent()))

    target = output / "paper"
    assert sorted(p.name for p in target.glob("*.png")) == ["page_0001.png", "page_0002.png"]
    assert figure_names(target) == ["page_0001_figure_1.png"]
    assert summary.documents[0].pages_rendered
    assert summary.estimated_units == 4
    assert summary.dispatched_units == summary.completed_units == 4
    assert progress[-1] == 100.0


def test_fallback_extraction_when_not_rendering(tmp_path):
    pdf = tmp_path / "paper.pdf"
    pdf.write_bytes(b"%PDF-1.4")
    settings = Settings(_env_file=None, log_file=None, use_opencv=False)
    runner = FakeCommandRunner()

    summary = ExtractionPipeline(settings, runner=runner).run([pdf], tmp_path / "out")

    assert runner.calls[0][:2] == ["pdfimages", "-all"]
    assert not summary.documents[0].pages_rendered
    assert summary.documents[0].images == []
    assert summary.completed_units == 1


def test_failed_office_conversion_falls_back(tmp_path):
    doc = tmp_path / "report.docx"
    doc.write_bytes(b"not really a docx")
    runner = FakeCommandRunner(available=["soffice"])
    settings = Settings(_env_file=None, log_file=None)

    summary = ExtractionPipeline(settings, runner=runner).run([doc], tmp_path / "out")

    result = summary.documents[0]
    assert not result.pages_rendered
    assert result.errors
    assert summary.completed_units == 1
    assert not (tmp_path / "out" / "report" / "_temp_pdf_convert").exists()


def test_unknown_input_is_skipped(tmp_path, settings):
    notes = tmp_path / "notes.xyz"
    notes.write_text("hello")

    summary = pipeline_for(settings).run([notes], tmp_path / "out")

    assert summary.documents[0].skipped
    assert summary.dispatched_units == 0
    assert summary.status == RunStatus.COMPLETED


def test_ocr_engines_are_not_shared_between_units(page_dir):
    engines = []

    def factory():
        engine = FakeOCREngine(confidence=0, words=0)
        engines.append(engine)
        return engine

    settings = Settings(_env_file=None, log_file=None, use_ocr=True, max_workers=3)
    pipeline_for(settings, ocr_engine_factory=factory).run([page_dir])

    # only the page with candidates needs an engine
    assert len(engines) == 1
    assert all(engine.closed for engine in engines)


def test_folder_without_figures_still_gets_figures_dir(tmp_path, settings):
    folder = tmp_path / "blank"
    folder.mkdir()
    write_image(folder / "page1.png", blank_page())

    summary = pipeline_for(settings).run([folder])

    figures = folder / "opencv_figures"
    assert figures.is_dir()
    assert list(figures.iterdir()) == []
    assert summary.figure_count == 0


def test_paragraph_of_text_is_rejected(tmp_path, settings):
    folder = tmp_path / "article"
    folder.mkdir()
    write_image(folder / "page1.png", paragraph_page())

    summary = pipeline_for(settings).run([folder])

    image = summary.documents[0].images[0]
    assert image.candidate_count == 1
    assert image.figure_paths == []
    assert figure_names(folder) == []


def test_document_without_output_root_is_skipped(tmp_path, page_dir, settings):
    pdf = tmp_path / "paper.pdf"
    pdf.write_bytes(b"%PDF-1.4")

    summary = pipeline_for(settings).run([pdf, page_dir])

    skipped, processed = summary.documents
    assert skipped.skipped
    assert skipped.errors
    assert not (tmp_path / "paper").exists()
    assert not processed.skipped
    assert figure_names(page_dir) == ["page2_figure_1.png"]
    assert summary.status == RunStatus.COMPLETED
