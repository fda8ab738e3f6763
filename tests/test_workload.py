"""Tests for the work unit estimate used by progress reporting"""

import fitz
import pytest

from figextract.config import Settings
from figextract.services.converters.command_runner import CommandResult
from figextract.services.converters.document_converter import DocumentConverter
from figextract.services.workload import WorkloadEstimator

from tests.conftest import FakeCommandRunner, blank_page, write_image


def make_pdf(path, pages):
    doc = fitz.open()
    for _ in range(pages):
        doc.new_page()
    doc.save(str(path))
    doc.close()
    return path


def estimator(runner=None, **overrides):
    settings = Settings(_env_file=None, log_file=None, **overrides)
    converter = DocumentConverter(settings, runner or FakeCommandRunner())
    return WorkloadEstimator(settings, converter)


def test_pdf_pages_doubled_when_classifying(tmp_path):
    pdf = make_pdf(tmp_path / "paper.pdf", 3)

    assert estimator().estimate([pdf]) == 6
    assert estimator(use_opencv=False).estimate([pdf]) == 2


def test_djvu_pages_from_djvused(tmp_path):
    book = tmp_path / "book.djvu"
    book.write_bytes(b"AT&TFORM")
    runner = FakeCommandRunner(
        available=["ddjvu", "djvused"],
        responses={"djvused": CommandResult(["djvused"], 0, "12\n")},
    )

    assert estimator(runner).estimate([book]) == 24


def test_djvu_without_tools_is_single_shot(tmp_path):
    book = tmp_path / "book.djvu"
    book.write_bytes(b"AT&TFORM")

    assert estimator().estimate([book]) == 4


def test_office_documents_use_the_constant(tmp_path):
    doc = tmp_path / "report.docx"
    doc.write_bytes(b"PK")

    assert estimator(single_shot_units=3).estimate([doc]) == 6
    assert estimator(single_shot_units=3, use_opencv=False).estimate([doc]) == 3


def test_image_folder_counts_images(page_dir):
    assert estimator().estimate([page_dir]) == 3
    assert estimator(use_opencv=False).estimate([page_dir]) == 0


def test_unknown_inputs_count_nothing(tmp_path):
    notes = tmp_path / "notes.xyz"
    notes.write_text("hello")

    assert estimator().estimate([notes, tmp_path / "missing.pdf"]) == 0


def test_estimates_add_up(tmp_path, page_dir):
    pdf = make_pdf(tmp_path / "paper.pdf", 2)
    assert estimator().estimate([pdf, page_dir]) == 4 + 3
