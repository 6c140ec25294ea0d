"""Tests for CSV export of completed descriptions."""

import csv
import io

import pytest

from captioner.ai.schema import AnalysisResult
from captioner.core.errors import ExportError
from captioner.core.export import generate_csv
from captioner.models.project import ImageItem, ImageStatus

pytestmark = [pytest.mark.fast]


def _item(filename, status, output=None, error=None):
    return ImageItem(source_path=f"/tmp/{filename}", filename=filename, status=status, output=output, error=error)


def test_generate_csv_quotes_fields_and_omits_errored_images():
    images = [
        _item(
            "filename.jpg",
            ImageStatus.completed,
            AnalysisResult(description='He said "hi"', keywords=["a", "b"]),
        ),
        _item("broken.jpg", ImageStatus.error, error="Gemini API call failed: 500 Internal Server Error"),
    ]

    text = generate_csv(images)

    assert text == '"Filename","Description","Keywords"\n"filename.jpg","He said ""hi""","a, b"'


def test_generate_csv_skips_pending_and_processing_images():
    images = [
        _item("a.jpg", ImageStatus.pending),
        _item("b.jpg", ImageStatus.processing),
        _item("c.jpg", ImageStatus.completed, AnalysisResult(description="C", keywords=["x"])),
    ]

    rows = list(csv.reader(io.StringIO(generate_csv(images))))

    assert rows == [["Filename", "Description", "Keywords"], ["c.jpg", "C", "x"]]


def test_generate_csv_keeps_padding_keywords_and_embedded_newlines():
    images = [
        _item(
            "d.jpg",
            ImageStatus.completed,
            AnalysisResult(description="line one\nline two", keywords=["x", "", ""]),
        ),
    ]

    rows = list(csv.reader(io.StringIO(generate_csv(images))))

    assert rows[1] == ["d.jpg", "line one\nline two", "x, , "]


def test_generate_csv_without_completed_images_raises():
    with pytest.raises(ExportError, match="No completed descriptions to download"):
        generate_csv([_item("a.jpg", ImageStatus.error, error="boom")])
    with pytest.raises(ExportError):
        generate_csv([])
