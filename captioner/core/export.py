"""CSV export of completed image descriptions."""

import csv
import io
from collections.abc import Iterable

from captioner.core.errors import ExportError
from captioner.models.project import ImageItem, ImageStatus

CSV_HEADER = ("Filename", "Description", "Keywords")
KEYWORD_SEPARATOR = ", "


def format_keywords(keywords: Iterable[str]) -> str:
    return KEYWORD_SEPARATOR.join(keywords)


def generate_csv(images: Iterable[ImageItem]) -> str:
    """
    Build CSV text with one row per completed image that has output.

    Every field is double-quoted with embedded quotes doubled; rows are joined with
    "\\n" and there is no trailing newline. Raises ExportError when no image qualifies.
    """
    completed = [img for img in images if img.status == ImageStatus.completed and img.output is not None]
    if not completed:
        raise ExportError("No completed descriptions to download")

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for img in completed:
        assert img.output is not None
        writer.writerow((img.filename, img.output.description, format_keywords(img.output.keywords)))
    return buffer.getvalue()[: -len("\n")]
