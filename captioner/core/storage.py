"""Local preview store and upload thumbnails (Pillow)."""

import io
import logging
import uuid
from pathlib import Path
from typing import Callable

from PIL import Image
from PIL import ImageOps

from captioner.core.config import get_config

_log = logging.getLogger(__name__)

PREVIEW_SIZE: tuple[int, int] = (320, 320)
THUMBNAIL_QUALITY = 80


def _fit_within_box_no_upscale(image: Image.Image, max_size: tuple[int, int]) -> Image.Image:
    """Return a copy of image resized to fit within max_size, never upscaling.

    If the image already fits within the target box, this returns a same-size copy.
    Otherwise it downsamples with aspect ratio preserved so that
    max(width, height) == max(max_size).
    """
    max_w, max_h = max_size
    if image.width <= max_w and image.height <= max_h:
        return image.copy()

    # Pillow's thumbnail() modifies in-place; operate on a copy.
    resized = image.copy()
    resized.thumbnail(max_size)
    return resized


def _open_rgb(data: bytes) -> Image.Image:
    """Decode image bytes, fix EXIF orientation, return RGB."""
    img = Image.open(io.BytesIO(data))
    img.load()
    img = ImageOps.exif_transpose(img)
    return img.convert("RGB")


def make_thumbnail(data: bytes, max_edge: int, quality: int = THUMBNAIL_QUALITY) -> tuple[bytes, str]:
    """
    Downscale image bytes for upload to a vision provider.

    Returns (jpeg_bytes, "image/jpeg"). Never upscales. Raises OSError/ValueError
    (Pillow's UnidentifiedImageError is an OSError) when the bytes are not an image.
    """
    img = _open_rgb(data)
    thumb = _fit_within_box_no_upscale(img, (max_edge, max_edge))
    buffered = io.BytesIO()
    thumb.save(buffered, format="JPEG", quality=quality)
    return buffered.getvalue(), "image/jpeg"


def _atomic_write(dest_path: Path, write_fn: Callable[[Path], None]) -> None:
    """Write to tmp path then atomically rename. Clean up tmp on failure."""
    tmp_path = dest_path.with_suffix(dest_path.suffix + ".tmp")
    try:
        write_fn(tmp_path)
        tmp_path.replace(dest_path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


class PreviewStore:
    """
    Stores display previews under data_dir / previews / {project_id} / {uuid}.jpg.

    Each preview is owned by exactly one ImageItem; release() must be called when the
    item is deleted or replaced.
    """

    def __init__(self, data_dir: str | Path | None = None) -> None:
        self.data_dir = Path(data_dir if data_dir is not None else get_config().data_dir)

    def _project_dir(self, project_id: str, *, create_dirs: bool = False) -> Path:
        directory = self.data_dir / "previews" / project_id
        if create_dirs:
            directory.mkdir(parents=True, exist_ok=True)
        return directory

    def create(self, project_id: str, source_path: Path | str) -> str | None:
        """
        Create a JPEG preview (max 320x320, never upscaled) for source_path; return its path.

        Returns None when the source cannot be decoded; the image is still usable for
        analysis, it just has no preview.
        """
        try:
            data = Path(source_path).read_bytes()
            img = _open_rgb(data)
        except (OSError, ValueError) as e:
            _log.warning("Could not create preview for %s: %s", source_path, e)
            return None
        thumb = _fit_within_box_no_upscale(img, PREVIEW_SIZE)
        dest = self._project_dir(project_id, create_dirs=True) / f"{uuid.uuid4().hex}.jpg"

        def _do_write(p: Path) -> None:
            thumb.save(p, format="JPEG", quality=85)

        _atomic_write(dest, _do_write)
        return str(dest)

    def release(self, preview_path: str | None) -> None:
        """Delete a preview file. Missing files are ignored."""
        if not preview_path:
            return
        try:
            Path(preview_path).unlink(missing_ok=True)
        except OSError as e:
            _log.warning("Could not release preview %s: %s", preview_path, e)
