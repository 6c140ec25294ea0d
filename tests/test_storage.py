"""Tests for thumbnails and the local preview store."""

import io
from pathlib import Path

import pytest
from PIL import Image

from captioner.core.storage import PREVIEW_SIZE, PreviewStore, make_thumbnail
from tests.conftest import make_jpeg_bytes

pytestmark = [pytest.mark.fast]


def test_make_thumbnail_downscales_longest_edge():
    data, mime = make_thumbnail(make_jpeg_bytes((1200, 600)), 400)

    assert mime == "image/jpeg"
    with Image.open(io.BytesIO(data)) as img:
        assert img.size == (400, 200)
        assert img.format == "JPEG"


def test_make_thumbnail_never_upscales():
    data, _ = make_thumbnail(make_jpeg_bytes((100, 50)), 400)
    with Image.open(io.BytesIO(data)) as img:
        assert img.size == (100, 50)


def test_make_thumbnail_converts_png_with_alpha():
    buf = io.BytesIO()
    Image.new("RGBA", (500, 500), (0, 0, 0, 0)).save(buf, format="PNG")

    data, _ = make_thumbnail(buf.getvalue(), 400)

    with Image.open(io.BytesIO(data)) as img:
        assert img.mode == "RGB"
        assert img.size == (400, 400)


def test_make_thumbnail_rejects_non_image():
    with pytest.raises(OSError):
        make_thumbnail(b"nope", 400)


def test_preview_store_create_and_release(tmp_path):
    src = tmp_path / "src.jpg"
    src.write_bytes(make_jpeg_bytes((1000, 500)))
    store = PreviewStore(tmp_path / "data")

    preview = store.create("42", src)

    assert preview is not None
    path = Path(preview)
    assert path.parent == tmp_path / "data" / "previews" / "42"
    with Image.open(path) as img:
        assert max(img.size) == max(PREVIEW_SIZE)
    assert not list(path.parent.glob("*.tmp"))

    store.release(preview)
    assert not path.exists()
    store.release(preview)
    store.release(None)


def test_preview_store_defaults_to_config_data_dir(tmp_path):
    cfg = tmp_path / "captioner.yml"
    cfg.write_text(f"data_dir: {tmp_path / 'configured'}\n")
    from captioner.core.config import get_config

    get_config(cfg)

    assert PreviewStore().data_dir == tmp_path / "configured"
