"""Pytest fixtures. Storage runs on an in-memory SQLite engine shared across sessions."""

import io

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from captioner.core.config import reset_config
from captioner.models.entities import KeyValue
from captioner.models.project import ImageItem, Project
from captioner.repository.kv_repo import KeyValueRepository
from captioner.repository.project_repo import ProjectRepository
from captioner.repository.settings_repo import SettingsRepository


def make_jpeg_bytes(size: tuple[int, int] = (64, 48), color: tuple[int, int, int] = (200, 30, 30)) -> bytes:
    """Return a small solid-colour JPEG."""
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config at a missing file so every test sees defaults; clear the cached singleton."""
    monkeypatch.setenv("CAPTIONER_CONFIG", str(tmp_path / "no-such-config.yml"))
    monkeypatch.delenv("CAPTIONER_DATABASE_URL", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def engine():
    """In-memory SQLite engine with the kv_store table created."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng, tables=[KeyValue.__table__])
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def _session_factory(engine):
    return sessionmaker(engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def kv_repo(_session_factory):
    return KeyValueRepository(_session_factory)


@pytest.fixture
def project_repo(kv_repo):
    return ProjectRepository(kv_repo)


@pytest.fixture
def settings_repo(kv_repo):
    return SettingsRepository(kv_repo)


@pytest.fixture
def image_files(tmp_path):
    """Factory: write n small JPEGs under tmp_path/images and return their paths."""
    image_dir = tmp_path / "images"
    image_dir.mkdir(exist_ok=True)

    def _make(n: int) -> list:
        paths = []
        for i in range(n):
            path = image_dir / f"img_{i}.jpg"
            path.write_bytes(make_jpeg_bytes(color=(10 * i % 255, 100, 150)))
            paths.append(path)
        return paths

    return _make


@pytest.fixture
def stored_project(project_repo, image_files):
    """Factory: persist a project with n pending images and return it."""

    def _make(n: int, project_id: str = "1700000000000") -> Project:
        images = [
            ImageItem(source_path=str(p), filename=p.name, mime_type="image/jpeg", size=p.stat().st_size)
            for p in image_files(n)
        ]
        project = Project(id=project_id, name="Holiday", images=images)
        project_repo.add(project)
        return project

    return _make
