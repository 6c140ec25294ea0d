"""Project management: create/rename/delete projects, upload and delete images, edit results."""

import logging
import mimetypes
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from captioner.core.config import get_config
from captioner.core.errors import ValidationError
from captioner.core.storage import PreviewStore
from captioner.models.project import ImageItem, ImageStatus, Project
from captioner.repository.project_repo import ProjectRepository
from captioner.repository.settings_repo import SettingsRepository

_log = logging.getLogger(__name__)


@dataclass
class UploadReport:
    """Outcome of add_images: accepted items and the files that were skipped (too large)."""

    added: list[ImageItem] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class ProjectManager:
    """
    Project and image lifecycle on top of ProjectRepository.

    Every mutation reads the current project, changes a copy, and writes the whole
    project back. Image deletion always releases the item's preview first.
    """

    def __init__(
        self,
        project_repo: ProjectRepository,
        settings_repo: SettingsRepository,
        previews: PreviewStore | None = None,
        *,
        max_images: int | None = None,
        max_image_size_mb: int | None = None,
    ) -> None:
        cfg = get_config()
        self._repo = project_repo
        self._settings_repo = settings_repo
        self._previews = previews or PreviewStore()
        self.max_images = max_images if max_images is not None else cfg.max_images
        self.max_image_size_mb = max_image_size_mb if max_image_size_mb is not None else cfg.max_image_size_mb

    def _require(self, project_id: str) -> Project:
        project = self._repo.get(project_id)
        if project is None:
            raise ValidationError(f"Project not found: '{project_id}'")
        return project

    @staticmethod
    def _require_index(project: Project, index: int) -> ImageItem:
        if not 0 <= index < len(project.images):
            raise ValidationError(f"Image index {index} out of range (project has {len(project.images)} images)")
        return project.images[index]

    def _new_project_id(self) -> str:
        """Epoch milliseconds as a string; bumped until unique."""
        taken = {p.id for p in self._repo.list_projects()}
        candidate = int(time.time() * 1000)
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    # ---------- projects ----------

    def create_project(self, name: str) -> Project:
        """Create an empty project. Raises ValidationError when the name is blank."""
        name = name.strip()
        if not name:
            raise ValidationError("Enter project name")
        project = Project(id=self._new_project_id(), name=name)
        self._repo.add(project)
        _log.info("Created project %s (%s)", project.id, name)
        return project

    def rename_project(self, project_id: str, name: str) -> Project:
        name = name.strip()
        if not name:
            raise ValidationError("Enter project name")
        project = self._require(project_id)
        project.name = name
        self._repo.save(project)
        return project

    def delete_project(self, project_id: str) -> None:
        """Remove a project, release all its previews, and drop its settings."""
        project = self._require(project_id)
        for item in project.images:
            self._previews.release(item.preview_path)
        self._repo.remove(project_id)
        self._settings_repo.delete_project_settings(project_id)
        _log.info("Deleted project %s", project_id)

    # ---------- images ----------

    def add_images(self, project_id: str, paths: Iterable[str | Path]) -> UploadReport:
        """
        Append images in pending state.

        The whole upload is rejected when it exceeds the free slots (max_images per project).
        Files above max_image_size_mb are skipped and reported; missing files raise.
        """
        project = self._require(project_id)
        files = [Path(p) for p in paths]
        available = self.max_images - len(project.images)
        if len(files) > available:
            raise ValidationError(
                f"Maximum {self.max_images} images allowed per project. "
                f"You can upload only {available} more images."
            )
        for path in files:
            if not path.is_file():
                raise ValidationError(f"File not found: {path}")

        limit = self.max_image_size_mb * 1024 * 1024
        report = UploadReport()
        for path in files:
            size = path.stat().st_size
            if size > limit:
                _log.warning("Skipping %s: %s bytes exceeds %s MB", path, size, self.max_image_size_mb)
                report.skipped.append(str(path))
                continue
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            item = ImageItem(
                source_path=str(path.resolve()),
                filename=path.name,
                mime_type=mime_type,
                size=size,
                preview_path=self._previews.create(project_id, path),
            )
            report.added.append(item)

        project.images.extend(report.added)
        self._repo.save(project)
        return report

    def delete_image(self, project_id: str, index: int) -> Project:
        """Release the image's preview, then remove it from the project."""
        project = self._require(project_id)
        item = self._require_index(project, index)
        self._previews.release(item.preview_path)
        del project.images[index]
        self._repo.save(project)
        return project

    def edit_description(self, project_id: str, index: int, description: str) -> Project:
        """Replace the description of an analysed image. Status is unchanged."""
        project = self._require(project_id)
        item = self._require_index(project, index)
        if item.output is None:
            raise ValidationError(f"Image {index} has no description to edit")
        item.output.description = description
        self._repo.save(project)
        return project

    def remove_keyword(self, project_id: str, index: int, keyword_index: int) -> Project:
        """Drop one keyword from an analysed image. Status is unchanged."""
        project = self._require(project_id)
        item = self._require_index(project, index)
        if item.output is None or not 0 <= keyword_index < len(item.output.keywords):
            raise ValidationError(f"Image {index} has no keyword at position {keyword_index}")
        del item.output.keywords[keyword_index]
        self._repo.save(project)
        return project

    @staticmethod
    def progress(project: Project) -> float:
        """Percentage (0-100) of images that are completed."""
        if not project.images:
            return 0.0
        completed = sum(1 for img in project.images if img.status == ImageStatus.completed)
        return completed / len(project.images) * 100
