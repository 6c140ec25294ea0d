"""Batch processor: walks a project's images in order, calls the vision provider once per image,
records per-image status, and supports cooperative pause/resume and single-image regenerate."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from pathlib import Path

from captioner.ai.factory import get_vision_provider
from captioner.ai.schema import AnalysisResult, ProjectSettings, ProviderName
from captioner.ai.vision_base import BaseVisionProvider
from captioner.core.errors import ConfigurationError, ValidationError
from captioner.models.project import ImageItem, ImageStatus, Project
from captioner.repository.project_repo import ProjectRepository

_log = logging.getLogger(__name__)

ProviderFactory = Callable[[ProviderName, str], BaseVisionProvider]


class PauseToken:
    """
    Cooperative pause request for one run. The run polls is_set() at each item
    boundary; an in-flight provider call is never interrupted.
    """

    def __init__(self) -> None:
        self._requested = False

    def request_pause(self) -> None:
        self._requested = True

    def clear(self) -> None:
        self._requested = False

    def is_set(self) -> bool:
        return self._requested


@dataclass
class RunState:
    """Ephemeral state of the current (or last) run. Never persisted."""

    is_running: bool = False
    is_paused: bool = False
    current_index: int = 0


class BatchProcessor:
    """
    Sequential image-analysis pipeline over one project.

    Images are processed strictly one at a time on the event loop; the blocking provider
    call runs in a worker thread and is the only suspension point. After every status
    change the whole project snapshot is written back through the ProjectRepository, so
    image i is always persisted before image i+1 starts. Store writes are synchronous
    SQLite commits made on the event loop thread, so a snapshot is durable before it is
    yielded; only the provider call is offloaded.

    The processor does not lock: callers must not start regenerate() for an index that is
    processing, or while run_batch() is active.
    """

    def __init__(
        self,
        project_repo: ProjectRepository,
        provider_factory: ProviderFactory = get_vision_provider,
    ) -> None:
        self._repo = project_repo
        self._provider_factory = provider_factory
        self._token: PauseToken | None = None
        self.state = RunState()

    # ---------- pause / resume ----------

    def pause(self) -> None:
        """Request the active run to stop at the next item boundary."""
        if self._token is not None:
            self._token.request_pause()
            _log.info("Pause requested")

    def resume(
        self,
        project: Project,
        settings: ProjectSettings,
        provider: ProviderName,
        api_key: str | None,
    ) -> AsyncIterator[Project]:
        """Start a fresh run; completed images are skipped so work continues where it stopped."""
        return self.run_batch(project, settings, provider, api_key, token=PauseToken())

    # ---------- helpers ----------

    def _check_api_key(self, api_key: str | None) -> None:
        if not api_key or not api_key.strip():
            raise ConfigurationError("Set API key in settings")

    def _persist(self, project: Project) -> Project:
        """Write the whole project back and return a snapshot for observers."""
        self._repo.save(project)
        return project.snapshot()

    @staticmethod
    def _reset_stale_processing(project: Project) -> int:
        """Put images left in processing by an interrupted run back to pending."""
        reset = 0
        for item in project.images:
            if item.status == ImageStatus.processing:
                item.status = ImageStatus.pending
                reset += 1
        return reset

    @staticmethod
    def _analyze_item(
        provider: BaseVisionProvider, item: ImageItem, settings: ProjectSettings
    ) -> AnalysisResult:
        """Blocking: read the source file and call the provider. Runs in a worker thread."""
        image_bytes = Path(item.source_path).read_bytes()
        return provider.analyze(image_bytes, item.mime_type, settings)

    async def _process_item(
        self,
        project: Project,
        index: int,
        provider: BaseVisionProvider,
        settings: ProjectSettings,
    ) -> AsyncIterator[Project]:
        """Mark processing, call the provider, record completed or error. Never raises for item failures."""
        item = project.images[index]
        item.status = ImageStatus.processing
        yield self._persist(project)

        try:
            result = await asyncio.to_thread(self._analyze_item, provider, item, settings)
        except Exception as e:
            message = str(e) or type(e).__name__
            _log.error(
                "Analysis failed for image %s (%s): %s",
                index,
                item.filename,
                message,
                exc_info=True,
            )
            item.status = ImageStatus.error
            item.error = message
        else:
            item.status = ImageStatus.completed
            item.output = result
            item.error = None
            _log.info("Completed image %s (%s)", index, item.filename)
        yield self._persist(project)

    # ---------- operations ----------

    def run_batch(
        self,
        project: Project,
        settings: ProjectSettings,
        provider: ProviderName,
        api_key: str | None,
        *,
        token: PauseToken | None = None,
    ) -> AsyncIterator[Project]:
        """
        Run the provider over every image that is not completed, yielding a project
        snapshot after each persisted change.

        Raises ConfigurationError (no API key) or ValidationError (no images) before any
        image is touched. Per-image failures are recorded on the image and the run
        continues. The run stops early when the pause token is set.
        """
        self._check_api_key(api_key)
        if not project.images:
            raise ValidationError("Upload at least one image")
        assert api_key is not None

        vision = self._provider_factory(provider, api_key)
        self._token = token if token is not None else PauseToken()
        return self._run(project.snapshot(), settings, vision, self._token)

    async def _run(
        self,
        working: Project,
        settings: ProjectSettings,
        vision: BaseVisionProvider,
        token: PauseToken,
    ) -> AsyncIterator[Project]:
        self.state = RunState(is_running=True)
        _log.info("Run started for project %s (%s images, provider %s)", working.id, len(working.images), vision.name)

        try:
            if self._reset_stale_processing(working):
                yield self._persist(working)

            index = 0
            while index < len(working.images):
                self.state.current_index = index
                if token.is_set():
                    self.state.is_paused = True
                    _log.info("Run paused before image %s", index)
                    break

                if working.images[index].status == ImageStatus.completed:
                    index += 1
                    continue

                async for snapshot in self._process_item(working, index, vision, settings):
                    yield snapshot
                index += 1
        finally:
            self.state.is_running = False
            vision.close()

        if not self.state.is_paused:
            _log.info("Run finished for project %s", working.id)

    async def run_to_completion(
        self,
        project: Project,
        settings: ProjectSettings,
        provider: ProviderName,
        api_key: str | None,
        *,
        token: PauseToken | None = None,
    ) -> Project:
        """Drain run_batch() and return the last snapshot (the input snapshot when nothing changed)."""
        last = project.snapshot()
        async for snapshot in self.run_batch(project, settings, provider, api_key, token=token):
            last = snapshot
        return last

    async def regenerate(
        self,
        project: Project,
        index: int,
        settings: ProjectSettings,
        provider: ProviderName,
        api_key: str | None,
    ) -> Project:
        """Re-run the provider for one image regardless of its status; return the updated snapshot."""
        self._check_api_key(api_key)
        if not 0 <= index < len(project.images):
            raise ValidationError(f"Image index {index} out of range")
        assert api_key is not None

        vision = self._provider_factory(provider, api_key)
        working = project.snapshot()
        last = working
        try:
            async for snapshot in self._process_item(working, index, vision, settings):
                last = snapshot
        finally:
            vision.close()
        return last
