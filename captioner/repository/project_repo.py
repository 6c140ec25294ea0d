"""Project repository: the "projects" key holds the full JSON list of Project documents."""

import logging

from captioner.models.project import Project
from captioner.repository.kv_repo import KeyValueRepository

_log = logging.getLogger(__name__)


class ProjectRepository:
    """
    ProjectStore over the key/value namespace.

    Every write replaces the whole list; there is no field-level persistence.
    """

    PROJECTS_KEY = "projects"

    def __init__(self, kv_repo: KeyValueRepository) -> None:
        self._kv = kv_repo

    def list_projects(self) -> list[Project]:
        """Return all projects in stored (creation) order."""
        raw = self._kv.get_json(self.PROJECTS_KEY, default=[])
        return [Project.model_validate(item) for item in raw]

    def get(self, project_id: str) -> Project | None:
        """Return a single project by id, or None if not found."""
        for project in self.list_projects():
            if project.id == project_id:
                return project
        return None

    def replace_all(self, projects: list[Project]) -> None:
        """Persist the full project list."""
        payload = [p.model_dump(mode="json", by_alias=True) for p in projects]
        self._kv.set_json(self.PROJECTS_KEY, payload)

    def save(self, project: Project) -> bool:
        """
        Replace the stored project with the same id by this snapshot.
        Return False (and write nothing) when the project no longer exists.
        """
        projects = self.list_projects()
        for i, existing in enumerate(projects):
            if existing.id == project.id:
                projects[i] = project
                self.replace_all(projects)
                return True
        _log.warning("Project %s not found; snapshot not persisted", project.id)
        return False

    def add(self, project: Project) -> None:
        """Append a new project. Raises ValueError if the id is already taken."""
        projects = self.list_projects()
        if any(p.id == project.id for p in projects):
            raise ValueError(f"Project id '{project.id}' already exists.")
        projects.append(project)
        self.replace_all(projects)

    def remove(self, project_id: str) -> bool:
        """Drop a project. Return True if it existed."""
        projects = self.list_projects()
        remaining = [p for p in projects if p.id != project_id]
        if len(remaining) == len(projects):
            return False
        self.replace_all(remaining)
        return True
