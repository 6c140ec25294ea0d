"""Repository layer: storage access only. No ORM calls in business logic."""

from captioner.repository.kv_repo import KeyValueRepository
from captioner.repository.project_repo import ProjectRepository
from captioner.repository.settings_repo import SettingsRepository

__all__ = [
    "KeyValueRepository",
    "ProjectRepository",
    "SettingsRepository",
]
