"""Settings repository: app-wide provider settings and per-project analysis settings."""

from captioner.ai.schema import ProjectSettings, ProviderName
from captioner.models.project import AppSettings
from captioner.repository.kv_repo import KeyValueRepository


class SettingsRepository:
    """
    Stores AppSettings under "app_settings" and ProjectSettings under "project-settings-<id>".
    Missing documents resolve to defaults.
    """

    APP_SETTINGS_KEY = "app_settings"
    PROJECT_SETTINGS_PREFIX = "project-settings-"

    def __init__(self, kv_repo: KeyValueRepository) -> None:
        self._kv = kv_repo

    @classmethod
    def project_settings_key(cls, project_id: str) -> str:
        return f"{cls.PROJECT_SETTINGS_PREFIX}{project_id}"

    def get_app_settings(self) -> AppSettings:
        raw = self._kv.get_json(self.APP_SETTINGS_KEY)
        if raw is None:
            return AppSettings()
        return AppSettings.model_validate(raw)

    def save_app_settings(self, settings: AppSettings) -> None:
        self._kv.set_json(self.APP_SETTINGS_KEY, settings.model_dump(mode="json", by_alias=True))

    def set_provider(self, provider: ProviderName) -> AppSettings:
        """Select the active provider; return the updated settings."""
        settings = self.get_app_settings()
        settings = settings.model_copy(update={"api_provider": provider})
        self.save_app_settings(settings)
        return settings

    def set_api_key(self, provider: ProviderName, key: str) -> AppSettings:
        """Store an API key for provider; an empty key clears it."""
        if provider == ProviderName.mock:
            raise ValueError("The mock provider does not take an API key.")
        settings = self.get_app_settings()
        keys = settings.api_keys.model_copy(update={provider.value: key.strip() or None})
        settings = settings.model_copy(update={"api_keys": keys})
        self.save_app_settings(settings)
        return settings

    def get_project_settings(self, project_id: str) -> ProjectSettings:
        raw = self._kv.get_json(self.project_settings_key(project_id))
        if raw is None:
            return ProjectSettings()
        return ProjectSettings.model_validate(raw)

    def save_project_settings(self, project_id: str, settings: ProjectSettings) -> None:
        self._kv.set_json(
            self.project_settings_key(project_id),
            settings.model_dump(mode="json", by_alias=True),
        )

    def delete_project_settings(self, project_id: str) -> None:
        self._kv.delete_value(self.project_settings_key(project_id))
