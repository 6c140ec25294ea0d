"""SQLModel table definitions. The whole application state lives in one key/value table."""

from sqlmodel import Field, SQLModel


class KeyValue(SQLModel, table=True):
    """Key/value namespace (projects, app_settings, project-settings-<id>). Values are JSON text."""

    __tablename__ = "kv_store"

    key: str = Field(primary_key=True)
    value: str = ""
