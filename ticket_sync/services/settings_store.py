"""Jira integration settings, persisted as a named JSON record"""

import enum
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ticket_sync.models import StoredSettings

logger = logging.getLogger(__name__)

SETTINGS_NAME = "jira.settings"
MASKED_TOKEN = "********"


class SyncDirection(str, enum.Enum):
    """Which side is allowed to push changes to the other"""

    OUTBOUND_ONLY = "outbound_only"
    INBOUND_ONLY = "inbound_only"
    BIDIRECTIONAL = "bidirectional"


DEFAULT_SYNC_DIRECTION = SyncDirection.OUTBOUND_ONLY

# Values written by older installs of the plugin.
_LEGACY_DIRECTIONS = {
    "escalated_to_jira": SyncDirection.OUTBOUND_ONLY,
    "jira_to_escalated": SyncDirection.INBOUND_ONLY,
}


class FieldMapping(BaseModel):
    local_field: str
    jira_field: str


def default_field_mapping() -> List[FieldMapping]:
    return [
        FieldMapping(local_field="subject", jira_field="summary"),
        FieldMapping(local_field="description", jira_field="description"),
        FieldMapping(local_field="priority", jira_field="priority"),
        FieldMapping(local_field="status", jira_field="status"),
        FieldMapping(local_field="assignee", jira_field="assignee"),
    ]


class JiraSettings(BaseModel):
    """The integration's settings record"""

    jira_url: str = ""
    api_email: str = ""
    api_token: str = ""
    default_project: str = ""
    default_issue_type: str = "Task"
    auto_create: bool = False
    sync_direction: SyncDirection = DEFAULT_SYNC_DIRECTION
    field_mapping: List[FieldMapping] = default_field_mapping()

    @field_validator("sync_direction", mode="before")
    @classmethod
    def _coerce_direction(cls, value: Any) -> SyncDirection:
        if isinstance(value, SyncDirection):
            return value
        raw = str(value or "").strip().lower()
        if raw in _LEGACY_DIRECTIONS:
            return _LEGACY_DIRECTIONS[raw]
        try:
            return SyncDirection(raw)
        except ValueError:
            logger.warning(
                f"Unknown sync_direction '{value}', falling back to '{DEFAULT_SYNC_DIRECTION.value}'"
            )
            return DEFAULT_SYNC_DIRECTION

    @field_validator("field_mapping", mode="before")
    @classmethod
    def _coerce_field_mapping(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return default_field_mapping()
        entries = []
        for item in value:
            # Accept the legacy {"escalated_field", "jira_field"} spelling.
            if isinstance(item, dict) and "local_field" not in item and "escalated_field" in item:
                item = {"local_field": item["escalated_field"], "jira_field": item.get("jira_field", "")}
            entries.append(item)
        return entries

    @field_validator("jira_url", "api_email", "api_token", "default_project", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def is_configured(self) -> bool:
        return bool(self.jira_url and self.api_email and self.api_token)

    def jira_field_for(self, local_field: str) -> Optional[str]:
        """Jira field a local field maps to (first entry wins), or None."""
        for entry in self.field_mapping:
            if entry.local_field == local_field:
                return entry.jira_field or None
        return None

    def public_dict(self) -> Dict[str, Any]:
        """Settings safe to show in the admin UI (token masked)."""
        data = self.model_dump(mode="json")
        data["api_token"] = MASKED_TOKEN if self.api_token else ""
        return data


def merge_settings(defaults: Mapping[str, Any], loaded: Mapping[str, Any]) -> Dict[str, Any]:
    """Defaults fill absent keys; loaded values always win."""
    merged = dict(defaults)
    merged.update(loaded)
    return merged


class SettingsStore:
    """Lazily loaded, explicitly saved settings record.

    Construct one per process and hand it to every component that needs settings.
    """

    def __init__(self, session_factory: Callable[[], Session], name: str = SETTINGS_NAME):
        self._session_factory = session_factory
        self._name = name
        self._cached: Optional[JiraSettings] = None
        self._lock = threading.Lock()

    @staticmethod
    def defaults() -> JiraSettings:
        return JiraSettings()

    def _load_raw(self) -> Optional[Dict[str, Any]]:
        db = self._session_factory()
        try:
            row = db.query(StoredSettings).filter(StoredSettings.name == self._name).first()
        except SQLAlchemyError as e:
            logger.warning(f"Could not read settings record '{self._name}': {e}")
            return None
        finally:
            db.close()
        if row is None or not row.value:
            return None
        try:
            data = json.loads(row.value)
        except ValueError:
            logger.warning(f"Settings record '{self._name}' is not valid JSON; using defaults")
            return None
        return data if isinstance(data, dict) else None

    def _build(self, data: Mapping[str, Any]) -> JiraSettings:
        defaults = self.defaults().model_dump(mode="json")
        merged = merge_settings(defaults, data)
        try:
            return JiraSettings.model_validate(merged)
        except ValidationError as e:
            # Reset only the offending fields; the rest of the stored record stands.
            bad = {err["loc"][0] for err in e.errors() if err.get("loc")}
            logger.warning(f"Stored settings have invalid fields {sorted(map(str, bad))}; using their defaults")
            for key in bad:
                if key in defaults:
                    merged[key] = defaults[key]
        try:
            return JiraSettings.model_validate(merged)
        except ValidationError as e:
            logger.warning(f"Stored settings are malformed ({e}); using defaults")
            return self.defaults()

    def all(self) -> JiraSettings:
        """Current settings (loaded from the database on first use)."""
        if self._cached is None:
            with self._lock:
                if self._cached is None:
                    self._cached = self._build(self._load_raw() or {})
        return self._cached

    def reload(self) -> JiraSettings:
        self._cached = None
        return self.all()

    def get(self, key: str, default: Any = None) -> Any:
        value = getattr(self.all(), key, None)
        return default if value is None else value

    def is_configured(self) -> bool:
        return self.all().is_configured()

    def save(self, values: Union[JiraSettings, Mapping[str, Any]]) -> JiraSettings:
        """Persist settings; a partial mapping is merged over the current record.

        Raises pydantic.ValidationError (and writes nothing) if the result is invalid.
        """
        if isinstance(values, JiraSettings):
            new_settings = values
        else:
            merged = merge_settings(self.all().model_dump(mode="json"), values)
            new_settings = JiraSettings.model_validate(merged)

        payload = json.dumps(new_settings.model_dump(mode="json"), sort_keys=True)
        with self._lock:
            db = self._session_factory()
            try:
                row = db.query(StoredSettings).filter(StoredSettings.name == self._name).first()
                if row is None:
                    row = StoredSettings(name=self._name, value=payload)
                    db.add(row)
                else:
                    row.value = payload
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()
            self._cached = new_settings
        logger.info(f"Saved settings record '{self._name}'")
        return new_settings

    def ensure_defaults(self) -> bool:
        """Store the default record if none exists yet. Returns True if one was written."""
        if self._load_raw() is not None:
            return False
        self.save(self.defaults())
        return True
