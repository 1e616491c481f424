"""
App settings document: permission table override and inactive pages.
"""
import logging
from typing import Optional

from salesdash.config import settings
from salesdash.schemas.settings import AppSettings, AppSettingsUpdate
from salesdash.services.observable import DocumentFeed, Observable

logger = logging.getLogger(__name__)


def _settings_ref(db):
    return db.collection(settings.SETTINGS_COLLECTION).document(settings.SETTINGS_DOCUMENT)


def get_app_settings(db) -> AppSettings:
    snapshot = _settings_ref(db).get()
    return AppSettings.from_document(snapshot.to_dict() if snapshot.exists else None)


def save_app_settings(db, update: AppSettingsUpdate) -> AppSettings:
    """Merge-upsert the provided fields."""
    payload = update.model_dump(by_alias=True, exclude_none=True)
    if payload:
        _settings_ref(db).set(payload, merge=True)
        logger.info("App settings updated: %s", ", ".join(sorted(payload)))
    return get_app_settings(db)


def watch_app_settings(db) -> DocumentFeed:
    return DocumentFeed(_settings_ref(db), AppSettings.from_document)


class SettingsFeedHolder:
    """Process-wide live settings, started with the application."""

    def __init__(self):
        self._feed: Optional[DocumentFeed] = None

    @property
    def running(self) -> bool:
        return self._feed is not None

    def start(self, db) -> None:
        if self._feed is None:
            self._feed = watch_app_settings(db)

    def get(self) -> Optional[Observable]:
        return self._feed

    def stop(self) -> None:
        if self._feed is not None:
            self._feed.close()
            self._feed = None


settings_feed = SettingsFeedHolder()
