"""
Typed access to the application settings singleton.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from defaults import DEFAULT_SETTINGS
from schemas import SETTINGS_COLLECTION, AppSettings
from store import FALLBACK, Outbox, StoreResult, WriteResult, fetch_or_default, save

logger = logging.getLogger(__name__)


class SettingsStore:
    def __init__(self, db=None, outbox: Optional[Outbox] = None, defaults: Optional[Dict[str, Any]] = None):
        self.db = db
        self.outbox = outbox
        self.defaults = DEFAULT_SETTINGS if defaults is None else defaults

    def get(self) -> StoreResult[AppSettings]:
        result = fetch_or_default(SETTINGS_COLLECTION, self.defaults, db=self.db)
        try:
            settings = AppSettings.model_validate(result.data)
        except ValidationError as e:
            logger.error("Stored settings are invalid, using defaults: %s", e)
            return StoreResult(AppSettings.model_validate(self.defaults), FALLBACK, "invalid settings document")
        return StoreResult(settings, result.status, result.reason)

    def replace(self, settings: AppSettings) -> WriteResult:
        return save(SETTINGS_COLLECTION, settings.model_dump(), db=self.db, outbox=self.outbox)

    def update(self, changes: Dict[str, Any]) -> Tuple[AppSettings, WriteResult]:
        """Merge `changes` field by field over the current settings and store them."""
        current = self.get().data
        merged = AppSettings.model_validate({**current.model_dump(), **changes})
        return merged, self.replace(merged)
