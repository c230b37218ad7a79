"""
Preference store: namespaced JSON values in the stored_values table.

Keys:
- <namespace>.preferences          {"units": ..., "region": ...}
- <namespace>.history.<calculator> list of calculation records, newest first

Storage problems (missing table, locked database, corrupt JSON) are logged
and never raised; readers fall back to defaults.
"""

import json
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES = {"units": "imperial", "region": "national"}
DEFAULT_HISTORY_LIMIT = 25


class PreferenceStore:

    def __init__(self, session_factory: Callable[[], Session], namespace: str = "costflow",
                 history_limit: int = DEFAULT_HISTORY_LIMIT, defaults: Optional[dict] = None):
        self.session_factory = session_factory
        self.namespace = namespace
        self.history_limit = max(1, int(history_limit))
        self.defaults = {**DEFAULT_PREFERENCES, **(defaults or {})}

    # --- Raw access ---

    def _key(self, *parts: str) -> str:
        return ".".join((self.namespace,) + parts)

    def _read(self, key: str):
        db = self.session_factory()
        try:
            row = db.query(models.StoredValue).filter(models.StoredValue.key == key).first()
            if row is None:
                return None
            return json.loads(row.value)
        except (SQLAlchemyError, ValueError) as e:
            logger.warning("Storage read failed for %s: %s", key, e)
            return None
        finally:
            db.close()

    def _write(self, key: str, value) -> bool:
        db = self.session_factory()
        try:
            row = db.query(models.StoredValue).filter(models.StoredValue.key == key).first()
            text = json.dumps(value, default=str)
            if row is None:
                db.add(models.StoredValue(key=key, value=text))
            else:
                row.value = text
                row.updated_at = datetime.utcnow()
            db.commit()
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Storage write failed for %s: %s", key, e)
            return False
        finally:
            db.close()

    def _delete(self, key: str) -> None:
        db = self.session_factory()
        try:
            db.query(models.StoredValue).filter(models.StoredValue.key == key).delete()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Storage delete failed for %s: %s", key, e)
        finally:
            db.close()

    # --- Preferences ---

    def get_preferences(self) -> dict:
        stored = self._read(self._key("preferences"))
        if not isinstance(stored, dict):
            stored = {}
        prefs = dict(self.defaults)
        for name, value in stored.items():
            if isinstance(value, str) and value:
                prefs[name] = value
        return prefs

    def get_preference(self, name: str, fallback=None):
        return self.get_preferences().get(name, fallback)

    def set_preference(self, name: str, value) -> dict:
        stored = self._read(self._key("preferences"))
        if not isinstance(stored, dict):
            stored = {}
        stored[name] = value
        self._write(self._key("preferences"), stored)
        return self.get_preferences()

    # --- Calculation history ---

    def remember_calculation(self, record) -> list[dict]:
        """Push a record onto its calculator's history (newest first, capped)."""
        entry = record.model_dump(mode="json") if hasattr(record, "model_dump") else dict(record)
        calculator = entry.get("type")
        if not calculator:
            logger.warning("Calculation record without a type; not stored")
            return []
        entries = [entry] + self.history(calculator)
        entries = entries[:self.history_limit]
        self._write(self._key("history", calculator), entries)
        return entries

    def history(self, calculator: str) -> list[dict]:
        entries = self._read(self._key("history", calculator))
        if not isinstance(entries, list):
            return []
        return [e for e in entries if isinstance(e, dict)]

    def clear_history(self, calculator: str) -> None:
        self._delete(self._key("history", calculator))
