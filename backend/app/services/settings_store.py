# Overview: Key-value stores backing the business hours gate (database + local JSON fallback).

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import AppSetting


logger = logging.getLogger(__name__)


class SettingsStoreError(ValueError):
    """The remote settings store could not be read or written."""


class DatabaseSettingsStore:
    """
    Remote key-value store over the app_settings table.

    get() returns None for an absent key. Any database failure is rolled back
    and surfaced as SettingsStoreError so callers can fall back.
    """

    def get(self, key: str) -> Any | None:
        try:
            row = db.session.query(AppSetting).filter_by(key=key).first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise SettingsStoreError(f"failed to read setting {key!r}: {exc}") from exc
        if row is None:
            return None
        return row.value

    def upsert(self, key: str, value: Any, updated_at: datetime) -> None:
        try:
            row = db.session.query(AppSetting).filter_by(key=key).first()
            if row is None:
                row = AppSetting(key=key)
                db.session.add(row)
            row.value = value
            row.updated_at = updated_at
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise SettingsStoreError(f"failed to save setting {key!r}: {exc}") from exc


class LocalFallbackStore:
    """
    Last-known-good copy of settings on local disk.

    Values are JSON strings keyed by name, all kept in one file. This store is
    best effort: I/O and decode errors are logged and treated as "absent".
    """

    def __init__(self, path: str):
        self.path = path
        # Serializes read-modify-write within this process
        self._lock = threading.Lock()

    def _load(self) -> dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            return {}
        return data

    def get(self, key: str) -> str | None:
        try:
            return self._load().get(key)
        except (OSError, ValueError) as exc:
            logger.debug("Error reading local fallback %s: %s", self.path, exc)
            return None

    def set(self, key: str, value: str) -> None:
        tmp_path = None
        try:
            with self._lock:
                try:
                    data = self._load()
                except ValueError:
                    data = {}
                data[key] = value
                parent = os.path.dirname(self.path) or "."
                os.makedirs(parent, exist_ok=True)
                # Unique temp file per write, then an atomic rename over the target
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=parent,
                    prefix=os.path.basename(self.path) + ".",
                    suffix=".tmp",
                    delete=False,
                ) as fh:
                    tmp_path = fh.name
                    json.dump(data, fh)
                os.replace(tmp_path, self.path)
                tmp_path = None
        except OSError as exc:
            logger.debug("Error writing local fallback %s: %s", self.path, exc)
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
