"""File-backed tablature storage.

Each tablature is one pretty-printed JSON file in the store directory. File
names are ``<epoch-ms>_<sanitized name>.json``; clients address stored tabs
by the name without the ``.json`` suffix.
"""

from __future__ import annotations

import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Callable

from app.core.errors import NotFoundAppError, StorageAppError, ValidationAppError
from app.schemas.tabs import TabData, TabSummary

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9]")
_VALID_FILENAME = re.compile(r"[A-Za-z0-9_-]+")


def sanitize_tab_name(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9]`` with ``_``.

    >>> sanitize_tab_name("My Riff #2")
    'My_Riff__2'
    """
    return _UNSAFE_NAME_CHARS.sub("_", name)


class TabStore:
    """Save, list, load and delete tablatures under ``base_dir``."""

    def __init__(
        self,
        base_dir: str | Path,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._base_dir = Path(base_dir)
        self._clock = clock

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def ensure_dir(self) -> None:
        """Create the store directory if it does not exist yet."""
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, filename: str) -> Path:
        if not _VALID_FILENAME.fullmatch(filename):
            raise ValidationAppError(
                code="invalid_filename",
                message="Invalid tablature file name",
                details={"hint": "Use the filename returned by /tabs or /save"},
            )
        return self._base_dir / f"{filename}.json"

    def save(self, tab: TabData) -> str:
        """Persist ``tab`` and return the stored file name (with ``.json``)."""
        filename = f"{int(self._clock() * 1000)}_{sanitize_tab_name(tab.name)}.json"
        payload = json.dumps(tab.model_dump(by_alias=True), indent=2, ensure_ascii=False)

        try:
            self.ensure_dir()
            (self._base_dir / filename).write_text(payload, encoding="utf-8")
        except OSError as exc:
            logger.error("tab_store.save_failed", extra={"tab_file": filename, "error_msg": str(exc)})
            raise StorageAppError(
                code="tab_save_failed",
                message="Could not save tablature",
                details={"filename": filename},
            ) from exc

        logger.info("tab_store.saved", extra={"tab_file": filename, "bytes": len(payload)})
        return filename

    def list_tabs(self) -> list[TabSummary]:
        """Summaries of every readable stored tablature.

        Corrupt or unreadable files are skipped.
        """
        if not self._base_dir.is_dir():
            return []

        summaries: list[TabSummary] = []
        for path in sorted(self._base_dir.glob("*.json")):
            # pydantic's ValidationError is a ValueError too
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                summary = TabSummary(
                    filename=path.stem,
                    name=data.get("name"),
                    stringCount=data.get("stringCount"),
                    timestamp=data.get("timestamp"),
                )
            except (OSError, ValueError, AttributeError) as exc:
                logger.warning(
                    "tab_store.unreadable_file",
                    extra={"tab_file": path.name, "error_type": type(exc).__name__},
                )
                continue

            summaries.append(summary)
        return summaries

    def load(self, filename: str) -> Any:
        """Return the stored JSON document for ``filename``."""
        path = self._path_for(filename)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise NotFoundAppError(
                code="tab_not_found",
                message="Tablature not found",
                details={"filename": filename},
            ) from exc
        except (OSError, ValueError) as exc:
            logger.error("tab_store.load_failed", extra={"tab_file": filename, "error_msg": str(exc)})
            raise StorageAppError(
                code="tab_load_failed",
                message="Could not read tablature",
                details={"filename": filename},
            ) from exc

    def delete(self, filename: str) -> None:
        path = self._path_for(filename)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFoundAppError(
                code="tab_not_found",
                message="Tablature not found",
                details={"filename": filename},
            ) from exc
        except OSError as exc:
            logger.error("tab_store.delete_failed", extra={"tab_file": filename, "error_msg": str(exc)})
            raise StorageAppError(
                code="tab_delete_failed",
                message="Could not delete tablature",
                details={"filename": filename},
            ) from exc

        logger.info("tab_store.deleted", extra={"tab_file": filename})
