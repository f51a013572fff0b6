# livrini/storage/local_store.py

"""JSON-file key/value store standing in for browser local storage."""

import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

from livrini.config.settings import Settings

logger = logging.getLogger("livrini.storage")

CART_UPDATED = "cartUpdated"
WISHLIST_UPDATED = "wishlistUpdated"
STORAGE_CHANGED = "storage"


class LocalStore:
    """Persistent key/value document shared by every client component.

    Values are JSON-native.  Every read goes to disk so that components
    (and other processes using the same file) always see the latest
    persisted state; there is no in-memory cache to fall out of date.

    Listeners subscribe to named events.  ``cartUpdated`` and
    ``wishlistUpdated`` are dispatched by the cart layer after its own
    writes; ``storage`` is dispatched by :meth:`poll` when another
    process changed the file.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path: Path = path or Settings.STORAGE_PATH
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._listeners: dict[str, list[Callable[[str], None]]] = {}
        self._seen_revision = self._revision()
        logger.debug("LocalStore opened at %s", self.path)

    # ── Raw document I/O ─────────────────────────────────

    def _revision(self) -> tuple[int, int] | None:
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return None
        return (stat.st_mtime_ns, stat.st_size)

    def _read(self) -> dict[str, Any]:
        """Load the whole document; corrupt or missing reads as empty."""
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(
                "Unreadable storage file %s, treating as empty: %s",
                self.path,
                exc,
            )
            return {}
        if not isinstance(data, dict):
            logger.warning("Storage root is not an object, ignoring it")
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> None:
        """Atomically replace the document on disk."""
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=".store-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._seen_revision = self._revision()

    # ── Key access ───────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, *keys: str) -> None:
        """Delete one or more keys; absent keys are ignored."""
        data = self._read()
        changed = False
        for key in keys:
            if key in data:
                del data[key]
                changed = True
        if changed:
            self._write(data)

    def update(
        self,
        key: str,
        mutate: Callable[[Any], Any],
        default: Any = None,
    ) -> Any:
        """Apply *mutate* to the freshest persisted value and store it.

        Returns the new value.
        """
        data = self._read()
        new_value = mutate(data.get(key, default))
        data[key] = new_value
        self._write(data)
        return new_value

    def keys(self) -> list[str]:
        return list(self._read())

    # ── Events ───────────────────────────────────────────

    def subscribe(
        self, event: str, callback: Callable[[str], None],
    ) -> Callable[[], None]:
        """Register *callback* for *event*; returns an unsubscribe hook."""
        self._listeners.setdefault(event, []).append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def dispatch(self, event: str) -> None:
        """Notify every listener of *event* in subscription order."""
        for callback in list(self._listeners.get(event, [])):
            callback(event)

    def poll(self) -> bool:
        """Detect writes made by another process.

        Dispatches ``storage`` and returns True when the file changed
        since this store last read or wrote it.
        """
        revision = self._revision()
        if revision == self._seen_revision:
            return False
        self._seen_revision = revision
        logger.debug("External storage change detected")
        self.dispatch(STORAGE_CHANGED)
        return True
