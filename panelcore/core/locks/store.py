from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from panelcore.core.errors import StorageInitError
from panelcore.core.locks.models import ResourceLock


class LockStore:
    """
    The lock document on disk: a JSON array of lock records.

    Only whole-document reads and writes are offered. Writes go to a temp file in the
    same directory and are moved into place with os.replace, so readers see either the
    old document or the new one.
    """

    def __init__(self, path: str, *, logger: Optional[logging.Logger] = None):
        self.path = path
        self.logger = logger or logging.getLogger(__name__)

    @property
    def directory(self) -> str:
        return os.path.dirname(os.path.abspath(self.path))

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def ensure(self) -> bool:
        try:
            os.makedirs(self.directory, exist_ok=True)
        except OSError as e:
            raise StorageInitError(path=self.directory, reason=str(e)) from e
        if self.exists():
            return True
        self.logger.info("Lock store %s missing; creating empty store.", self.path)
        return self.save_all([])

    def load_all(self) -> Tuple[bool, List[ResourceLock], Optional[str]]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            return False, [], "missing"
        except OSError as e:
            return False, [], f"read_failed:{e}"

        if not raw.strip():
            return True, [], None
        try:
            obj: Any = json.loads(raw)
        except json.JSONDecodeError as e:
            return False, [], f"corrupt_json:{e}"
        if not isinstance(obj, list):
            return False, [], "not_array"

        locks: List[ResourceLock] = []
        for entry in obj:
            try:
                lock = ResourceLock.model_validate(entry)
            except ValidationError:
                self.logger.warning("Skipping malformed lock entry in %s", self.path)
                continue
            if not lock.is_valid():
                self.logger.warning("Skipping invalid lock entry for resource '%s'", lock.resource_id)
                continue
            locks.append(lock)
        return True, locks, None

    def save_all(self, locks: List[ResourceLock]) -> bool:
        doc = [lock.to_document() for lock in locks if lock.is_valid()]
        tmp: Optional[str] = None
        try:
            os.makedirs(self.directory, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".tmp_locks_", suffix=".json", dir=self.directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, ensure_ascii=False)
                f.write("\n")
                try:
                    f.flush()
                    os.fsync(f.fileno())
                except OSError:
                    pass
            os.replace(tmp, self.path)
            return True
        except OSError as e:
            self.logger.error("Failed to write lock store %s: %s", self.path, e)
            return False
        finally:
            try:
                if tmp is not None and os.path.exists(tmp):
                    os.remove(tmp)
            except OSError:
                pass
