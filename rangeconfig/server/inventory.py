"""Inventory snapshot store.

The inventory is held as an immutable tuple of InstanceRecord. Reloads read
and validate the file outside any lock, then swap the snapshot under the
write side of a reader/writer lock; resolves hold the read side only long
enough to match. A failed reload never touches the current snapshot.
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from pydantic import TypeAdapter, ValidationError

from rangeconfig.errors import InventoryLoadError
from rangeconfig.schemas import InstanceRecord
from rangeconfig.server.matcher import find_duplicate_macs, find_instance_by_mac

logger = logging.getLogger(__name__)

_records_adapter = TypeAdapter(list[InstanceRecord])


class ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Generator[None, None, None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Generator[None, None, None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def read_inventory(path: str | Path) -> tuple[InstanceRecord, ...]:
    """Read and validate an inventory file.

    Raises:
        InventoryLoadError: file unreadable, not JSON, or not a list of instances
    """
    try:
        data = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise InventoryLoadError(f"Failed to read instances file: {e}", path=str(path)) from e

    try:
        raw = json.loads(data)
    except json.JSONDecodeError as e:
        raise InventoryLoadError(f"Failed to parse instances JSON: {e}", path=str(path)) from e

    try:
        records = _records_adapter.validate_python(raw)
    except ValidationError as e:
        raise InventoryLoadError(
            f"Invalid instances structure: {e.error_count()} error(s)", path=str(path)
        ) from e

    return tuple(records)


class InventoryStore:
    """Owns the current inventory snapshot."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = ReadWriteLock()
        self._instances: tuple[InstanceRecord, ...] = ()

    def load(self, path: str | Path | None = None) -> int:
        """Replace the snapshot with the contents of the inventory file.

        All-or-nothing: on error the previous snapshot stays in place.

        Returns:
            Number of instances loaded
        """
        source = Path(path) if path is not None else self.path
        instances = read_inventory(source)

        for mac, names in find_duplicate_macs(instances).items():
            logger.warning(
                f"MAC {mac} is declared by several instances {names}; "
                f"requests will resolve to {names[0]}"
            )

        with self._lock.write():
            self._instances = instances
            if path is not None:
                self.path = source

        logger.info(f"Loaded {len(instances)} instances from {source}")
        return len(instances)

    def snapshot(self) -> tuple[InstanceRecord, ...]:
        with self._lock.read():
            return self._instances

    def count(self) -> int:
        return len(self.snapshot())

    def find_by_mac(self, mac: str) -> InstanceRecord | None:
        with self._lock.read():
            return find_instance_by_mac(mac, self._instances)
