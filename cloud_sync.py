"""
cloud_sync.py

Backup blob exchanged with the remote store, and the store interface.

The remote store is a plain key -> document store keyed by a user-chosen
sync id (shared between devices). The blob is the app's own data, not the
Excel format:

{
  "employeesMap": {"<store>": [ {employee}, ... ]},
  "shiftDefs":    {"<code>": {definition}, ...},
  "data":         {"<store>": {"2025-01-06": {"<emp id>": "A:2"}}},
  "lastUpdated":  "2025-01-06T09:30:00",
  "version":      1
}

Failures are classified so callers can tell the user what happened; nothing
here retries. A transport that gives up waiting (network transports should
use a client-side timeout of 15-20 s) raises SyncTimeoutError.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List
from urllib.parse import quote

from schedule_models import Employee, ScheduleProject, StoreSchedule
from shift_catalog import ShiftDefinition, catalog_from_dict, catalog_to_dict

BACKUP_VERSION = 1


class SyncError(RuntimeError):
    pass


class SyncNotFoundError(SyncError):
    pass


class SyncPermissionError(SyncError):
    pass


class SyncUnavailableError(SyncError):
    pass


class SyncTimeoutError(SyncError):
    pass


@dataclass
class CloudBackup:
    employees_map: Dict[str, List[Employee]] = field(default_factory=dict)
    shift_defs: Dict[str, ShiftDefinition] = field(default_factory=dict)
    data: Dict[str, StoreSchedule] = field(default_factory=dict)
    last_updated: str = ""
    version: int = BACKUP_VERSION

    @classmethod
    def from_project(cls, project: ScheduleProject) -> "CloudBackup":
        return cls(
            employees_map={project.store_name: list(project.employees)},
            shift_defs=dict(project.shift_definitions),
            data={project.store_name: {day: dict(cells) for day, cells in project.schedule.items()}},
            last_updated=datetime.now().isoformat(timespec="seconds"),
        )

    def to_dict(self) -> dict:
        return {
            "employeesMap": {s: [e.to_dict() for e in emps] for s, emps in self.employees_map.items()},
            "shiftDefs": catalog_to_dict(self.shift_defs),
            "data": self.data,
            "lastUpdated": self.last_updated,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "CloudBackup":
        return cls(
            employees_map={s: [Employee.from_dict(e) for e in emps]
                           for s, emps in (d.get("employeesMap") or {}).items()},
            shift_defs=catalog_from_dict(d.get("shiftDefs") or {}),
            data=d.get("data") or {},
            last_updated=str(d.get("lastUpdated", "")),
            version=int(d.get("version", BACKUP_VERSION)),
        )


def check_sync_id(sync_id: str) -> str:
    s = (sync_id or "").strip()
    if not s:
        raise SyncError("Sync id is empty.")
    return s


class SyncStore(ABC):
    @abstractmethod
    def save(self, sync_id: str, backup: CloudBackup) -> None:
        ...

    @abstractmethod
    def load(self, sync_id: str) -> CloudBackup:
        """Raises SyncNotFoundError when nothing is stored under sync_id."""


class DirectorySyncStore(SyncStore):
    """One JSON document per sync id in a (shared) directory."""

    def __init__(self, root: str):
        self.root = Path(root)

    def _path(self, sync_id: str) -> Path:
        # percent-encoding keeps distinct ids apart and "/" out of the name
        return self.root / f"{quote(check_sync_id(sync_id), safe='')}.json"

    def save(self, sync_id: str, backup: CloudBackup) -> None:
        path = self._path(sync_id)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(backup.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        except TimeoutError as e:
            raise SyncTimeoutError(f"Upload timed out for sync id {sync_id!r}: {e}") from e
        except PermissionError as e:
            raise SyncPermissionError(f"Write rejected for sync id {sync_id!r}: {e}") from e
        except OSError as e:
            raise SyncUnavailableError(f"Upload failed: {e}") from e

    def load(self, sync_id: str) -> CloudBackup:
        path = self._path(sync_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise SyncNotFoundError(f"No backup stored under sync id {sync_id!r}.") from e
        except TimeoutError as e:
            raise SyncTimeoutError(f"Download timed out for sync id {sync_id!r}: {e}") from e
        except PermissionError as e:
            raise SyncPermissionError(f"Read rejected for sync id {sync_id!r}: {e}") from e
        except OSError as e:
            raise SyncUnavailableError(f"Download failed: {e}") from e
        try:
            return CloudBackup.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise SyncUnavailableError(f"Stored backup for {sync_id!r} is unreadable: {e}") from e
