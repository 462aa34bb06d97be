from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any
import shutil
import threading

import yaml


class ReservationStorageError(RuntimeError):
    pass


class StoreConflict(ReservationStorageError):
    """A concurrent commit invalidated what this transaction read or wrote."""


def _read_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None


def _write_yaml(path: Path, payload: Any) -> None:
    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        temp_path.write_text(yaml.safe_dump(payload, allow_unicode=True, sort_keys=True), encoding="utf-8")
        temp_path.replace(path)
    except OSError as error:
        raise ReservationStorageError(f"Failed to write YAML file: {path}") from error
    finally:
        if temp_path.exists():
            temp_path.unlink(missing_ok=True)


def _backup_corrupted(path: Path) -> Path:
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
    try:
        if path.exists():
            shutil.copy2(path, backup_path)
    except OSError:
        pass
    return backup_path


class ReservationEventLog:
    """Append-only YAML list of ``{event_time, event_type, payload}`` entries."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.write_text("[]\n", encoding="utf-8")

    def log(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        with self._lock:
            events = self._read_events()
            events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
            _write_yaml(self.path, events)

    def events(self) -> list[dict[str, Any]]:
        with self._lock:
            return self._read_events()

    def _read_events(self) -> list[dict[str, Any]]:
        try:
            payload = _read_yaml(self.path)
        except (OSError, UnicodeDecodeError, yaml.YAMLError):
            _backup_corrupted(self.path)
            return []
        if not isinstance(payload, list):
            return []
        return [row for row in payload if isinstance(row, dict)]


class Transaction:
    """Snapshot of the store plus buffered writes.

    Reads see the snapshot taken when the transaction opened, overlaid with
    this transaction's own writes. Every scanned prefix and read key is
    remembered so the store can reject the commit if another transaction
    changed any of them in the meantime.
    """

    def __init__(self, store: "YamlKeyValueStore", snapshot: dict[str, str], start_seq: int, read_only: bool) -> None:
        self._store = store
        self._snapshot = snapshot
        self.start_seq = start_seq
        self.read_only = read_only
        self.writes: dict[str, str] = {}
        self.read_keys: set[str] = set()
        self.read_prefixes: set[str] = set()
        self._closed = False

    def get(self, key: str) -> str | None:
        self._ensure_open()
        self.read_keys.add(key)
        if key in self.writes:
            return self.writes[key]
        return self._snapshot.get(key)

    def iterate_prefix(self, prefix: str) -> list[tuple[str, str]]:
        self._ensure_open()
        self.read_prefixes.add(prefix)
        merged = {key: value for key, value in self._snapshot.items() if key.startswith(prefix)}
        merged.update((key, value) for key, value in self.writes.items() if key.startswith(prefix))
        return sorted(merged.items())

    def set(self, key: str, value: str) -> None:
        self._ensure_open()
        if self.read_only:
            raise ReservationStorageError("Cannot write inside a read-only transaction.")
        if not isinstance(key, str) or not isinstance(value, str):
            raise TypeError("Store keys and values must be strings.")
        self.writes[key] = value

    def commit(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.writes:
            self._store._commit(self)

    def discard(self) -> None:
        self._closed = True
        self.writes.clear()

    def _ensure_open(self) -> None:
        if self._closed:
            raise ReservationStorageError("Transaction is already closed.")

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type: Any, exc: Any, traceback: Any) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.discard()


class YamlKeyValueStore:
    """Ordered string key-value store persisted as one YAML mapping.

    Commits use optimistic concurrency: a transaction fails with
    ``StoreConflict`` when a key it scanned or read was committed after it
    opened, when it writes a key that already exists, or when the store was
    wiped after it opened. One instance owns its data file.
    """

    def __init__(
        self,
        base_dir: str | Path = "data",
        event_log: ReservationEventLog | None = None,
        file_name: str = "reservations.yaml",
    ) -> None:
        self.base_dir = Path(base_dir)
        self.data_file = self.base_dir / file_name
        self.event_log = event_log
        self._lock = threading.Lock()
        self._commit_seq = 0
        self._cleared_at = 0
        self._key_versions: dict[str, int] = {}
        self._ensure_files()
        self._records = self._read_records()

    def _ensure_files(self) -> None:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            if not self.data_file.exists():
                self.data_file.write_text("{}\n", encoding="utf-8")
        except OSError as error:
            raise ReservationStorageError(f"Cannot open store directory: {self.base_dir}") from error

    def _read_records(self) -> dict[str, str]:
        try:
            payload = _read_yaml(self.data_file)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(error)
            return {}

        if payload is None:
            return {}
        if not isinstance(payload, dict):
            self._recover_corrupted_yaml(ValueError("top-level YAML is not a mapping"))
            return {}

        records: dict[str, str] = {}
        for key, value in payload.items():
            if isinstance(key, str) and isinstance(value, str):
                records[key] = value
            else:
                self._log_event(
                    "RECORD_SKIPPED",
                    {
                        "file": self.data_file.name,
                        "key": str(key),
                        "reason": "key and value must be strings",
                    },
                )
        return records

    def _recover_corrupted_yaml(self, error: Exception) -> None:
        backup_path = _backup_corrupted(self.data_file)
        _write_yaml(self.data_file, {})
        self._log_event(
            "YAML_RECOVERED",
            {
                "file": self.data_file.name,
                "backup": backup_path.name,
                "reason": str(error),
            },
        )

    def _log_event(self, event_type: str, payload: dict[str, Any]) -> None:
        if self.event_log is not None:
            self.event_log.log(event_type, payload)

    def transaction(self) -> Transaction:
        with self._lock:
            return Transaction(self, dict(self._records), self._commit_seq, read_only=False)

    def view(self) -> Transaction:
        with self._lock:
            return Transaction(self, dict(self._records), self._commit_seq, read_only=True)

    def iterate_prefix(self, prefix: str = "") -> list[tuple[str, str]]:
        with self.view() as txn:
            return txn.iterate_prefix(prefix)

    def drop_all(self) -> int:
        with self._lock:
            dropped = len(self._records)
            _write_yaml(self.data_file, {})
            self._records = {}
            self._key_versions.clear()
            self._commit_seq += 1
            self._cleared_at = self._commit_seq
            return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _commit(self, txn: Transaction) -> None:
        with self._lock:
            if self._cleared_at > txn.start_seq:
                raise StoreConflict("Store was reset while the transaction was open.")

            for key in txn.writes:
                if key in self._records:
                    raise StoreConflict(f"Key already exists: {key}")

            for key, version in self._key_versions.items():
                if version <= txn.start_seq:
                    continue
                if key in txn.read_keys or any(key.startswith(prefix) for prefix in txn.read_prefixes):
                    raise StoreConflict(f"Concurrent commit touched {key}")

            updated = dict(self._records)
            updated.update(txn.writes)
            _write_yaml(self.data_file, updated)

            self._records = updated
            self._commit_seq += 1
            for key in txn.writes:
                self._key_versions[key] = self._commit_seq
