"""Enrollment record stores."""

from __future__ import annotations

import abc
import json
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from .errors import StoreFormatError, ValidationError
from .field import parse_field_element, parse_salt, salt_to_field, to_hex

logger = logging.getLogger(__name__)

STORE_FORMAT_VERSION = 2


@dataclass(frozen=True)
class CommitmentRecord:
    """Public enrollment state for one identity."""

    identity: str
    salt: bytes
    commitment: int

    @property
    def salt_hex(self) -> str:
        return self.salt.hex()

    @property
    def salt_field(self) -> int:
        return salt_to_field(self.salt)

    @property
    def commitment_hex(self) -> str:
        return to_hex(self.commitment)

    def to_dict(self) -> Dict[str, str]:
        return {"salt": self.salt_hex, "commitment": self.commitment_hex}

    @staticmethod
    def from_dict(identity: str, data: Dict[str, str]) -> "CommitmentRecord":
        return CommitmentRecord(
            identity=identity,
            salt=parse_salt(data["salt"]),
            commitment=parse_field_element(data["commitment"], name="commitment"),
        )


class RecordStore(abc.ABC):
    """Keyed storage of :class:`CommitmentRecord` values.

    Writes for one identity are serialized; different identities never block
    each other. A per-identity lock lives only while someone holds or waits
    for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # identity -> (lock, number of holders and waiters)
        self._locks: Dict[str, Tuple[threading.Lock, int]] = {}

    @contextmanager
    def locked(self, identity: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(identity, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[identity] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                _, users = self._locks[identity]
                if users == 1:
                    del self._locks[identity]
                else:
                    self._locks[identity] = (lock, users - 1)

    def active_locks(self) -> int:
        with self._guard:
            return len(self._locks)

    @abc.abstractmethod
    def get(self, identity: str) -> Optional[CommitmentRecord]:
        ...

    @abc.abstractmethod
    def _write(self, record: CommitmentRecord) -> None:
        ...

    @abc.abstractmethod
    def _remove(self, identity: str) -> bool:
        ...

    def put(self, record: CommitmentRecord) -> None:
        with self.locked(record.identity):
            self._write(record)

    def delete(self, identity: str) -> bool:
        with self.locked(identity):
            return self._remove(identity)


class MemoryRecordStore(RecordStore):
    def __init__(self) -> None:
        super().__init__()
        self._records: Dict[str, CommitmentRecord] = {}

    def get(self, identity: str) -> Optional[CommitmentRecord]:
        return self._records.get(identity)

    def _write(self, record: CommitmentRecord) -> None:
        self._records[record.identity] = record

    def _remove(self, identity: str) -> bool:
        return self._records.pop(identity, None) is not None

    def __len__(self) -> int:
        return len(self._records)


class JsonRecordStore(RecordStore):
    """Persist records in a versioned JSON document.

    The file is rewritten whole through a temporary file, so readers never see
    a partially written record.
    """

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = path
        self._file_lock = threading.RLock()

    def _load(self) -> Dict[str, Dict[str, str]]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as handle:
            try:
                payload = json.load(handle)
            except json.JSONDecodeError as exc:
                raise StoreFormatError(f"{self.path} is not valid JSON") from exc
        return _records_of(payload, self.path)

    def _save(self, records: Dict[str, Dict[str, str]]) -> None:
        payload = {"version": STORE_FORMAT_VERSION, "records": records}
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        os.replace(tmp_path, self.path)

    def get(self, identity: str) -> Optional[CommitmentRecord]:
        with self._file_lock:
            raw = self._load().get(identity)
        if raw is None:
            return None
        try:
            return CommitmentRecord.from_dict(identity, raw)
        except (KeyError, ValidationError) as exc:
            raise StoreFormatError(f"Stored record for {identity!r} is corrupt") from exc

    def _write(self, record: CommitmentRecord) -> None:
        with self._file_lock:
            records = self._load()
            records[record.identity] = record.to_dict()
            self._save(records)

    def _remove(self, identity: str) -> bool:
        with self._file_lock:
            records = self._load()
            if records.pop(identity, None) is None:
                return False
            self._save(records)
            return True


def _records_of(payload: object, path: str) -> Dict[str, Dict[str, str]]:
    if not isinstance(payload, dict):
        raise StoreFormatError(f"{path} does not contain a record document")
    version = payload.get("version")
    if version == STORE_FORMAT_VERSION and isinstance(payload.get("records"), dict):
        return payload["records"]
    if version is None and _is_legacy(payload):
        raise StoreFormatError(f"{path} uses the legacy record format; run migrate-store first")
    raise StoreFormatError(f"{path} has unrecognized record format version {version!r}")


def _is_legacy(payload: Dict[str, object]) -> bool:
    return all(
        isinstance(value, dict) and "saltHex" in value and "commitmentHex" in value
        for value in payload.values()
    )


def migrate_legacy_store(path: str) -> int:
    """Rewrite a legacy ``{email: {saltHex, commitmentHex}}`` file in format 2.

    Every record is decoded strictly; a record that cannot be decoded aborts
    the migration and leaves the file untouched. Returns the record count.
    """

    with open(path, "r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise StoreFormatError(f"{path} is not valid JSON") from exc
    if isinstance(payload, dict) and payload.get("version") == STORE_FORMAT_VERSION:
        return len(_records_of(payload, path))
    if not isinstance(payload, dict) or not _is_legacy(payload):
        raise StoreFormatError(f"{path} is not a legacy record file")

    records: Dict[str, Dict[str, str]] = {}
    for identity, raw in payload.items():
        try:
            record = CommitmentRecord(
                identity=identity,
                salt=parse_salt(raw["saltHex"]),
                commitment=parse_field_element(raw["commitmentHex"], name="commitment"),
            )
        except ValidationError as exc:
            raise StoreFormatError(f"Legacy record for {identity!r} cannot be decoded: {exc}") from exc
        records[identity] = record.to_dict()

    store = JsonRecordStore(path)
    store._save(records)
    logger.info("Migrated %d legacy records in %s", len(records), path)
    return len(records)


__all__ = [
    "STORE_FORMAT_VERSION",
    "CommitmentRecord",
    "RecordStore",
    "MemoryRecordStore",
    "JsonRecordStore",
    "migrate_legacy_store",
]
