from __future__ import annotations

import asyncio
import hashlib
import json
import os
import tempfile
import weakref
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar, Union

from app.store.errors import Conflict, CorruptData, DuplicateEntry, IOFailure, NotFound

Record = Dict[str, Any]
Collection = List[Record]

T = TypeVar("T")

# One writer per backing file across every store instance, per event loop.
_write_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, Dict[str, asyncio.Lock]]" = weakref.WeakKeyDictionary()


def _lock_for(path: Path) -> asyncio.Lock:
    locks = _write_locks.setdefault(asyncio.get_running_loop(), {})
    key = str(path.resolve())
    lock = locks.get(key)
    if lock is None:
        lock = locks[key] = asyncio.Lock()
    return lock


def fingerprint(raw: bytes) -> str:
    return hashlib.sha256(raw).hexdigest()


def _find_first(records: Collection, field: str, value: Any) -> Optional[Record]:
    for item in records:
        if field in item and item[field] == value:
            return item
    return None


def _index_of(records: Collection, record_id: Any) -> int:
    for i, item in enumerate(records):
        if item.get("id") == record_id:
            return i
    return -1


class JSONDocumentStore:
    """Movie records kept as one JSON array in a single file.

    Every operation starts from a fresh read of the file; nothing is cached
    between calls. Writes rewrite the whole collection through a temp file
    and an atomic rename. Mutations on the same file are serialized by a
    shared per-file lock, and a write fails with ``Conflict`` when the file bytes
    changed after the write loaded them (e.g. another process saved first).

    Failures are raised as ``app.store.errors`` exceptions; the store does
    not log or retry.
    """

    def __init__(self, data_file: Union[str, Path]):
        self.data_file = Path(data_file)

    @property
    def _lock(self) -> asyncio.Lock:
        return _lock_for(self.data_file)

    # ---------- raw file access (runs in a worker thread) ----------
    def _read_bytes(self) -> bytes:
        try:
            return self.data_file.read_bytes()
        except OSError as exc:
            raise IOFailure(f"Error reading file {self.data_file} : {exc}") from exc

    def _parse(self, raw: bytes) -> Collection:
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise CorruptData(f"Error parsing file {self.data_file} : {exc}") from exc
        if not isinstance(data, list):
            raise CorruptData(f"Error parsing file {self.data_file} : expected a JSON array, got {type(data).__name__}")
        for pos, item in enumerate(data):
            if not isinstance(item, dict):
                raise CorruptData(f"Error parsing file {self.data_file} : element {pos} is not an object")
        return data

    def _read(self) -> Tuple[str, Collection]:
        raw = self._read_bytes()
        return fingerprint(raw), self._parse(raw)

    def _dump(self, records: Collection) -> bytes:
        try:
            text = json.dumps(records, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as exc:
            raise CorruptData(f"Collection is not JSON serializable: {exc}") from exc
        return (text + "\n").encode("utf-8")

    def _write(self, records: Collection, expected: Optional[str] = None) -> None:
        payload = self._dump(records)
        if expected is not None and fingerprint(self._read_bytes()) != expected:
            raise Conflict(f"File {self.data_file} changed since it was loaded")
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "wb",
                dir=self.data_file.parent,
                prefix=f".{self.data_file.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.data_file)
            tmp_name = None
        except OSError as exc:
            raise IOFailure(f"Error writing file {self.data_file} : {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    async def _mutate(self, change: Callable[[Collection], T]) -> T:
        """Run load -> change -> save as a single locked cycle."""
        async with self._lock:
            loaded_fp, records = await asyncio.to_thread(self._read)
            result = change(records)
            await asyncio.to_thread(self._write, records, loaded_fp)
            return result

    # ---------- reads ----------
    async def load(self) -> Collection:
        _, records = await asyncio.to_thread(self._read)
        return records

    async def find_all(self) -> Collection:
        return await self.load()

    async def find_by_id(self, record_id: str) -> Record:
        found = _find_first(await self.load(), "id", record_id)
        if found is None:
            raise NotFound()
        return found

    async def find_by_field(self, field: str, value: Any) -> Record:
        found = _find_first(await self.load(), field, value)
        if found is None:
            raise NotFound()
        return found

    async def find_by_collection_field(self, field: str, value: Any) -> Collection:
        """Records whose list-valued ``field`` holds ``value``, ignoring case.

        An empty match set raises ``NotFound`` rather than returning ``[]``;
        the HTTP layer turns that into a 404.
        """
        needle = str(value).lower()
        found = [
            item
            for item in await self.load()
            if isinstance(item.get(field), list)
            and any(str(entry).lower() == needle for entry in item[field])
        ]
        if not found:
            raise NotFound()
        return found

    # ---------- writes ----------
    async def insert_new(self, record: Record) -> Record:
        """Append ``record`` unless another record already has its title."""

        def _append(records: Collection) -> Record:
            if _find_first(records, "title", record.get("title")) is not None:
                raise DuplicateEntry()
            records.append(record)
            return record

        return await self._mutate(_append)

    async def persist_entry(self, record: Record) -> Record:
        """Replace the stored record with the same id. No field merge."""

        def _replace(records: Collection) -> Record:
            idx = _index_of(records, record.get("id"))
            if idx == -1:
                raise NotFound()
            records[idx] = record
            return record

        return await self._mutate(_replace)

    async def update_entry(self, record_id: str, change: Callable[[Record], Record]) -> Record:
        """Read-modify-write one record inside a single locked cycle.

        ``change`` receives a copy of the stored record and returns its
        replacement; whatever it raises propagates and nothing is saved.
        The replacement keeps ``record_id``. A title already held by another
        record raises ``DuplicateEntry``.
        """

        def _apply(records: Collection) -> Record:
            idx = _index_of(records, record_id)
            if idx == -1:
                raise NotFound()
            updated = {**change(dict(records[idx])), "id": records[idx]["id"]}
            if "title" in updated:
                for pos, item in enumerate(records):
                    if pos != idx and "title" in item and item["title"] == updated["title"]:
                        raise DuplicateEntry()
            records[idx] = updated
            return updated

        return await self._mutate(_apply)

    async def delete_entry_by_id(self, record_id: str) -> None:
        def _remove(records: Collection) -> None:
            idx = _index_of(records, record_id)
            if idx == -1:
                raise NotFound()
            del records[idx]

        await self._mutate(_remove)

    async def save(self, records: Collection) -> None:
        """Overwrite the file with ``records`` unconditionally."""
        async with self._lock:
            await asyncio.to_thread(self._write, list(records))

    async def ensure_exists(self) -> bool:
        """Create an empty collection file if none exists. Returns True if created."""
        async with self._lock:
            if await asyncio.to_thread(self.data_file.exists):
                return False
            try:
                self.data_file.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise IOFailure(f"Error creating directory {self.data_file.parent} : {exc}") from exc
            await asyncio.to_thread(self._write, [])
            return True
