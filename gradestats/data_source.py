"""Score record sources consumed by the statistics engine."""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import cachetools
import orjson
import pyarrow as pa
import pyarrow.parquet as pq
from pydantic import ValidationError

from . import schemas
from .errors import ComputationError, DataSourceError
from .utils import load_json, load_jsonl

logger = logging.getLogger(__name__)

JSON_SUFFIXES = {".json"}
JSONL_SUFFIXES = {".jsonl", ".ndjson"}
PARQUET_SUFFIXES = {".parquet"}

RecordLike = Union[schemas.ScoreRecord, Mapping[str, object]]


def record_from_obj(obj: Mapping[str, object]) -> schemas.ScoreRecord:
    if not isinstance(obj, Mapping):
        raise ComputationError(f"Score record must be an object, got {type(obj).__name__}")
    data = dict(obj)
    if data.get("scores") is None:
        data["scores"] = []
    try:
        return schemas.ScoreRecord.model_validate(data)
    except ValidationError as exc:
        raise ComputationError(f"Malformed score record: {exc}") from exc


def filter_by_class(
    records: Iterable[schemas.ScoreRecord],
    class_id: Optional[int],
) -> List[schemas.ScoreRecord]:
    if class_id is None:
        return list(records)
    return [record for record in records if record.class_id == class_id]


class ScoreSource:
    """Read capability the engine awaits once per request."""

    async def fetch_score_records(self, class_id: Optional[int] = None) -> List[schemas.ScoreRecord]:
        raise NotImplementedError


class InMemoryScoreSource(ScoreSource):
    def __init__(self, records: Iterable[RecordLike] = ()) -> None:
        self._records: Tuple[schemas.ScoreRecord, ...] = tuple(
            record if isinstance(record, schemas.ScoreRecord) else record_from_obj(record)
            for record in records
        )

    async def fetch_score_records(self, class_id: Optional[int] = None) -> List[schemas.ScoreRecord]:
        return filter_by_class(self._records, class_id)


class ScoreRecordStore(ScoreSource):
    """Serves score records from a JSON, JSON Lines or Parquet file.

    Parsed records are memoised per file version (path, mtime, size), so an
    unchanged file is read once and later edits are picked up on the next
    fetch.
    """

    def __init__(self, path: Path | str, cache_size: int = 8) -> None:
        self.path = Path(path)
        self._cache: cachetools.LRUCache = cachetools.LRUCache(maxsize=cache_size)
        self._lock = threading.Lock()

    async def fetch_score_records(self, class_id: Optional[int] = None) -> List[schemas.ScoreRecord]:
        records = await asyncio.to_thread(self.load_records)
        return filter_by_class(records, class_id)

    def load_records(self) -> Tuple[schemas.ScoreRecord, ...]:
        try:
            stat = self.path.stat()
        except FileNotFoundError as exc:
            raise DataSourceError(f"Score record file not found: {self.path}") from exc
        except OSError as exc:
            raise DataSourceError(f"Cannot access score record file {self.path}: {exc}") from exc

        key = (str(self.path), stat.st_mtime_ns, stat.st_size)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Using cached score records for %s", self.path)
            return cached

        records = tuple(record_from_obj(obj) for obj in self._read_documents())
        with self._lock:
            self._cache[key] = records
        logger.debug("Loaded %d score records from %s", len(records), self.path)
        return records

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def _read_documents(self) -> List[Dict[str, object]]:
        suffix = self.path.suffix.lower()
        try:
            if suffix in JSONL_SUFFIXES:
                return list(load_jsonl(self.path))
            if suffix in JSON_SUFFIXES:
                data = load_json(self.path)
                if not isinstance(data, list):
                    raise ComputationError(f"Expected a JSON array of score records in {self.path}")
                return data
            if suffix in PARQUET_SUFFIXES:
                documents: List[Dict[str, object]] = []
                parquet_file = pq.ParquetFile(self.path)
                for batch in parquet_file.iter_batches():
                    documents.extend(batch.to_pylist())
                return documents
        except (OSError, orjson.JSONDecodeError, pa.ArrowException) as exc:
            raise DataSourceError(f"Failed to read score records from {self.path}: {exc}") from exc
        raise DataSourceError(f"Unsupported score record file type: {self.path.name}")


__all__ = [
    "ScoreSource",
    "InMemoryScoreSource",
    "ScoreRecordStore",
    "record_from_obj",
    "filter_by_class",
]
