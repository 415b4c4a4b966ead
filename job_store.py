"""Registries for background scrape jobs: in-memory by default, SQLite when configured."""
from __future__ import annotations

import abc
import json
import sqlite3
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


@dataclass
class JobRecord:
    """Internal representation of one background scrape."""

    id: str
    status: str
    scraper: str
    url: str
    start_time: datetime
    completed_time: Optional[datetime] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the job into a JSON-ready structure."""

        return {
            "jobId": self.id,
            "status": self.status,
            "scraper": self.scraper,
            "url": self.url,
            "startTime": self.start_time.isoformat(),
            "completedTime": self.completed_time.isoformat() if self.completed_time else None,
            "result": self.result,
            "error": self.error,
            "metadata": self.metadata,
        }


class JobStore(abc.ABC):
    """Atomic ``put``/``get``/``list`` over :class:`JobRecord` objects."""

    @abc.abstractmethod
    def put(self, record: JobRecord) -> None:
        """Insert or replace ``record``."""

    @abc.abstractmethod
    def get(self, job_id: str) -> Optional[JobRecord]:
        ...

    @abc.abstractmethod
    def list(self) -> List[JobRecord]:
        """Return every job, oldest first."""


class InMemoryJobStore(JobStore):
    def __init__(self) -> None:
        self._records: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def put(self, record: JobRecord) -> None:
        with self._lock:
            self._records[record.id] = replace(record)

    def get(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            record = self._records.get(job_id)
            return replace(record) if record else None

    def list(self) -> List[JobRecord]:
        with self._lock:
            records = [replace(record) for record in self._records.values()]
        return sorted(records, key=lambda record: record.start_time)


class SqliteJobStore(JobStore):
    """SQLite backed persistence for :class:`JobRecord` objects."""

    def __init__(self, database: str) -> None:
        self.database = database
        db_path = Path(database)
        if db_path.parent and not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self.database)
        connection.row_factory = sqlite3.Row
        return connection

    def _ensure_schema(self) -> None:
        with self._connect() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS jobs (
                    id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    scraper TEXT NOT NULL,
                    url TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    completed_time TEXT,
                    result TEXT,
                    error TEXT,
                    metadata TEXT NOT NULL
                )
                """
            )

    def put(self, record: JobRecord) -> None:
        payload = (
            record.id,
            record.status,
            record.scraper,
            record.url,
            record.start_time.isoformat(),
            record.completed_time.isoformat() if record.completed_time else None,
            json.dumps(record.result) if record.result is not None else None,
            record.error,
            json.dumps(record.metadata or {}),
        )
        with self._connect() as connection:
            connection.execute(
                """
                INSERT OR REPLACE INTO jobs
                    (id, status, scraper, url, start_time, completed_time, result, error, metadata)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                payload,
            )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> JobRecord:
        return JobRecord(
            id=row["id"],
            status=row["status"],
            scraper=row["scraper"],
            url=row["url"],
            start_time=datetime.fromisoformat(row["start_time"]),
            completed_time=datetime.fromisoformat(row["completed_time"]) if row["completed_time"] else None,
            result=json.loads(row["result"]) if row["result"] else None,
            error=row["error"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
        )

    def get(self, job_id: str) -> Optional[JobRecord]:
        with self._connect() as connection:
            cursor = connection.execute("SELECT * FROM jobs WHERE id = ?", (job_id,))
            row = cursor.fetchone()
        if not row:
            return None
        return self._from_row(row)

    def list(self) -> List[JobRecord]:
        with self._connect() as connection:
            rows = connection.execute("SELECT * FROM jobs ORDER BY start_time").fetchall()
        return [self._from_row(row) for row in rows]


def create_job_store(path: Optional[str] = None) -> JobStore:
    """SQLite store when ``path`` is given, otherwise an in-memory one."""

    if path:
        return SqliteJobStore(path)
    return InMemoryJobStore()


__all__ = [
    "InMemoryJobStore",
    "JobRecord",
    "JobStore",
    "STATUS_COMPLETED",
    "STATUS_FAILED",
    "STATUS_RUNNING",
    "SqliteJobStore",
    "create_job_store",
]
