"""Database operations for harvested job postings."""

import asyncio
import json
import logging
import math
import os
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

import aiosqlite

from ..models import JobPage, JobPosting, JobQuery
from ..models.results import SORTABLE_FIELDS

# Set up logging
logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 1

# Database configuration
BUSY_TIMEOUT_MS = 5000
BATCH_SIZE = 100
TOP_SKILLS_LIMIT = 20

JOB_COLUMNS = (
    "id",
    "identity_key",
    "title",
    "company",
    "location",
    "description",
    "url",
    "salary",
    "job_type",
    "experience_level",
    "skills",
    "posted_date",
    "source",
    "created_at",
    "updated_at",
)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Exception raised when the database has not been opened."""

    pass


class DuplicateJobError(DatabaseError):
    """Exception raised when a job with the same identity already exists."""

    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_job(row: aiosqlite.Row) -> JobPosting:
    data = {key: row[key] for key in row.keys() if key != "identity_key"}
    data["skills"] = json.loads(data["skills"] or "[]")
    return JobPosting(**data)


class JobRepository:
    """Handles persistence and queries for job postings."""

    def __init__(self, db_path: str, *, readonly: bool = False):
        """Create a repository handle.

        Args:
            db_path: Path to the SQLite database file, or ``:memory:``
            readonly: If True, write operations raise ``DatabaseError``
        """
        self.db_path = db_path
        self._readonly = readonly
        self._conn: Optional[aiosqlite.Connection] = None
        self._init_lock = asyncio.Lock()  # protects first-time bootstrap

        if self.db_path != ":memory:":
            db_dirname = os.path.dirname(self.db_path)
            if db_dirname:
                os.makedirs(db_dirname, exist_ok=True)

        logger.info(f"Database handle created for: {self.db_path} (readonly={readonly})")

    async def ainit(self) -> "JobRepository":
        """
        Open the connection and run any pending migrations, so callers can do:

            repo = await JobRepository(path).ainit()
        """
        async with self._init_lock:
            if self._conn is None:
                self._conn = await aiosqlite.connect(self.db_path)
                self._conn.row_factory = aiosqlite.Row
                await self._conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
            await self.init_db()
        return self

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise DatabaseConnectionError("Repository not initialized. Call ainit() first.")
        return self._conn

    async def init_db(self) -> None:
        """Create tables and indexes, tracking the schema version."""
        try:
            await self.conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)
            async with self.conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            ) as cursor:
                result = await cursor.fetchone()
            current_version = result[0] if result else 0

            if current_version < SCHEMA_VERSION:
                logger.info(f"Upgrading schema from version {current_version} to {SCHEMA_VERSION}")
                await self.conn.execute("""
                    CREATE TABLE IF NOT EXISTS jobs (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        identity_key TEXT UNIQUE NOT NULL,
                        title TEXT NOT NULL,
                        company TEXT NOT NULL,
                        location TEXT,
                        description TEXT,
                        url TEXT NOT NULL,
                        salary TEXT,
                        job_type TEXT NOT NULL DEFAULT 'Other',
                        experience_level TEXT NOT NULL DEFAULT 'Not Specified',
                        skills TEXT NOT NULL DEFAULT '[]',
                        posted_date TEXT,
                        source TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
                await self.conn.execute("CREATE INDEX IF NOT EXISTS idx_jobs_source ON jobs(source)")
                await self.conn.execute("CREATE INDEX IF NOT EXISTS idx_jobs_url ON jobs(url)")
                await self.conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_jobs_created_at ON jobs(created_at)"
                )
                await self.conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
                )
                await self.conn.commit()
                logger.info(f"Schema upgraded to version {SCHEMA_VERSION}")
            else:
                logger.debug(f"Database schema is up to date (version {current_version})")
        except aiosqlite.Error as e:
            logger.error(f"Failed to initialize database: {str(e)}")
            raise DatabaseError(f"Failed to initialize database: {str(e)}") from e

    async def check_connection(self) -> bool:
        """Check if the database connection is working."""
        try:
            async with self.conn.execute("SELECT 1") as cursor:
                await cursor.fetchone()
            return True
        except Exception:
            return False

    def _write_guard(self, op: str) -> None:
        if self._readonly:
            logger.debug("WRITE-GUARD tripped on %s", op)
            raise DatabaseError(f"{op} is disabled in read-only mode")

    async def find_by_identity(self, key: str) -> Optional[JobPosting]:
        """Return the stored job with this identity key, if any."""
        async with self.conn.execute(
            "SELECT * FROM jobs WHERE identity_key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_job(row) if row else None

    async def exists(self, key: str) -> bool:
        async with self.conn.execute(
            "SELECT 1 FROM jobs WHERE identity_key = ?", (key,)
        ) as cursor:
            return await cursor.fetchone() is not None

    async def insert_job(self, job: JobPosting) -> JobPosting:
        """Insert a new job posting.

        Raises:
            DuplicateJobError: If a job with the same identity is already stored
            DatabaseError: If the database is read-only or the write fails
        """
        self._write_guard("insert_job")
        now = _now()
        values = {
            "identity_key": job.identity_key(),
            "title": job.title,
            "company": job.company,
            "location": job.location,
            "description": job.description,
            "url": job.url,
            "salary": job.salary,
            "job_type": job.job_type.value,
            "experience_level": job.experience_level.value,
            "skills": json.dumps(job.skills),
            "posted_date": job.posted_date.isoformat() if job.posted_date else None,
            "source": job.source.value,
            "created_at": now,
            "updated_at": now,
        }
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        try:
            cursor = await self.conn.execute(
                f"INSERT INTO jobs ({columns}) VALUES ({placeholders})",
                tuple(values.values()),
            )
            await self.conn.commit()
        except aiosqlite.IntegrityError as e:
            await self.conn.rollback()
            raise DuplicateJobError(f"Job already stored: {values['identity_key']}") from e
        except aiosqlite.Error as e:
            await self.conn.rollback()
            raise DatabaseError(f"Failed to insert job: {str(e)}") from e

        return job.model_copy(
            update={
                "id": cursor.lastrowid,
                "created_at": datetime.fromisoformat(now),
                "updated_at": datetime.fromisoformat(now),
            }
        )

    async def get_job(self, job_id: int) -> Optional[JobPosting]:
        async with self.conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)) as cursor:
            row = await cursor.fetchone()
        return _row_to_job(row) if row else None

    async def get_jobs_by_urls(self, urls: List[str]) -> List[JobPosting]:
        """Hydrate jobs for semantic search hits, preserving the order of ``urls``."""
        if not urls:
            return []
        placeholders = ", ".join("?" for _ in urls)
        async with self.conn.execute(
            f"SELECT * FROM jobs WHERE url IN ({placeholders})", tuple(urls)
        ) as cursor:
            rows = await cursor.fetchall()
        by_url = {row["url"]: _row_to_job(row) for row in rows}
        return [by_url[url] for url in urls if url in by_url]

    async def count_jobs(self) -> int:
        async with self.conn.execute("SELECT COUNT(*) FROM jobs") as cursor:
            row = await cursor.fetchone()
        return row[0]

    async def list_jobs(self, query: JobQuery) -> JobPage:
        """Filter, sort and paginate stored jobs."""
        if query.sort_by not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort by {query.sort_by!r}")

        clauses: List[str] = []
        params: List[Any] = []
        if query.source:
            clauses.append("source = ?")
            params.append(query.source.value)
        if query.experience_level:
            clauses.append("experience_level = ?")
            params.append(query.experience_level.value)
        if query.job_type:
            clauses.append("job_type = ?")
            params.append(query.job_type.value)
        if query.location:
            clauses.append("location LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(query.location)}%")
        if query.search:
            term = f"%{_escape_like(query.search)}%"
            clauses.append(
                "(" + " OR ".join(
                    f"{col} LIKE ? ESCAPE '\\'"
                    for col in ("title", "company", "description", "location", "skills")
                ) + ")"
            )
            params.extend([term] * 5)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        direction = "ASC" if query.sort_order == "asc" else "DESC"
        offset = (query.page - 1) * query.limit

        async with self.conn.execute(f"SELECT COUNT(*) FROM jobs {where}", tuple(params)) as cursor:
            total = (await cursor.fetchone())[0]
        async with self.conn.execute(
            f"SELECT * FROM jobs {where} ORDER BY {query.sort_by} {direction}, id {direction} "
            "LIMIT ? OFFSET ?",
            (*params, query.limit, offset),
        ) as cursor:
            rows = await cursor.fetchall()

        return JobPage(
            jobs=[_row_to_job(row) for row in rows],
            total=total,
            pages=math.ceil(total / query.limit),
            current_page=query.page,
        )

    async def _group_counts(self, column: str) -> List[Dict[str, Any]]:
        async with self.conn.execute(
            f"SELECT {column} AS value, COUNT(*) AS count FROM jobs "
            f"GROUP BY {column} ORDER BY count DESC, value ASC"
        ) as cursor:
            rows = await cursor.fetchall()
        return [{"value": row["value"], "count": row["count"]} for row in rows]

    async def job_stats(self) -> Dict[str, Any]:
        """Aggregate counts for the dashboard."""
        async with self.conn.execute(
            "SELECT skill.value AS value, COUNT(*) AS count "
            "FROM jobs, json_each(jobs.skills) AS skill "
            "GROUP BY skill.value ORDER BY count DESC, value ASC LIMIT ?",
            (TOP_SKILLS_LIMIT,),
        ) as cursor:
            top_skills = [{"value": r["value"], "count": r["count"]} for r in await cursor.fetchall()]

        async with self.conn.execute(
            "SELECT substr(created_at, 1, 10) AS day, COUNT(*) AS count "
            "FROM jobs GROUP BY day ORDER BY day ASC"
        ) as cursor:
            over_time = [{"day": r["day"], "count": r["count"]} for r in await cursor.fetchall()]

        return {
            "total_jobs": await self.count_jobs(),
            "jobs_by_source": await self._group_counts("source"),
            "jobs_by_experience_level": await self._group_counts("experience_level"),
            "jobs_by_type": await self._group_counts("job_type"),
            "top_locations": await self._group_counts("location"),
            "top_companies": await self._group_counts("company"),
            "top_skills": top_skills,
            "jobs_over_time": over_time,
        }

    async def iter_all_jobs(self, batch_size: int = BATCH_SIZE) -> AsyncIterator[List[JobPosting]]:
        """Yield every stored job in id order, ``batch_size`` at a time."""
        last_id = 0
        while True:
            async with self.conn.execute(
                "SELECT * FROM jobs WHERE id > ? ORDER BY id ASC LIMIT ?",
                (last_id, batch_size),
            ) as cursor:
                rows = await cursor.fetchall()
            if not rows:
                return
            batch = [_row_to_job(row) for row in rows]
            last_id = batch[-1].id
            yield batch

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
