"""SQLite-tracked NetCDF cache for pipeline stage outputs.

Each stage result (a classified tile, a detected tile, the study mask) is
stored as ``cache/<stage>_<key>.nc`` and recorded in ``stage_cache.db``.
The key hashes everything the result depends on, so a rerun with the same
inputs and parameters loads instead of recomputing, and any change to
either computes afresh.
"""

import hashlib
import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional

import xarray as xr

__all__ = ['StageCache', 'make_key', 'file_fingerprint']

logger = logging.getLogger(__name__)


def _canonical(params: dict) -> str:
    return json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)


def make_key(stage: str, stage_version: str, params: dict, input_fingerprint: str = "") -> str:
    """SHA-256 of stage, stage version, canonical parameters and input fingerprint."""
    payload = "|".join([stage, stage_version, _canonical(params), input_fingerprint])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def file_fingerprint(path) -> str:
    """Cheap identity of an input file: resolved path, size and modification time."""
    if path is None:
        return ""
    path = Path(path).expanduser().resolve()
    if not path.exists():
        return f"{path}:missing"
    stat = path.stat()
    return f"{path}:{stat.st_size}:{stat.st_mtime_ns}"


class StageCache:
    """Tracks and stores stage outputs for idempotent reruns.

    **Database Schema:**

    SQLite table `stage_cache`:

    - cache_key: SHA-256 key (primary key)
    - stage: Stage name (e.g., classify_tile_0003)
    - params_json: Canonical JSON of the parameters the stage depends on
    - input_fingerprint: Identity of the input data
    - cache_path: NetCDF file holding the result
    - status: pending, completed, failed
    - error_message: Error details if failed
    - Timestamps: created_at, computed_at, updated_at

    **Thread Safety:**

    All methods are thread-safe via internal locking. Stage workers running
    in other processes never touch the cache; the orchestrator records their
    results.

    **Typical Usage:**

        with StageCache(cache_dir, stage_version="1") as cache:
            ds = cache.compute_or_load("mask", params, build_mask, fingerprint)
            stats = cache.get_statistics()
    """

    def __init__(self, cache_dir: Path | str, stage_version: str = "1",
                 db_filename: str = "stage_cache.db"):
        """Initialize cache.

        Parameters
        ----------
        cache_dir : Path or str
            Directory for NetCDF results and the SQLite database.
        stage_version : str
            Bumped when a stage's algorithm changes, invalidating old results.
        db_filename : str
            SQLite file name inside ``cache_dir``.
        """
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.db_path = self.cache_dir / db_filename
        self.stage_version = stage_version

        self._conn = None
        self._lock = threading.Lock()

        self._init_database()
        logger.info("Stage cache initialized: %s", self.db_path)

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_database(self):
        """Create database schema if it doesn't exist."""
        conn = self._get_connection()

        with self._lock:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS stage_cache (
                    cache_key TEXT PRIMARY KEY,
                    stage TEXT NOT NULL,
                    params_json TEXT NOT NULL,
                    input_fingerprint TEXT,
                    cache_path TEXT,

                    status TEXT DEFAULT 'pending',
                    error_message TEXT,

                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    computed_at TEXT,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_stage ON stage_cache(stage)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_status ON stage_cache(status)")
            conn.commit()

    def make_key(self, stage: str, params: dict, input_fingerprint: str = "") -> str:
        return make_key(stage, self.stage_version, params, input_fingerprint)

    def cache_path(self, stage: str, key: str) -> Path:
        """<cache_dir>/<stage>_<key>.nc"""
        return self.cache_dir / f"{stage}_{key}.nc"

    def register(self, key: str, stage: str, params: dict, input_fingerprint: str = "") -> bool:
        """Create a pending record; returns False if the key is already known."""
        conn = self._get_connection()

        with self._lock:
            cursor = conn.execute("SELECT cache_key FROM stage_cache WHERE cache_key = ?", (key,))
            if cursor.fetchone():
                return False
            conn.execute("""
                INSERT INTO stage_cache
                (cache_key, stage, params_json, input_fingerprint, cache_path, status)
                VALUES (?, ?, ?, ?, ?, 'pending')
            """, (key, stage, _canonical(params), input_fingerprint,
                  str(self.cache_path(stage, key))))
            conn.commit()

            logger.debug("Registered stage %s: %s", stage, key[:12])
            return True

    def _set_status(self, key: str, status: str, error: Optional[str] = None):
        now = datetime.now(timezone.utc).isoformat()
        conn = self._get_connection()
        with self._lock:
            conn.execute("""
                UPDATE stage_cache
                SET status = ?, error_message = ?, computed_at = ?, updated_at = ?
                WHERE cache_key = ?
            """, (status, error, now if status == 'completed' else None, now, key))
            conn.commit()

    def mark_stage_complete(self, key: str):
        self._set_status(key, 'completed')

    def mark_stage_failed(self, key: str, error: str):
        self._set_status(key, 'failed', error)
        logger.debug("Marked stage failed: %s (%s)", key[:12], error)

    def get_entry(self, key: str) -> Optional[Dict]:
        """Record for ``key`` as a dict, or None if unknown."""
        conn = self._get_connection()

        with self._lock:
            cursor = conn.execute("SELECT * FROM stage_cache WHERE cache_key = ?", (key,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def should_compute(self, key: str) -> bool:
        """True unless the key is completed and its NetCDF file still exists."""
        entry = self.get_entry(key)
        if not entry or entry["status"] != 'completed':
            return True
        return not Path(entry["cache_path"]).exists()

    def load(self, key: str) -> xr.Dataset:
        entry = self.get_entry(key)
        if entry is None:
            raise KeyError(f"Unknown cache key: {key}")
        with xr.open_dataset(entry["cache_path"], engine="netcdf4") as ds:
            return ds.load()

    def store(self, key: str, stage: str, ds: xr.Dataset) -> Path:
        """Persist ``ds`` as the result of ``key`` and mark it complete."""
        path = self.cache_path(stage, key)
        encoding = {var: {"zlib": True, "complevel": 4} for var in ds.data_vars}
        ds.to_netcdf(path, engine="netcdf4", encoding=encoding)
        self.mark_stage_complete(key)
        logger.debug("Saved stage result: %s", path)
        return path

    def compute_or_load(self, stage: str, params: dict, compute: Callable[[], xr.Dataset],
                        input_fingerprint: str = "") -> xr.Dataset:
        """Return the cached result of ``stage`` or compute, persist and register it.

        Parameters
        ----------
        stage : str
            Stage name, also the cache file prefix.
        params : dict
            JSON-serialisable parameters the result depends on.
        compute : callable
            Zero-argument function producing an xr.Dataset.
        input_fingerprint : str
            Identity of the input data (see file_fingerprint()).

        Raises
        ------
        Exception
            Whatever ``compute`` raises, after recording the failure.
        """
        key = self.make_key(stage, params, input_fingerprint)
        self.register(key, stage, params, input_fingerprint)

        if not self.should_compute(key):
            logger.debug("Cache hit: %s (%s)", stage, key[:12])
            return self.load(key)

        logger.info("Cache miss: computing %s", stage)
        try:
            ds = compute()
        except Exception as e:
            self.mark_stage_failed(key, f"{type(e).__name__}: {e}")
            raise
        self.store(key, stage, ds)
        return ds

    def get_statistics(self) -> Dict:
        """Counts of total, completed, failed and pending entries."""
        conn = self._get_connection()

        with self._lock:
            cursor = conn.execute("""
                SELECT
                    COUNT(*) as total,
                    SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) as completed,
                    SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) as failed,
                    SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) as pending
                FROM stage_cache
            """)
            row = cursor.fetchone()
            return {k: (v or 0) for k, v in dict(row).items()} if row else {}

    def reset_failed(self, stage: Optional[str] = None):
        """Reset failed entries to pending so the next run retries them."""
        conn = self._get_connection()
        now = datetime.now(timezone.utc).isoformat()

        with self._lock:
            if stage:
                conn.execute("""
                    UPDATE stage_cache
                    SET status = 'pending', error_message = NULL, updated_at = ?
                    WHERE status = 'failed' AND stage = ?
                """, (now, stage))
            else:
                conn.execute("""
                    UPDATE stage_cache
                    SET status = 'pending', error_message = NULL, updated_at = ?
                    WHERE status = 'failed'
                """, (now,))
            conn.commit()

            logger.info("Reset failed stages to pending")

    def cleanup_deleted_files(self) -> int:
        """Remove records whose NetCDF file was deleted from disk."""
        conn = self._get_connection()

        with self._lock:
            cursor = conn.execute("""
                SELECT cache_key, cache_path FROM stage_cache WHERE status = 'completed'
            """)
            deleted = [row['cache_key'] for row in cursor.fetchall()
                       if row['cache_path'] and not Path(row['cache_path']).exists()]

            if deleted:
                placeholders = ','.join('?' * len(deleted))
                conn.execute(f"DELETE FROM stage_cache WHERE cache_key IN ({placeholders})",
                             deleted)
                conn.commit()
                logger.info("Cleaned up %d deleted cache file(s)", len(deleted))
            return len(deleted)

    def close(self):
        """Close database connection. Safe to call multiple times."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
