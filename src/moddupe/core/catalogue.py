"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/catalogue.py
Reference catalogue persisted in a single sqlite3 file.

Module rows are keyed by path (relative to the build root, "/"-separated, leading "/"),
so a new build pass replaces rows of the same path. Rows of files that vanished are kept.
Fingerprints are unsigned 64-bit values stored as signed sqlite INTEGERs.
"""

import os
import sqlite3
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Callable

from moddupe.core.models import CatalogueEntry, ModuleRecord, MatchGroup, LengthUnit
from moddupe.core.grouper import EntryGrouperImpl

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS modules (
    path TEXT PRIMARY KEY,
    pattern_hash INTEGER NOT NULL,
    file_hash TEXT,
    samples TEXT,
    channels INTEGER,
    subsongs INTEGER
);
CREATE INDEX IF NOT EXISTS idx_modules_pattern_hash ON modules (pattern_hash);

CREATE TABLE IF NOT EXISTS samples (
    module_path TEXT NOT NULL,
    sample_index INTEGER NOT NULL,
    name TEXT,
    length_frames INTEGER,
    length_bytes INTEGER,
    bits INTEGER,
    channels INTEGER,
    fingerprint INTEGER NOT NULL,
    PRIMARY KEY (module_path, sample_index)
);
CREATE INDEX IF NOT EXISTS idx_samples_fingerprint ON samples (fingerprint);
CREATE INDEX IF NOT EXISTS idx_samples_length_bytes ON samples (length_bytes);
CREATE INDEX IF NOT EXISTS idx_samples_length_frames ON samples (length_frames);
"""

MODULE_COLUMNS = "path, pattern_hash, file_hash, samples, channels"
SAMPLE_COLUMNS = "module_path, sample_index, name, length_frames, length_bytes, channels, fingerprint"


class CatalogueUnavailableError(RuntimeError):
    """The catalogue file is missing and could not be obtained."""


def to_db_hash(value: int) -> int:
    return value - (1 << 64) if value >= (1 << 63) else value


def from_db_hash(value: int) -> int:
    return value & 0xFFFFFFFFFFFFFFFF


def catalogue_path(path: str, root: str) -> str:
    """Path of a file as stored in the catalogue: relative to root, "/"-separated."""
    rel = os.path.relpath(path, root)
    return "/" + rel.replace(os.sep, "/")


class CatalogueStore:
    """
    Build, lookup and enumeration over the catalogue database.
    One writer at a time; any number of readers while no build is running.
    """

    def __init__(self, db_path: str, create: bool = True):
        self.db_path = db_path
        if not create and not Path(db_path).is_file():
            raise CatalogueUnavailableError(f"Catalogue not found: {db_path}")

        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        if create:
            self._conn.executescript(SCHEMA)
        logger.debug(f"Opened catalogue {db_path}")

    # ---------- lifecycle ----------

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> 'CatalogueStore':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------- build ----------

    def build(
            self,
            records: Iterable[ModuleRecord],
            root: str,
            progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> int:
        """
        Upserts every record in one exclusive transaction. Returns the number of rows written.
        """
        written = 0
        self._conn.execute("BEGIN EXCLUSIVE")
        try:
            for record in records:
                self._upsert(record, catalogue_path(record.path, root))
                written += 1
                if progress_callback:
                    progress_callback("Building catalogue", written, None)
            self._conn.commit()
        except BaseException:
            self._conn.rollback()
            raise

        logger.info(f"Catalogue build wrote {written} modules to {self.db_path}")
        return written

    def _upsert(self, record: ModuleRecord, path: str) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO modules (path, pattern_hash, file_hash, samples, channels, subsongs) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (path, to_db_hash(record.pattern_hash), record.file_hash,
             record.sample_names, record.channels, record.subsongs),
        )
        self._conn.execute("DELETE FROM samples WHERE module_path = ?", (path,))
        self._conn.executemany(
            "INSERT INTO samples (module_path, sample_index, name, length_frames, length_bytes, "
            "bits, channels, fingerprint) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (path, s.index, s.name, s.length_frames, s.length_bytes,
                 s.bits, s.channels, to_db_hash(s.fingerprint))
                for s in record.samples
            ],
        )

    # ---------- queries ----------

    def lookup(self, fingerprint: int) -> List[CatalogueEntry]:
        rows = self._conn.execute(
            f"SELECT {MODULE_COLUMNS} FROM modules WHERE pattern_hash = ? ORDER BY path",
            (to_db_hash(fingerprint),),
        ).fetchall()
        return [self._module_entry(r) for r in rows]

    def lookup_samples(self, fingerprint: int) -> List[CatalogueEntry]:
        rows = self._conn.execute(
            f"SELECT {SAMPLE_COLUMNS} FROM samples WHERE fingerprint = ? "
            f"ORDER BY module_path, sample_index",
            (to_db_hash(fingerprint),),
        ).fetchall()
        return [self._sample_entry(r) for r in rows]

    def entries(self) -> List[CatalogueEntry]:
        rows = self._conn.execute(f"SELECT {MODULE_COLUMNS} FROM modules ORDER BY path").fetchall()
        return [self._module_entry(r) for r in rows]

    def duplicate_groups(self) -> List[MatchGroup]:
        """Groups of module entries that share a fingerprint within the catalogue."""
        rows = self._conn.execute(
            f"SELECT {MODULE_COLUMNS} FROM modules WHERE pattern_hash IN ("
            f"  SELECT pattern_hash FROM modules GROUP BY pattern_hash HAVING COUNT(*) > 1"
            f") ORDER BY pattern_hash, path"
        ).fetchall()
        grouper = EntryGrouperImpl(min_group_size=2)
        return grouper.group_by_fingerprint([self._module_entry(r) for r in rows])

    def find_samples_by_length(self, length: int, unit: LengthUnit = LengthUnit.BYTES) -> List[CatalogueEntry]:
        column = "length_frames" if unit == LengthUnit.FRAMES else "length_bytes"
        rows = self._conn.execute(
            f"SELECT {SAMPLE_COLUMNS} FROM samples WHERE {column} = ? "
            f"ORDER BY module_path, sample_index",
            (length,),
        ).fetchall()
        return [self._sample_entry(r) for r in rows]

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM modules").fetchone()[0]

    # ---------- row mapping ----------

    @staticmethod
    def _module_entry(row: sqlite3.Row) -> CatalogueEntry:
        return CatalogueEntry(
            path=row["path"],
            fingerprint=from_db_hash(row["pattern_hash"]),
            names=row["samples"] or "",
            channels=row["channels"] or 0,
            file_hash=row["file_hash"],
        )

    @staticmethod
    def _sample_entry(row: sqlite3.Row) -> CatalogueEntry:
        return CatalogueEntry(
            path=row["module_path"],
            fingerprint=from_db_hash(row["fingerprint"]),
            names=row["name"] or "",
            channels=row["channels"] or 0,
            sample_index=row["sample_index"],
            length_frames=row["length_frames"],
            length_bytes=row["length_bytes"],
        )
