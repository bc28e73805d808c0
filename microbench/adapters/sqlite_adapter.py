# microbench/adapters/sqlite_adapter.py
from __future__ import annotations
import json, logging, sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from microbench.adapters.base import BaseStorage, StorageResult
from microbench.assertion.ast import Node
from microbench.assertion.parser import parse
from microbench.assertion.query import QueryTranslator
from microbench.core.results import SubjectResult, SuiteResult, VariantResult

logger = logging.getLogger(__name__)


DDL = """
CREATE TABLE IF NOT EXISTS run (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    context TEXT,
    aborted INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS environment (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id INTEGER NOT NULL REFERENCES run(id) ON DELETE CASCADE,
    provider TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT            -- str as is, anything else JSON encoded
);

CREATE TABLE IF NOT EXISTS subject (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    benchmark TEXT NOT NULL,
    name TEXT NOT NULL,
    UNIQUE (benchmark, name)
);

CREATE TABLE IF NOT EXISTS sgroup (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS sgroup_subject (
    sgroup_id INTEGER NOT NULL REFERENCES sgroup(id),
    subject_id INTEGER NOT NULL REFERENCES subject(id),
    PRIMARY KEY (sgroup_id, subject_id)
);

CREATE TABLE IF NOT EXISTS variant (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id INTEGER NOT NULL REFERENCES run(id) ON DELETE CASCADE,
    subject_id INTEGER NOT NULL REFERENCES subject(id),
    position INTEGER NOT NULL,

    -- Descriptive statistics over iteration times (microseconds)
    iterations INTEGER NOT NULL,
    min REAL,
    max REAL,
    sum REAL,
    mean REAL,
    median REAL,
    stdev REAL,
    variance REAL,
    rstdev REAL,

    mem_peak INTEGER,
    failures INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS parameter (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL,
    value TEXT,           -- JSON encoded scalar
    UNIQUE (key, value)
);

CREATE TABLE IF NOT EXISTS variant_parameter (
    variant_id INTEGER NOT NULL REFERENCES variant(id) ON DELETE CASCADE,
    parameter_id INTEGER NOT NULL REFERENCES parameter(id),
    PRIMARY KEY (variant_id, parameter_id)
);

CREATE TABLE IF NOT EXISTS iteration (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    variant_id INTEGER NOT NULL REFERENCES variant(id) ON DELETE CASCADE,
    number INTEGER NOT NULL,
    time REAL NOT NULL,   -- microseconds
    memory INTEGER,
    mem_peak INTEGER
);

CREATE INDEX IF NOT EXISTS idx_variant_run ON variant(run_id);
CREATE INDEX IF NOT EXISTS idx_iteration_variant ON iteration(variant_id);
CREATE INDEX IF NOT EXISTS idx_environment_run ON environment(run_id);
"""

# Columns added after the first schema version; backfilled on open.
MIGRATION_COLUMNS: dict[str, dict[str, str]] = {
    "run": {"aborted": "INTEGER DEFAULT 0"},
    "variant": {"variance": "REAL", "failures": "INTEGER DEFAULT 0"},
}

# Select aliases are the assertion property names, so a row can be handed
# straight to the evaluator.
ITERATION_SELECT = """
SELECT
    run.id AS run,
    run.date AS date,
    run.context AS context,
    subject.id AS subject_id,
    subject.benchmark AS benchmark,
    subject.name AS subject,
    variant.id AS variant_id,
    variant.position AS variant,
    variant.iterations AS iterations,
    variant.min AS min,
    variant.max AS max,
    variant.sum AS sum,
    variant.mean AS mean,
    variant.median AS median,
    variant.stdev AS stdev,
    variant.rstdev AS rstdev,
    variant.mem_peak AS mem_peak,
    iteration.number AS iteration,
    iteration.time AS time,
    iteration.memory AS memory
FROM iteration
    INNER JOIN variant ON variant.id = iteration.variant_id
    INNER JOIN subject ON subject.id = variant.subject_id
    INNER JOIN run ON run.id = variant.run_id
"""

HISTORY_SELECT = """
SELECT
    run.id AS run_id,
    run.date AS run_date,
    run.context AS context,
    run.aborted AS aborted,
    environment.value AS vcs_branch
FROM run
    LEFT OUTER JOIN environment
        ON environment.run_id = run.id
        AND environment.provider = 'vcs'
        AND environment.key = 'branch'
ORDER BY run.id DESC
"""


def _json(obj):
    return json.dumps(obj, ensure_ascii=False) if obj is not None else None


def _env_value(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return _json(value)


class ConnectionManager:
    """Owns the single connection of a store and hands out scoped cursors."""

    def __init__(self, path: str = ":memory:", timeout: float = 30.0):
        self.path = str(path)
        self.timeout = timeout
        self._conn: Optional[sqlite3.Connection] = None

    def get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Opening SQLite store at {self.path}")
            self._conn = sqlite3.connect(self.path, timeout=self.timeout)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(DDL)
            self._ensure_schema_columns()
        return self._conn

    def _ensure_schema_columns(self) -> None:
        """Perform lightweight migrations to backfill newly added columns."""
        conn = self._conn
        for table, columns in MIGRATION_COLUMNS.items():
            try:
                existing = {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}
            except sqlite3.Error as exc:
                logger.warning("Cannot read structure of table %s, skipping migration: %s", table, exc)
                continue
            for column, definition in columns.items():
                if column in existing:
                    continue
                try:
                    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
                except sqlite3.OperationalError as exc:
                    logger.warning("Failed to add column %s.%s: %s", table, column, exc)
        conn.commit()

    @contextmanager
    def cursor(self) -> Iterator[sqlite3.Cursor]:
        cur = self.get_connection().cursor()
        try:
            yield cur
        finally:
            cur.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        conn = self.get_connection()
        cur = conn.cursor()
        try:
            yield cur
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            cur.close()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


class Repository:
    """Read side of the historical store."""

    def __init__(self, manager: ConnectionManager, translator: Optional[QueryTranslator] = None):
        self.manager = manager
        self.translator = translator or QueryTranslator()

    def get_iteration_rows(self, constraint: Optional[Node] = None) -> List[Dict[str, Any]]:
        sql = ITERATION_SELECT
        values: List[Any] = []
        if constraint is not None:
            predicate, values = self.translator.translate(constraint)
            sql += f"WHERE {predicate}\n"
        sql += "ORDER BY run.id, variant.id, iteration.number"
        logger.debug(f"get_iteration_rows: {sql.strip()} {values}")

        with self.manager.cursor() as cur:
            cur.execute(sql, values)
            return [dict(row) for row in cur.fetchall()]

    def get_run_env_information_rows(self, run_id: int) -> List[Dict[str, Any]]:
        with self.manager.cursor() as cur:
            cur.execute(
                "SELECT provider, key, value FROM environment WHERE run_id = ? ORDER BY id",
                (run_id,),
            )
            return [dict(row) for row in cur.fetchall()]

    def get_groups(self, subject_id: int) -> List[str]:
        with self.manager.cursor() as cur:
            cur.execute(
                "SELECT sgroup.name FROM sgroup_subject "
                "INNER JOIN sgroup ON sgroup.id = sgroup_subject.sgroup_id "
                "WHERE sgroup_subject.subject_id = ? ORDER BY sgroup_subject.rowid",
                (subject_id,),
            )
            return [row["name"] for row in cur.fetchall()]

    def get_parameters(self, variant_id: int) -> Dict[str, Any]:
        with self.manager.cursor() as cur:
            cur.execute(
                "SELECT parameter.key, parameter.value FROM variant_parameter "
                "INNER JOIN parameter ON parameter.id = variant_parameter.parameter_id "
                "WHERE variant_parameter.variant_id = ? ORDER BY variant_parameter.rowid",
                (variant_id,),
            )
            return {row["key"]: json.loads(row["value"]) for row in cur.fetchall()}

    def get_history(self) -> List[Dict[str, Any]]:
        with self.manager.cursor() as cur:
            cur.execute(HISTORY_SELECT)
            return [dict(row) for row in cur.fetchall()]


class SQLiteStorage(BaseStorage):
    def __init__(
        self,
        path: str = ":memory:",
        timeout: float = 30.0,
        manager: Optional[ConnectionManager] = None,
        translator: Optional[QueryTranslator] = None,
    ):
        self.manager = manager or ConnectionManager(path, timeout)
        self.repository = Repository(self.manager, translator)

    # ---------- write ----------
    def store(self, suite: SuiteResult) -> StorageResult:
        subject_ids: Dict[tuple, int] = {}
        variants = iterations = 0

        with self.manager.transaction() as cur:
            cur.execute(
                "INSERT INTO run (date, context, aborted) VALUES (?, ?, ?)",
                (suite.date, suite.context, int(suite.aborted)),
            )
            run_id = cur.lastrowid

            for provider, information in suite.environment.items():
                cur.executemany(
                    "INSERT INTO environment (run_id, provider, key, value) VALUES (?, ?, ?, ?)",
                    [(run_id, provider, key, _env_value(value)) for key, value in information.items()],
                )

            for benchmark in suite.benchmarks:
                for subject in benchmark.subjects:
                    key = (benchmark.class_name, subject.name)
                    if key not in subject_ids:
                        subject_ids[key] = self._subject_id(cur, benchmark.class_name, subject)
                    for variant in subject.variants:
                        self._insert_variant(cur, run_id, subject_ids[key], variant)
                        variants += 1
                        iterations += len(variant.iterations)

        logger.info(f"Stored run #{run_id}: {variants} variant(s), {iterations} iteration(s)")
        return StorageResult(
            success=True,
            data={"run_id": run_id},
            meta={"variants": variants, "iterations": iterations},
        )

    def _subject_id(self, cur: sqlite3.Cursor, benchmark: str, subject: SubjectResult) -> int:
        cur.execute("SELECT id FROM subject WHERE benchmark = ? AND name = ?", (benchmark, subject.name))
        row = cur.fetchone()
        if row is not None:
            subject_id = row["id"]
        else:
            cur.execute("INSERT INTO subject (benchmark, name) VALUES (?, ?)", (benchmark, subject.name))
            subject_id = cur.lastrowid

        for group in subject.groups:
            cur.execute("INSERT OR IGNORE INTO sgroup (name) VALUES (?)", (group,))
            cur.execute("SELECT id FROM sgroup WHERE name = ?", (group,))
            cur.execute(
                "INSERT OR IGNORE INTO sgroup_subject (sgroup_id, subject_id) VALUES (?, ?)",
                (cur.fetchone()["id"], subject_id),
            )
        return subject_id

    def _insert_variant(self, cur: sqlite3.Cursor, run_id: int, subject_id: int, variant: VariantResult) -> None:
        stats = variant.stats
        columns = ("min", "max", "sum", "mean", "median", "stdev", "variance", "rstdev")
        stat_values = [getattr(stats, c) if stats is not None else None for c in columns]
        cur.execute(
            "INSERT INTO variant (run_id, subject_id, position, iterations, "
            + ", ".join(columns)
            + ", mem_peak, failures) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (run_id, subject_id, variant.index, len(variant.iterations), *stat_values,
             variant.mem_peak, len(variant.failures)),
        )
        variant_id = cur.lastrowid

        for key, value in variant.parameters.items():
            encoded = _json(value)
            cur.execute("INSERT OR IGNORE INTO parameter (key, value) VALUES (?, ?)", (key, encoded))
            cur.execute("SELECT id FROM parameter WHERE key = ? AND value = ?", (key, encoded))
            cur.execute(
                "INSERT OR IGNORE INTO variant_parameter (variant_id, parameter_id) VALUES (?, ?)",
                (variant_id, cur.fetchone()["id"]),
            )

        cur.executemany(
            "INSERT INTO iteration (variant_id, number, time, memory, mem_peak) VALUES (?, ?, ?, ?, ?)",
            [(variant_id, i.index, i.time, i.memory, i.mem_peak) for i in variant.iterations],
        )

    # ---------- read ----------
    def query(self, constraint: Union[Node, str, None] = None) -> List[Dict[str, Any]]:
        if isinstance(constraint, str):
            constraint = parse(constraint)
        return self.repository.get_iteration_rows(constraint)

    def history(self) -> List[Dict[str, Any]]:
        return self.repository.get_history()

    def close(self) -> None:
        self.manager.close()
