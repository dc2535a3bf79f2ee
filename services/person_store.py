"""DuckDB-backed storage for generated persons, optionally on an attached SQLite file."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

import duckdb

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name('schema.sql')
IN_MEMORY_DSNS = {'memory', ':memory:'}
IDENTIFIER_REGEX = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


class StartupError(RuntimeError):
    """Raised when the database cannot be opened, attached or migrated."""


@dataclass
class Person:
    id: int
    name: str
    phone: str
    company: str


class PersonStore:
    """Owns the DuckDB connection; every query runs on its own cursor."""

    def __init__(self, conn: duckdb.DuckDBPyConnection, table: str = 'persons'):
        self._conn = conn
        self.table = table

    @classmethod
    def open(cls, dsn: str, attach_path: Optional[str] = None, attach_alias: str = 'db') -> 'PersonStore':
        if not dsn:
            raise StartupError('dsn required')

        database = ':memory:' if dsn in IN_MEMORY_DSNS else dsn
        try:
            conn = duckdb.connect(database=database)
        except duckdb.Error as exc:
            raise StartupError(f'open db: {exc}') from exc
        logger.info('database opened with %s storage', 'memory' if database == ':memory:' else database)

        try:
            return cls._prepare(conn, attach_path, attach_alias)
        except StartupError:
            conn.close()
            raise

    @classmethod
    def _prepare(cls, conn, attach_path, attach_alias):
        try:
            (access_mode,) = conn.execute("SELECT current_setting('access_mode')").fetchone()
        except duckdb.Error as exc:
            raise StartupError(f'get access mode: {exc}') from exc
        logger.info('DB opened with access mode %s', access_mode)

        table = 'persons'
        if attach_path:
            if not IDENTIFIER_REGEX.match(attach_alias or ''):
                raise StartupError(f'invalid attach alias: {attach_alias!r}')
            try:
                catalogs = {name.lower() for (name,) in conn.execute(
                    'SELECT database_name FROM duckdb_databases()'
                ).fetchall()}
            except duckdb.Error as exc:
                raise StartupError(f'list databases: {exc}') from exc
            if attach_alias.lower() in catalogs:
                raise StartupError(
                    f'attach alias {attach_alias!r} conflicts with an existing database name; '
                    'rename the dsn file or set SQLITE_ATTACH_ALIAS'
                )
            try:
                conn.execute('INSTALL sqlite')
                conn.execute('LOAD sqlite')
            except duckdb.Error as exc:
                raise StartupError(f'install sqlite extension: {exc}') from exc
            logger.info('INSTALL OK')

            quoted_path = attach_path.replace("'", "''")
            try:
                conn.execute(f"ATTACH '{quoted_path}' AS {attach_alias} (TYPE SQLITE)")
                conn.execute(f'USE {attach_alias}')
            except duckdb.Error as exc:
                raise StartupError(f'attach sqlite: {exc}') from exc
            logger.info('ATTACH OK')
            table = f'{attach_alias}.persons'

        try:
            conn.execute(SCHEMA_PATH.read_text(encoding='utf-8'))
        except (duckdb.Error, OSError) as exc:
            raise StartupError(f'migrate schema: {exc}') from exc
        logger.info('CREATE SQL OK')

        return cls(conn, table=table)

    @contextmanager
    def cursor(self) -> Iterator[duckdb.DuckDBPyConnection]:
        cur = self._conn.cursor()
        try:
            yield cur
        finally:
            cur.close()

    def recent(self, limit: int = 10) -> List[Person]:
        """Most recently added persons, newest first."""
        with self.cursor() as cur:
            rows = cur.execute(
                f'''
                SELECT id, name, phone, company
                FROM {self.table}
                ORDER BY id DESC
                LIMIT {int(limit)}
                '''
            ).fetchall()
        return [Person(*row) for row in rows]

    def next_id(self) -> int:
        # Not atomic against concurrent writers.
        with self.cursor() as cur:
            (next_id,) = cur.execute(
                f'SELECT COALESCE(MAX(id), 0) + 1 AS next_id FROM {self.table}'
            ).fetchone()
        return int(next_id)

    def insert(self, person: Person) -> None:
        with self.cursor() as cur:
            cur.execute(
                f'INSERT INTO {self.table} (id, name, phone, company) VALUES (?, ?, ?, ?)',
                [person.id, person.name, person.phone, person.company],
            )

    def count(self) -> int:
        with self.cursor() as cur:
            (total,) = cur.execute(f'SELECT COUNT(*) FROM {self.table}').fetchone()
        return int(total)

    def close(self) -> None:
        self._conn.close()
