"""
Database connection and EXPLAIN execution handling.
Manages PostgreSQL connections and turns EXPLAIN ANALYZE output into plan trees.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

import psycopg2
from psycopg2.extensions import connection

from .models import Statement
from .plan import PlanFormatError, PlanNode, PlanParser
from .variables import interpolate_query

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    host: str
    port: int
    dbname: str
    user: str
    password: str
    connect_timeout: int = 5


class ErrorKind(Enum):
    CONNECTION = 'connection'
    SYNTAX = 'syntax'
    FORMAT = 'format'


class ExplainError(Exception):
    """EXPLAIN failure attributable to a single statement."""

    def __init__(self, kind: ErrorKind, message: str, query: str = ''):
        super().__init__(f"{kind.value} error: {message}")
        self.kind = kind
        self.message = message
        self.query = query


class DatabaseManager:
    def __init__(self, config: DatabaseConfig):
        self.config = config

    @contextmanager
    def get_connection(self) -> Iterator[connection]:
        """Create a database connection using context manager."""
        conn = None
        try:
            conn = psycopg2.connect(
                host=self.config.host,
                port=self.config.port,
                dbname=self.config.dbname,
                user=self.config.user,
                password=self.config.password,
                connect_timeout=self.config.connect_timeout
            )
            yield conn
        finally:
            if conn:
                conn.close()

    def explain(self, query: str, timeout_ms: Optional[int] = None) -> PlanNode:
        """Run EXPLAIN on a fresh connection."""
        try:
            with self.get_connection() as conn:
                return explain(query, conn, timeout_ms)
        except psycopg2.Error as e:
            raise ExplainError(ErrorKind.CONNECTION, _error_text(e), query) from e


def _error_text(error: psycopg2.Error) -> str:
    return (getattr(error, 'pgerror', None) or str(error)).strip()


def explain(query: str, conn: connection, timeout_ms: Optional[int] = None) -> PlanNode:
    """Run EXPLAIN (ANALYZE, FORMAT JSON) for a literal query and parse the plan.

    The statement runs inside a transaction that is always rolled back, so
    analyzing an INSERT/UPDATE/DELETE leaves no trace in the target database.
    """
    explain_query = f"EXPLAIN (ANALYZE, FORMAT JSON) {query}"
    # SET LOCAL and the rollback are no-ops outside a transaction
    autocommit = conn.autocommit
    try:
        if autocommit:
            conn.autocommit = False
        with conn.cursor() as cursor:
            if timeout_ms:
                cursor.execute("SET LOCAL statement_timeout = %s", (int(timeout_ms),))
            cursor.execute(explain_query)
            rows = cursor.fetchall()
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
        # Also covers statement_timeout cancellation (QueryCanceled)
        raise ExplainError(ErrorKind.CONNECTION, _error_text(e), query) from e
    except psycopg2.Error as e:
        raise ExplainError(ErrorKind.SYNTAX, _error_text(e), query) from e
    finally:
        _rollback(conn)
        if autocommit:
            _restore_autocommit(conn)

    if not rows or not rows[0]:
        raise ExplainError(ErrorKind.FORMAT, "EXPLAIN returned no rows", query)

    # Text plans may arrive split over several rows
    document = rows[0][0]
    if isinstance(document, str) and len(rows) > 1:
        document = ''.join(row[0] for row in rows)

    try:
        return PlanParser.parse_explain_output(document)
    except PlanFormatError as e:
        raise ExplainError(ErrorKind.FORMAT, str(e), query) from e


def _rollback(conn: connection) -> None:
    try:
        conn.rollback()
    except psycopg2.Error as e:
        logger.debug("Rollback after EXPLAIN failed: %s", e)


def _restore_autocommit(conn: connection) -> None:
    try:
        conn.autocommit = True
    except psycopg2.Error as e:
        logger.debug("Could not restore autocommit after EXPLAIN: %s", e)


@dataclass
class BatchResult:
    explained: int = 0
    skipped: int = 0
    failures: List[Tuple[Statement, ExplainError]] = field(default_factory=list)


def explain_statements(
    statements: Sequence[Statement],
    db_manager: DatabaseManager,
    threshold_ms: float = 2.0,
    timeout_ms: Optional[int] = None,
    max_workers: int = 1
) -> BatchResult:
    """EXPLAIN every statement slower than threshold_ms and attach its plan.

    Each statement is explained on its own connection; a failure is logged and
    skipped without affecting the rest of the batch.
    """
    result = BatchResult()
    candidates = []
    for statement in statements:
        if statement.explain_plan is None and statement.duration_ms > threshold_ms:
            candidates.append(statement)
        else:
            result.skipped += 1

    if not candidates:
        return result

    def run(statement: Statement) -> PlanNode:
        query = interpolate_query(statement.raw_query, statement.variables_raw)
        return db_manager.explain(query, timeout_ms)

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = [(statement, executor.submit(run, statement)) for statement in candidates]
        for index, (statement, future) in enumerate(futures):
            try:
                plan = future.result()
            except ExplainError as e:
                logger.warning(
                    "EXPLAIN failed for query %d (%s): %s",
                    index, statement.query_hash[:12], e
                )
                result.failures.append((statement, e))
                continue
            statement.attach_plan(plan)
            result.explained += 1

    logger.info(
        "EXPLAIN batch: %d explained, %d failed, %d skipped",
        result.explained, len(result.failures), result.skipped
    )
    return result
