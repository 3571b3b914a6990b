"""
SQL statement extraction from structured log records.
"""
import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .models import Correlation, LogRecord, Statement
from .normalizer import compute_query_hash, normalize_query

logger = logging.getLogger(__name__)

SQL_MARKER = '[sql]:'
LEADING_NOISE_RE = re.compile(r'^[:\s]+')

# Fields consumed by extraction; everything else goes to extra_fields
KNOWN_FIELDS = frozenset([
    'duration', 'duration_ms',
    'db.table', 'db.operation', 'db.rows', 'db.vars',
    'gql.operation', 'gql.operationName',
    'request_id', 'span_id', 'trace_id',
    'type',
])
# Only consumed from structured query records
STRUCTURED_FIELDS = frozenset(['rows'])


def _parse_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _coerce_record(record: Union[LogRecord, Mapping[str, Any]]) -> LogRecord:
    if isinstance(record, LogRecord):
        message, fields = record.message, record.fields
    elif isinstance(record, Mapping):
        message, fields = record.get('message'), record.get('fields')
    else:
        message, fields = None, None

    # Malformed shapes degrade to an empty record instead of failing the batch
    if not isinstance(message, str):
        if message is not None:
            logger.debug("Ignoring non-string log message: %r", message)
        message = ''
    if not isinstance(fields, Mapping):
        if fields is not None:
            logger.debug("Ignoring non-object log fields: %r", fields)
        fields = {}
    return LogRecord(
        message=message,
        fields={str(k): '' if v is None else str(v) for k, v in fields.items()}
    )


def _statement_text(record: LogRecord) -> Optional[str]:
    """Identify the SQL carried by a record, or None if it has none."""
    index = record.message.find(SQL_MARKER)
    if index != -1:
        return LEADING_NOISE_RE.sub('', record.message[index + len(SQL_MARKER):]).rstrip()
    if record.fields.get('type') == 'query':
        return record.message
    return None


def extract_statement(record: Union[LogRecord, Mapping[str, Any]]) -> Optional[Statement]:
    """Build a Statement from one log record, or None if it is not SQL evidence."""
    record = _coerce_record(record)
    if not record.message:
        return None

    text = _statement_text(record)
    if text is None:
        return None

    fields = record.fields
    normalized = normalize_query(text)
    statement = Statement(
        raw_query=text,
        normalized_query=normalized,
        query_hash=compute_query_hash(normalized),
    )

    # Structured query records report their own timing and row count
    structured = SQL_MARKER not in record.message
    if structured:
        duration = _parse_float(fields.get('duration_ms'))
        if duration is not None:
            statement.duration_ms = duration
        rows = _parse_int(fields.get('rows'))
        if rows is not None:
            statement.rows = rows

    # These apply to both formats; duration wins over duration_ms
    duration = _parse_float(fields.get('duration'))
    if duration is not None:
        statement.duration_ms = duration
    rows = _parse_int(fields.get('db.rows'))
    if rows is not None:
        statement.rows = rows

    statement.table = fields.get('db.table', '')
    statement.operation = fields.get('db.operation', '')
    statement.variables_raw = fields.get('db.vars', '')

    if 'gql.operation' in fields:
        statement.graphql_operation = fields['gql.operation']
    elif 'gql.operationName' in fields:
        statement.graphql_operation = fields['gql.operationName']

    statement.correlation = Correlation(
        request_id=fields.get('request_id'),
        span_id=fields.get('span_id'),
        trace_id=fields.get('trace_id'),
    )
    consumed = KNOWN_FIELDS | STRUCTURED_FIELDS if structured else KNOWN_FIELDS
    statement.extra_fields = {k: v for k, v in fields.items() if k not in consumed}
    return statement


def extract_statements(records: Iterable[Union[LogRecord, Mapping[str, Any]]]) -> List[Statement]:
    """Extract every SQL statement found in a sequence of log records."""
    statements = []
    for record in records:
        statement = extract_statement(record)
        if statement is not None:
            statements.append(statement)
    logger.debug("Extracted %d SQL statements", len(statements))
    return statements


def load_log_records(path: Path) -> List[LogRecord]:
    """Read log records from a JSON Lines file."""
    if not path.exists():
        raise FileNotFoundError(f"Log file not found: {path}")

    records = []
    with open(path, encoding='utf-8') as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except ValueError as e:
                logger.warning("Skipping malformed log line %s:%d: %s", path, line_no, e)
                continue
            if not isinstance(data, dict):
                logger.warning("Skipping non-object log line %s:%d", path, line_no)
                continue
            records.append(_coerce_record(data))
    return records
