"""Test EXPLAIN acquisition and batch semantics."""

import json
import pytest
import psycopg2
from unittest.mock import MagicMock, Mock, patch
from sqltrace.core.database import (
    DatabaseManager, ErrorKind, ExplainError, explain, explain_statements
)
from sqltrace.core.plan import PlanNode

def make_connection(rows=None, error=None, autocommit=False):
    conn = MagicMock()
    conn.autocommit = autocommit
    cursor = conn.cursor.return_value.__enter__.return_value

    def execute(sql, params=None):
        if error is not None and sql.startswith('EXPLAIN'):
            raise error

    cursor.execute.side_effect = execute
    cursor.fetchall.return_value = rows
    return conn, cursor

def test_explain_parses_plan(sample_plan):
    conn, cursor = make_connection(rows=[(sample_plan,)])

    plan = explain('SELECT * FROM users', conn)

    assert plan.node_type == 'Hash Join'
    cursor.execute.assert_called_once_with('EXPLAIN (ANALYZE, FORMAT JSON) SELECT * FROM users')
    conn.rollback.assert_called_once()

def test_explain_accepts_json_text(sample_plan):
    conn, _ = make_connection(rows=[(json.dumps(sample_plan[0]),)])
    assert explain('SELECT 1', conn).node_type == 'Hash Join'

def test_explain_sets_statement_timeout(sample_plan):
    conn, cursor = make_connection(rows=[(sample_plan,)])

    explain('SELECT 1', conn, timeout_ms=250)

    cursor.execute.assert_any_call('SET LOCAL statement_timeout = %s', (250,))

def test_explain_opens_transaction_on_autocommit_connection(sample_plan):
    conn, cursor = make_connection(rows=[(sample_plan,)], autocommit=True)
    seen = []
    cursor.execute.side_effect = lambda sql, params=None: seen.append((sql, conn.autocommit))

    explain('DELETE FROM users', conn, timeout_ms=250)

    # Timeout and EXPLAIN both ran inside a transaction
    assert seen == [
        ('SET LOCAL statement_timeout = %s', False),
        ('EXPLAIN (ANALYZE, FORMAT JSON) DELETE FROM users', False),
    ]
    conn.rollback.assert_called_once()
    assert conn.autocommit is True

def test_explain_restores_autocommit_after_failure():
    conn, _ = make_connection(error=psycopg2.ProgrammingError('syntax error'), autocommit=True)

    with pytest.raises(ExplainError):
        explain('SELECT * FORM users', conn)

    conn.rollback.assert_called_once()
    assert conn.autocommit is True

def test_syntax_error_is_typed():
    conn, _ = make_connection(error=psycopg2.ProgrammingError('syntax error at or near "FORM"'))

    with pytest.raises(ExplainError) as exc_info:
        explain('SELECT * FORM users', conn)

    assert exc_info.value.kind == ErrorKind.SYNTAX
    assert 'syntax error' in exc_info.value.message
    assert exc_info.value.query == 'SELECT * FORM users'
    conn.rollback.assert_called_once()

def test_timeout_is_connection_error():
    error = psycopg2.extensions.QueryCanceledError('canceling statement due to statement timeout')
    conn, _ = make_connection(error=error)

    with pytest.raises(ExplainError) as exc_info:
        explain('SELECT pg_sleep(10)', conn, timeout_ms=10)

    assert exc_info.value.kind == ErrorKind.CONNECTION

def test_malformed_plan_is_format_error():
    conn, _ = make_connection(rows=[('{"no": "plan"}',)])

    with pytest.raises(ExplainError) as exc_info:
        explain('SELECT 1', conn)

    assert exc_info.value.kind == ErrorKind.FORMAT

def test_empty_result_is_format_error():
    conn, _ = make_connection(rows=[])

    with pytest.raises(ExplainError) as exc_info:
        explain('SELECT 1', conn)

    assert exc_info.value.kind == ErrorKind.FORMAT

def test_connect_failure_is_connection_error(sample_db_config):
    manager = DatabaseManager(sample_db_config)
    with patch('sqltrace.core.database.psycopg2.connect',
               side_effect=psycopg2.OperationalError('could not connect to server')):
        with pytest.raises(ExplainError) as exc_info:
            manager.explain('SELECT 1')

    assert exc_info.value.kind == ErrorKind.CONNECTION
    assert 'could not connect' in exc_info.value.message

def test_manager_closes_connection(sample_db_config, sample_plan):
    conn, _ = make_connection(rows=[(sample_plan,)])
    manager = DatabaseManager(sample_db_config)
    with patch('sqltrace.core.database.psycopg2.connect', return_value=conn) as connect:
        manager.explain('SELECT 1', timeout_ms=100)

    assert connect.call_args.kwargs['connect_timeout'] == 5
    conn.close.assert_called_once()

def test_batch_tolerates_failures(make_statement):
    fast = make_statement('SELECT 1', duration_ms=0.5)
    broken = make_statement('SELECT * FORM users', duration_ms=10.0)
    slow = make_statement('SELECT * FROM users WHERE id = $1', duration_ms=30.0, variables_raw='[7]')

    def fake_explain(query, timeout_ms=None):
        if 'FORM' in query:
            raise ExplainError(ErrorKind.SYNTAX, 'syntax error', query)
        return PlanNode(node_type='Seq Scan', relation_name='users')

    manager = Mock(spec=DatabaseManager)
    manager.explain.side_effect = fake_explain

    result = explain_statements([fast, broken, slow], manager, threshold_ms=2.0, timeout_ms=500)

    assert result.explained == 1
    assert result.skipped == 1
    assert len(result.failures) == 1
    assert result.failures[0][0] is broken
    assert result.failures[0][1].kind == ErrorKind.SYNTAX
    assert slow.explain_plan.node_type == 'Seq Scan'
    assert broken.explain_plan is None
    assert fast.explain_plan is None
    manager.explain.assert_any_call('SELECT * FROM users WHERE id = 7', 500)

def test_batch_with_workers(make_statement):
    statements = [make_statement(f'SELECT {i}', duration_ms=5.0) for i in range(6)]
    manager = Mock(spec=DatabaseManager)
    manager.explain.return_value = PlanNode(node_type='Result')

    result = explain_statements(statements, manager, threshold_ms=2.0, max_workers=3)

    assert result.explained == 6
    assert all(s.explain_plan is not None for s in statements)

def test_batch_skips_statements_with_plans(make_statement):
    statement = make_statement('SELECT 1', duration_ms=5.0, plan={'Node Type': 'Result'})
    manager = Mock(spec=DatabaseManager)

    result = explain_statements([statement], manager)

    assert result.skipped == 1
    manager.explain.assert_not_called()
