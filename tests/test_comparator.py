"""Test comparison of two statement sets."""

import pytest
from sqltrace.core.comparator import compare_statement_sets

def test_empty_sets():
    result = compare_statement_sets([], [])

    assert result.summary.total_queries_set1 == 0
    assert result.summary.total_queries_set2 == 0
    assert result.summary.avg_duration_set1 == 0
    assert result.summary.avg_duration_set2 == 0
    assert result.summary.common_queries == 0
    assert result.performance_differences == []
    assert result.only_in_set1 == []
    assert result.only_in_set2 == []

def test_one_side_empty(make_statement):
    result = compare_statement_sets([make_statement('SELECT 1', duration_ms=3.0)], [])

    assert result.summary.avg_duration_set1 == 3.0
    assert result.summary.avg_duration_set2 == 0
    assert [s.raw_query for s in result.only_in_set1] == ['SELECT 1']
    assert result.only_in_set2 == []

def test_compare_set_with_itself(make_statement):
    statements = [
        make_statement('SELECT * FROM users WHERE id = $1', duration_ms=4.0),
        make_statement('SELECT * FROM users WHERE id = $2', duration_ms=6.0),
        make_statement('SELECT * FROM orders', duration_ms=1.0),
    ]

    result = compare_statement_sets(statements, statements)

    assert result.summary.common_queries == 2
    assert result.summary.unique_queries_set1 == 2
    assert result.only_in_set1 == []
    assert result.only_in_set2 == []
    assert all(d.duration_diff_pct == 0 for d in result.performance_differences)

def test_twice_as_fast(make_statement):
    set1 = [make_statement('SELECT * FROM users WHERE id = $1', duration_ms=10.0)]
    set2 = [make_statement('SELECT * FROM users WHERE id = $1', duration_ms=5.0)]

    result = compare_statement_sets(set1, set2)

    assert len(result.performance_differences) == 1
    diff = result.performance_differences[0]
    assert diff.duration_diff_pct == pytest.approx(-50.0)
    assert diff.set1_count == 1
    assert diff.set2_count == 1
    assert diff.normalized_query == 'SELECT * FROM users WHERE id = $N'

def test_zero_baseline_duration(make_statement):
    result = compare_statement_sets(
        [make_statement('SELECT 1', duration_ms=0.0)],
        [make_statement('SELECT 1', duration_ms=8.0)]
    )
    assert result.performance_differences[0].duration_diff_pct == 0

def test_negative_baseline_duration(make_statement):
    result = compare_statement_sets(
        [make_statement('SELECT 1', duration_ms=-4.0)],
        [make_statement('SELECT 1', duration_ms=2.0)]
    )
    # Slower than baseline is always a positive change
    assert result.performance_differences[0].duration_diff_pct == 150.0

def test_ordering_by_abs_pct_then_abs_diff(make_statement):
    set1 = [
        make_statement('SELECT a', duration_ms=10.0),
        make_statement('SELECT b', duration_ms=100.0),
        make_statement('SELECT c', duration_ms=10.0),
        make_statement('SELECT d', duration_ms=10.0),
    ]
    set2 = [
        make_statement('SELECT a', duration_ms=11.0),
        make_statement('SELECT b', duration_ms=50.0),
        make_statement('SELECT c', duration_ms=5.0),
        make_statement('SELECT d', duration_ms=40.0),
    ]

    result = compare_statement_sets(set1, set2)

    # d: +300%, b: -50% (diff 50), c: -50% (diff 5), a: +10%
    assert [d.normalized_query for d in result.performance_differences] == [
        'SELECT d', 'SELECT b', 'SELECT c', 'SELECT a'
    ]

def test_only_in_sets_keep_encounter_order(make_statement):
    set1 = [
        make_statement('SELECT z', duration_ms=1.0),
        make_statement('SELECT shared'),
        make_statement('SELECT a'),
        make_statement('SELECT z', duration_ms=2.0),
    ]
    set2 = [make_statement('SELECT shared'), make_statement('SELECT new')]

    result = compare_statement_sets(set1, set2)

    assert [s.raw_query for s in result.only_in_set1] == ['SELECT z', 'SELECT a']
    assert result.only_in_set1[0].duration_ms == 1.0
    assert [s.raw_query for s in result.only_in_set2] == ['SELECT new']

def test_group_averages_and_counts(make_statement):
    set1 = [make_statement(f'SELECT * FROM t WHERE id = {i}', duration_ms=d) for i, d in enumerate([2.0, 4.0])]
    set2 = [make_statement(f'SELECT * FROM t WHERE id = {i}', duration_ms=d) for i, d in enumerate([6.0, 6.0, 6.0])]

    result = compare_statement_sets(set1, set2)

    diff = result.performance_differences[0]
    assert diff.set1_count == 2
    assert diff.set2_count == 3
    assert diff.set1_avg_duration == 3.0
    assert diff.set2_avg_duration == 6.0
    assert diff.duration_diff_pct == pytest.approx(100.0)

def test_plan_change_detected(make_statement):
    query = 'SELECT * FROM users WHERE email = $1'
    set1 = [make_statement(query, duration_ms=20.0, plan={
        'Node Type': 'Seq Scan', 'Relation Name': 'users', 'Total Cost': 200.0
    })]
    set2 = [make_statement(query, duration_ms=1.0, plan={
        'Node Type': 'Index Scan', 'Relation Name': 'users', 'Index Name': 'users_email_idx', 'Total Cost': 8.0
    })]

    result = compare_statement_sets(set1, set2)

    assert result.summary.queries_with_plan_change == 1
    diff = result.performance_differences[0]
    assert diff.has_plan_change
    assert 'Changed from sequential scan to indexed access' in diff.plan_differences
    assert result.plan_changes == [diff]

def test_missing_plan_is_not_a_change(make_statement):
    query = 'SELECT 1'
    set1 = [make_statement(query, plan={'Node Type': 'Result'})]
    set2 = [make_statement(query)]

    result = compare_statement_sets(set1, set2)

    assert result.summary.queries_with_plan_change == 0
    assert not result.performance_differences[0].has_plan_change

def test_significant_differences(make_statement):
    set1 = [make_statement('SELECT a', duration_ms=10.0), make_statement('SELECT b', duration_ms=10.0)]
    set2 = [make_statement('SELECT a', duration_ms=11.0), make_statement('SELECT b', duration_ms=30.0)]

    result = compare_statement_sets(set1, set2)

    assert [d.normalized_query for d in result.significant_differences()] == ['SELECT b']

def test_result_is_serializable(make_statement):
    import json
    set1 = [make_statement('SELECT 1', duration_ms=1.0, plan={'Node Type': 'Result'})]
    result = compare_statement_sets(set1, [make_statement('SELECT 2')])
    data = json.loads(json.dumps(result.to_dict()))
    assert data['only_in_set1'][0]['explain_plan']['Node Type'] == 'Result'
