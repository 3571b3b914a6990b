"""
Per-execution statement statistics: slowest queries, frequent shapes, N+1 candidates.
"""
from typing import List, Sequence

from .comparator import average_duration, group_by_normalized
from .models import QueryGroup, Statement, StatementSummary


def summarize_statements(
    statements: Sequence[Statement],
    top_n: int = 5,
    n_plus_one_threshold: int = 5
) -> StatementSummary:
    """Summarize the statements captured for one execution."""
    summary = StatementSummary()
    if not statements:
        return summary

    summary.total_queries = len(statements)
    summary.total_duration = sum(s.duration_ms for s in statements)
    summary.avg_duration = summary.total_duration / len(statements)

    for statement in statements:
        table = statement.table or 'unknown'
        summary.tables_accessed[table] = summary.tables_accessed.get(table, 0) + 1

    groups: List[QueryGroup] = [
        QueryGroup(
            normalized_query=normalized,
            count=len(group),
            example=group[0],
            avg_duration=average_duration(group)
        )
        for normalized, group in group_by_normalized(statements).items()
    ]
    summary.unique_queries = len(groups)

    summary.slowest_queries = sorted(statements, key=lambda s: s.duration_ms, reverse=True)[:top_n]

    by_frequency = sorted(groups, key=lambda g: g.count, reverse=True)
    summary.frequent_queries = by_frequency[:top_n]

    # Same shape executed many times in one request usually means a query in a loop
    summary.n_plus_one_issues = [g for g in by_frequency if g.count > n_plus_one_threshold]

    return summary
