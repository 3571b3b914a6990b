"""
Index usage analysis and index recommendations.
Walks EXPLAIN plans of a statement set looking for sequential scans.
"""
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .models import (
    IndexAnalysis, IndexAnalysisSummary, IndexRecommendation,
    IndexUsageStat, SequentialScanIssue, Statement
)
from .plan import PlanNode

PLACEHOLDER_COLUMN = '<filter_column>'
UNKNOWN_TABLE = 'unknown'
PRIORITY_ORDER = {'high': 0, 'medium': 1, 'low': 2}

CAST_RE = re.compile(
    r'::\s*(?:"[^"]+"|[A-Za-z_]\w*(?:\s+varying|\s+precision|\s+with(?:out)?\s+time\s+zone)?)(?:\[\])?'
)
IDENTIFIER_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')
COMPARISON_OPERATORS = frozenset(['=', '<>', '!=', '<', '>', '<=', '>=', 'IS', 'LIKE', 'ILIKE', 'IN'])
OPERATOR_SPLIT_RE = re.compile(r'(<>|!=|<=|>=|=|<|>)')


@dataclass
class IndexAdvisorThresholds:
    """Cut-offs for recommendation priority.

    A table is "frequently" scanned when its sequential scan occurs at least
    frequent_occurrences times, and "expensively" scanned when the average
    total cost of those scans is at least expensive_avg_cost.
    """
    frequent_occurrences: int = 5
    expensive_avg_cost: float = 1000.0


def extract_filter_columns(condition: Optional[str]) -> List[str]:
    """Extract column names from simple equality/range predicates."""
    if not condition:
        return []

    # "((status)::text = 'active'::text)" -> "status = 'active'"
    cleaned = CAST_RE.sub('', condition)
    cleaned = cleaned.replace('(', ' ').replace(')', ' ')
    cleaned = OPERATOR_SPLIT_RE.sub(r' \1 ', cleaned)

    columns = []
    words = cleaned.split()
    for i, word in enumerate(words[:-1]):
        if words[i + 1].upper() not in COMPARISON_OPERATORS:
            continue
        # Qualified name: schema.table.column -> column
        column = word.split('.')[-1].strip('"')
        if IDENTIFIER_RE.match(column) and column.upper() not in COMPARISON_OPERATORS | {'AND', 'OR', 'NOT'}:
            if column not in columns:
                columns.append(column)
    return columns


def determine_priority(issue: SequentialScanIssue, thresholds: IndexAdvisorThresholds) -> str:
    frequent = issue.occurrences >= thresholds.frequent_occurrences
    expensive = issue.avg_cost >= thresholds.expensive_avg_cost
    if frequent and expensive:
        return 'high'
    if frequent or expensive:
        return 'medium'
    return 'low'


def estimate_impact(issue: SequentialScanIssue, priority: str) -> str:
    if priority == 'high':
        return "High - Eliminates a frequent, expensive sequential scan"
    if priority == 'medium':
        return "Medium - Should remove the sequential scan and improve query time"
    return "Low - Minor performance improvement expected"


def build_recommendation(issue: SequentialScanIssue, thresholds: IndexAdvisorThresholds) -> IndexRecommendation:
    priority = determine_priority(issue, thresholds)
    columns = extract_filter_columns(issue.filter_condition)
    if columns:
        reason = (
            f"Sequential scan on '{issue.table}' filtering by {', '.join(columns)} "
            f"(occurred {issue.occurrences} times)"
        )
    else:
        columns = [PLACEHOLDER_COLUMN]
        reason = (
            f"Sequential scan detected on table '{issue.table}' "
            f"(occurred {issue.occurrences} times, avg cost: {issue.avg_cost:.2f})"
        )
    return IndexRecommendation(
        table=issue.table,
        columns=columns,
        priority=priority,
        reason=reason,
        estimated_impact=estimate_impact(issue, priority),
        sql_command=f"CREATE INDEX ON {issue.table}({', '.join(columns)});",
        affected_queries=issue.occurrences
    )


def analyze_index_usage(
    statements: Sequence[Statement],
    thresholds: Optional[IndexAdvisorThresholds] = None
) -> IndexAnalysis:
    """Analyze index usage across the plans of a statement set."""
    thresholds = thresholds or IndexAdvisorThresholds()
    summary = IndexAnalysisSummary(total_queries=len(statements))
    seq_scans: Dict[str, SequentialScanIssue] = {}
    index_usage: Dict[str, IndexUsageStat] = {}
    total_cost = 0.0

    def analyze_node(node: PlanNode, statement: Statement):
        if 'Seq Scan' in node.node_type:
            summary.sequential_scans += 1
            table = node.relation_name or statement.table or UNKNOWN_TABLE
            issue = seq_scans.get(table)
            if issue is None:
                issue = seq_scans[table] = SequentialScanIssue(table=table)
            issue.occurrences += 1
            issue.total_cost += node.total_cost
            issue.duration_ms += statement.duration_ms
            if issue.filter_condition is None and node.filter_condition:
                issue.filter_condition = node.filter_condition

        # Index Scan, Index Only Scan, Bitmap Index Scan
        if 'Index' in node.node_type:
            summary.index_scans += 1
            if node.index_name:
                stat = index_usage.get(node.index_name)
                if stat is None:
                    index_usage[node.index_name] = IndexUsageStat(
                        index_name=node.index_name,
                        table=node.relation_name or '',
                        use_count=1,
                        avg_cost=node.total_cost,
                        scan_type=node.node_type
                    )
                else:
                    stat.use_count += 1
                    stat.avg_cost += (node.total_cost - stat.avg_cost) / stat.use_count

        for child in node.children:
            analyze_node(child, statement)

    for statement in statements:
        if statement.explain_plan is None:
            continue
        summary.queries_with_plans += 1
        total_cost += statement.explain_plan.total_cost
        analyze_node(statement.explain_plan, statement)

    if summary.queries_with_plans:
        summary.avg_query_cost = total_cost / summary.queries_with_plans

    # Scans with no resolvable table are reported but cannot be indexed
    recommendations = [
        build_recommendation(issue, thresholds)
        for issue in seq_scans.values() if issue.table != UNKNOWN_TABLE
    ]
    recommendations.sort(key=lambda r: (PRIORITY_ORDER[r.priority], -r.affected_queries, r.table))

    summary.total_recommendations = len(recommendations)
    summary.high_priority_recommendations = sum(1 for r in recommendations if r.priority == 'high')

    return IndexAnalysis(
        recommendations=recommendations,
        sequential_scans=list(seq_scans.values()),
        index_usage=list(index_usage.values()),
        summary=summary
    )
