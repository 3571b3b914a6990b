"""
Comparison of the statements captured for two executions.
"""
from typing import Dict, List, Optional, Sequence

from .models import ComparisonResult, ComparisonSummary, PerformanceDifference, Statement
from .plan import PlanNode, describe_plan_differences, plans_differ


def group_by_normalized(statements: Sequence[Statement]) -> Dict[str, List[Statement]]:
    """Group statements by normalized query, keeping first-encounter order."""
    groups: Dict[str, List[Statement]] = {}
    for statement in statements:
        groups.setdefault(statement.normalized_query, []).append(statement)
    return groups


def average_duration(statements: Sequence[Statement]) -> float:
    if not statements:
        return 0.0
    return sum(s.duration_ms for s in statements) / len(statements)


def _representative_plan(statements: Sequence[Statement]) -> Optional[PlanNode]:
    for statement in statements:
        if statement.explain_plan is not None:
            return statement.explain_plan
    return None


def compare_query_group(
    normalized: str,
    group1: Sequence[Statement],
    group2: Sequence[Statement]
) -> PerformanceDifference:
    """Compare the occurrences of one query shape in both sets."""
    avg1 = average_duration(group1)
    avg2 = average_duration(group2)
    diff_pct = (avg2 - avg1) / abs(avg1) * 100 if avg1 != 0 else 0.0

    difference = PerformanceDifference(
        normalized_query=normalized,
        example_query=group1[0].raw_query,
        graphql_operation=group1[0].graphql_operation or group2[0].graphql_operation,
        set1_count=len(group1),
        set2_count=len(group2),
        set1_avg_duration=avg1,
        set2_avg_duration=avg2,
        duration_diff_pct=diff_pct
    )

    plan1 = _representative_plan(group1)
    plan2 = _representative_plan(group2)
    if plan1 is not None and plan2 is not None and plans_differ(plan1, plan2):
        difference.has_plan_change = True
        difference.plan_differences = describe_plan_differences(plan1, plan2)

    return difference


def compare_statement_sets(set1: Sequence[Statement], set2: Sequence[Statement]) -> ComparisonResult:
    """Compare two statement sets by normalized query shape."""
    groups1 = group_by_normalized(set1)
    groups2 = group_by_normalized(set2)

    summary = ComparisonSummary(
        total_queries_set1=len(set1),
        total_queries_set2=len(set2),
        unique_queries_set1=len(groups1),
        unique_queries_set2=len(groups2),
        avg_duration_set1=average_duration(set1),
        avg_duration_set2=average_duration(set2)
    )

    differences = []
    for normalized, group1 in groups1.items():
        group2 = groups2.get(normalized)
        if group2 is None:
            continue
        difference = compare_query_group(normalized, group1, group2)
        differences.append(difference)
        if difference.has_plan_change:
            summary.queries_with_plan_change += 1
    summary.common_queries = len(differences)

    # Largest regressions/improvements first; stable sort keeps encounter order on full ties
    differences.sort(key=lambda d: (-abs(d.duration_diff_pct), -abs(d.duration_diff)))

    return ComparisonResult(
        summary=summary,
        performance_differences=differences,
        only_in_set1=[g[0] for n, g in groups1.items() if n not in groups2],
        only_in_set2=[g[0] for n, g in groups2.items() if n not in groups1]
    )
