"""
Data models for SQL trace analysis.
"""
import json
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from .plan import PlanNode


@dataclass
class LogRecord:
    """One structured log record handed over by the ingestion pipeline."""
    message: str
    fields: Dict[str, str] = field(default_factory=dict)


@dataclass
class Correlation:
    request_id: Optional[str] = None
    span_id: Optional[str] = None
    trace_id: Optional[str] = None


@dataclass
class Statement:
    """Represents one SQL execution captured from log evidence."""
    raw_query: str
    normalized_query: str
    query_hash: str
    duration_ms: float = 0.0
    table: str = ''
    operation: str = ''
    rows: int = 0
    variables_raw: str = ''
    graphql_operation: Optional[str] = None
    correlation: Correlation = field(default_factory=Correlation)
    extra_fields: Dict[str, str] = field(default_factory=dict)
    explain_plan: Optional[PlanNode] = None

    def attach_plan(self, plan: PlanNode) -> None:
        """Record the EXPLAIN plan; a statement accepts exactly one plan."""
        if self.explain_plan is not None:
            raise ValueError(f"Plan already attached for query {self.query_hash}")
        self.explain_plan = plan

    def explain_plan_json(self) -> Optional[str]:
        if self.explain_plan is None:
            return None
        return json.dumps([{'Plan': self.explain_plan.to_dict()}])

    def plan_record(self, execution_id: Any) -> Dict[str, Any]:
        """Get the payload a store needs to upsert the plan by (execution, hash)."""
        return {
            'execution_id': execution_id,
            'query_hash': self.query_hash,
            'normalized_query': self.normalized_query,
            'explain_plan': self.explain_plan_json(),
        }

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'raw_query': self.raw_query,
            'normalized_query': self.normalized_query,
            'query_hash': self.query_hash,
            'duration_ms': self.duration_ms,
            'table': self.table,
            'operation': self.operation,
            'rows': self.rows,
            'variables_raw': self.variables_raw,
            'graphql_operation': self.graphql_operation,
            'correlation': asdict(self.correlation),
            'extra_fields': dict(self.extra_fields),
            'explain_plan': self.explain_plan.to_dict() if self.explain_plan else None,
        }
        return data


@dataclass
class SequentialScanIssue:
    """Aggregate of all sequential scans seen on one table."""
    table: str
    occurrences: int = 0
    total_cost: float = 0.0
    duration_ms: float = 0.0
    filter_condition: Optional[str] = None

    @property
    def avg_cost(self) -> float:
        if self.occurrences == 0:
            return 0.0
        return self.total_cost / self.occurrences

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['avg_cost'] = self.avg_cost
        return data


@dataclass
class IndexUsageStat:
    """Tracks how often an existing index is used."""
    index_name: str
    table: str
    use_count: int
    avg_cost: float
    scan_type: str


@dataclass
class IndexRecommendation:
    """Represents a recommended index for query optimization."""
    table: str
    columns: List[str]
    priority: str
    reason: str
    estimated_impact: str
    sql_command: str
    affected_queries: int = 0

    @property
    def description(self) -> str:
        """Get a human-readable description of the recommendation."""
        return f"Create index on {self.table}({', '.join(self.columns)}) - {self.reason}"


@dataclass
class IndexAnalysisSummary:
    total_queries: int = 0
    queries_with_plans: int = 0
    sequential_scans: int = 0
    index_scans: int = 0
    total_recommendations: int = 0
    high_priority_recommendations: int = 0
    avg_query_cost: float = 0.0


@dataclass
class IndexAnalysis:
    recommendations: List[IndexRecommendation] = field(default_factory=list)
    sequential_scans: List[SequentialScanIssue] = field(default_factory=list)
    index_usage: List[IndexUsageStat] = field(default_factory=list)
    summary: IndexAnalysisSummary = field(default_factory=IndexAnalysisSummary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'recommendations': [asdict(r) for r in self.recommendations],
            'sequential_scans': [s.to_dict() for s in self.sequential_scans],
            'index_usage': [asdict(u) for u in self.index_usage],
            'summary': asdict(self.summary),
        }


@dataclass
class PerformanceDifference:
    """Compares one normalized query shape between two statement sets."""
    normalized_query: str
    example_query: str
    graphql_operation: Optional[str]
    set1_count: int
    set2_count: int
    set1_avg_duration: float
    set2_avg_duration: float
    duration_diff_pct: float
    has_plan_change: bool = False
    plan_differences: List[str] = field(default_factory=list)

    @property
    def duration_diff(self) -> float:
        return self.set2_avg_duration - self.set1_avg_duration


@dataclass
class ComparisonSummary:
    total_queries_set1: int = 0
    total_queries_set2: int = 0
    unique_queries_set1: int = 0
    unique_queries_set2: int = 0
    common_queries: int = 0
    queries_with_plan_change: int = 0
    avg_duration_set1: float = 0.0
    avg_duration_set2: float = 0.0


@dataclass
class ComparisonResult:
    summary: ComparisonSummary = field(default_factory=ComparisonSummary)
    performance_differences: List[PerformanceDifference] = field(default_factory=list)
    only_in_set1: List[Statement] = field(default_factory=list)
    only_in_set2: List[Statement] = field(default_factory=list)

    @property
    def plan_changes(self) -> List[PerformanceDifference]:
        return [d for d in self.performance_differences if d.has_plan_change]

    def significant_differences(self, threshold_pct: float = 20.0) -> List[PerformanceDifference]:
        """Differences whose duration moved by more than threshold_pct either way."""
        return [d for d in self.performance_differences if abs(d.duration_diff_pct) > threshold_pct]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'summary': asdict(self.summary),
            'performance_differences': [asdict(d) for d in self.performance_differences],
            'only_in_set1': [s.to_dict() for s in self.only_in_set1],
            'only_in_set2': [s.to_dict() for s in self.only_in_set2],
        }


@dataclass
class QueryGroup:
    normalized_query: str
    count: int
    example: Statement
    avg_duration: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'normalized_query': self.normalized_query,
            'count': self.count,
            'example_query': self.example.raw_query,
            'avg_duration': self.avg_duration,
        }


@dataclass
class StatementSummary:
    """High-level statistics for the statements of one execution."""
    total_queries: int = 0
    unique_queries: int = 0
    avg_duration: float = 0.0
    total_duration: float = 0.0
    slowest_queries: List[Statement] = field(default_factory=list)
    frequent_queries: List[QueryGroup] = field(default_factory=list)
    n_plus_one_issues: List[QueryGroup] = field(default_factory=list)
    tables_accessed: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_queries': self.total_queries,
            'unique_queries': self.unique_queries,
            'avg_duration': self.avg_duration,
            'total_duration': self.total_duration,
            'slowest_queries': [s.to_dict() for s in self.slowest_queries],
            'frequent_queries': [g.to_dict() for g in self.frequent_queries],
            'n_plus_one_issues': [g.to_dict() for g in self.n_plus_one_issues],
            'tables_accessed': dict(self.tables_accessed),
        }
