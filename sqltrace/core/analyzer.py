"""
Core trace analysis functionality.
Ties extraction, EXPLAIN acquisition, index analysis and set comparison together.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .comparator import compare_statement_sets
from .database import BatchResult, DatabaseManager, explain_statements
from .extractor import extract_statements
from .index_advisor import IndexAdvisorThresholds, analyze_index_usage
from .models import IndexAnalysis, LogRecord, Statement, StatementSummary
from .statistics import summarize_statements

logger = logging.getLogger(__name__)


@dataclass
class ExplainSettings:
    threshold_ms: float = 2.0
    timeout_ms: Optional[int] = 5000
    max_workers: int = 1


@dataclass
class ExecutionAnalysis:
    statements: List[Statement]
    summary: StatementSummary
    index_analysis: IndexAnalysis
    batch: BatchResult = field(default_factory=BatchResult)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'statements': [s.to_dict() for s in self.statements],
            'summary': self.summary.to_dict(),
            'index_analysis': self.index_analysis.to_dict(),
            'explain': {
                'explained': self.batch.explained,
                'skipped': self.batch.skipped,
                'failed': [
                    {'query_hash': s.query_hash, 'kind': e.kind.value, 'message': e.message}
                    for s, e in self.batch.failures
                ],
            },
        }


class TraceAnalyzer:
    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        explain_settings: Optional[ExplainSettings] = None,
        thresholds: Optional[IndexAdvisorThresholds] = None
    ):
        self.db_manager = db_manager
        self.explain_settings = explain_settings or ExplainSettings()
        self.thresholds = thresholds or IndexAdvisorThresholds()

    def analyze_statements(self, statements: List[Statement]) -> ExecutionAnalysis:
        """Explain slow statements (when a database is configured) and analyze them."""
        batch = BatchResult()
        if self.db_manager is not None:
            settings = self.explain_settings
            batch = explain_statements(
                statements,
                self.db_manager,
                threshold_ms=settings.threshold_ms,
                timeout_ms=settings.timeout_ms,
                max_workers=settings.max_workers
            )
        else:
            logger.info("No database configured, skipping EXPLAIN")

        return ExecutionAnalysis(
            statements=statements,
            summary=summarize_statements(statements),
            index_analysis=analyze_index_usage(statements, self.thresholds),
            batch=batch
        )

    def analyze_execution(self, records: Sequence[LogRecord]) -> ExecutionAnalysis:
        """Extract and analyze the SQL statements of one execution."""
        statements = extract_statements(records)
        logger.info("Found %d SQL statements in %d log records", len(statements), len(records))
        return self.analyze_statements(statements)

    def compare_executions(
        self,
        records1: Sequence[LogRecord],
        records2: Sequence[LogRecord]
    ) -> Dict[str, Any]:
        """Compare the SQL behaviour of two executions."""
        execution1 = self.analyze_execution(records1)
        execution2 = self.analyze_execution(records2)
        comparison = compare_statement_sets(execution1.statements, execution2.statements)
        return {
            'set1': execution1,
            'set2': execution2,
            'comparison': comparison
        }
