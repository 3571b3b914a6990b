"""
Core functionality for SQL trace analysis
"""
from .database import DatabaseManager, DatabaseConfig, ErrorKind, ExplainError, explain, explain_statements
from .analyzer import TraceAnalyzer, ExecutionAnalysis, ExplainSettings
from .comparator import compare_statement_sets
from .extractor import extract_statements, load_log_records
from .index_advisor import IndexAdvisorThresholds, analyze_index_usage
from .normalizer import normalize_query, compute_query_hash
from .plan import PlanNode, PlanParser, PlanFormatError, parse_explain_output
from .variables import to_map, substitute_variables, interpolate_query
