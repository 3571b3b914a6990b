"""
Configuration loading utilities for pg-sqltrace.
"""
from typing import Any, Dict, Optional
from pathlib import Path
import yaml
from dataclasses import dataclass, field

from ..core.analyzer import ExplainSettings
from ..core.database import DatabaseConfig
from ..core.index_advisor import IndexAdvisorThresholds

@dataclass
class AppConfig:
    """Application configuration."""
    set1_logs: Path
    set2_logs: Path
    database: Optional[DatabaseConfig] = None
    explain: ExplainSettings = field(default_factory=ExplainSettings)
    index_advisor: IndexAdvisorThresholds = field(default_factory=IndexAdvisorThresholds)
    output_dir: Path = Path('reports')

class ConfigLoader:
    """Loads and validates configuration from YAML files."""

    @staticmethod
    def load_config(config_path: Path) -> AppConfig:
        """Load configuration from YAML file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise ValueError("Config file must contain a mapping")

        # Validate required fields
        executions = config_data.get('executions')
        if not isinstance(executions, dict):
            raise ValueError("Missing required field in config: executions")
        for key in ('set1', 'set2'):
            if key not in executions:
                raise ValueError(f"Missing required field in config: executions.{key}")

        set1_logs = Path(executions['set1'])
        set2_logs = Path(executions['set2'])

        # Validate log files exist
        if not set1_logs.exists():
            raise FileNotFoundError(f"Log file for set1 not found: {set1_logs}")
        if not set2_logs.exists():
            raise FileNotFoundError(f"Log file for set2 not found: {set2_logs}")

        explain_data = config_data.get('explain') or {}
        advisor_data = config_data.get('index_advisor') or {}
        defaults = ExplainSettings()
        advisor_defaults = IndexAdvisorThresholds()

        return AppConfig(
            set1_logs=set1_logs,
            set2_logs=set2_logs,
            database=ConfigLoader._load_database(config_data.get('database')),
            explain=ExplainSettings(
                threshold_ms=float(explain_data.get('threshold_ms', defaults.threshold_ms)),
                timeout_ms=explain_data.get('timeout_ms', defaults.timeout_ms),
                max_workers=int(explain_data.get('max_workers', defaults.max_workers))
            ),
            index_advisor=IndexAdvisorThresholds(
                frequent_occurrences=int(
                    advisor_data.get('frequent_occurrences', advisor_defaults.frequent_occurrences)
                ),
                expensive_avg_cost=float(
                    advisor_data.get('expensive_avg_cost', advisor_defaults.expensive_avg_cost)
                )
            ),
            output_dir=Path(config_data.get('output_dir', 'reports'))
        )

    @staticmethod
    def _load_database(data: Optional[Dict[str, Any]]) -> Optional[DatabaseConfig]:
        """Load database config; EXPLAIN is skipped when the section is absent."""
        if not data:
            return None
        for field_name in ('dbname', 'user'):
            if field_name not in data:
                raise ValueError(f"Missing required field in config: database.{field_name}")
        return DatabaseConfig(
            host=data.get('host', 'localhost'),
            port=int(data.get('port', 5432)),
            dbname=data['dbname'],
            user=data['user'],
            password=data.get('password', ''),
            connect_timeout=int(data.get('connect_timeout', 5))
        )
