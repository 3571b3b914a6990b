#!/usr/bin/env python3
"""
pg-sqltrace

A command-line tool for SQL analysis of traced API executions.
Compares the SQL statements two executions issued and recommends indexes
from their execution plans.
"""

import sys
from datetime import datetime
from pathlib import Path

from .core.analyzer import TraceAnalyzer
from .core.database import DatabaseManager
from .core.extractor import load_log_records
from .utils.config import ConfigLoader
from .utils.logger import setup_logger
from .utils.report import ReportGenerator

def main(argv=None):
    """Main entry point"""
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) < 1:
        print("Usage: python -m sqltrace.cli <config_file>")
        return 1

    try:
        config = ConfigLoader.load_config(Path(argv[0]))
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    logger = setup_logger(config.output_dir)

    db_manager = DatabaseManager(config.database) if config.database else None
    analyzer = TraceAnalyzer(db_manager, config.explain, config.index_advisor)

    logger.info("Comparing %s and %s", config.set1_logs, config.set2_logs)
    comparison_data = analyzer.compare_executions(
        load_log_records(config.set1_logs),
        load_log_records(config.set2_logs)
    )

    # Generate reports
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    reports = {
        config.output_dir / f'report_{timestamp}.txt': ReportGenerator.generate_text_report(comparison_data),
        config.output_dir / f'report_{timestamp}.html': ReportGenerator.generate_html_report(comparison_data),
        config.output_dir / f'report_{timestamp}.json': ReportGenerator.generate_json_report(comparison_data),
    }
    for path, content in reports.items():
        path.write_text(content, encoding='utf-8')

    logger.info("\nReports generated:")
    for path in reports:
        logger.info("- %s", path)
    return 0

if __name__ == '__main__':
    sys.exit(main())
