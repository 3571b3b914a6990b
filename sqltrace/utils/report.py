"""
Report generation utilities for SQL trace comparison.
"""
from typing import Dict, Any, List
from datetime import datetime
from html import escape
import json

from ..core.analyzer import ExecutionAnalysis
from ..core.models import ComparisonResult, PerformanceDifference, Statement
from ..core.plan import format_plan_text

TOP_N = 10

class ReportGenerator:
    @staticmethod
    def generate_html_report(comparison_data: Dict[str, Any]) -> str:
        """Generate HTML report from comparison results."""
        comparison: ComparisonResult = comparison_data['comparison']
        set1: ExecutionAnalysis = comparison_data['set1']
        set2: ExecutionAnalysis = comparison_data['set2']

        html = [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            "<title>SQL Trace Comparison Report</title>",
            "<style>",
            "body { font-family: monospace; line-height: 1.4; margin: 20px; }",
            "h1, h2, h3, h4 { color: #333; margin: 1em 0 0.5em 0; }",
            "h1 { border-bottom: 2px solid #333; padding-bottom: 0.2em; }",
            "h2 { border-bottom: 1px solid #666; }",
            "table { border-collapse: collapse; width: 100%; margin: 1em 0; }",
            "th, td { text-align: left; padding: 0.3em 1em; font-family: monospace; vertical-align: top; }",
            "th { border-bottom: 1px solid #666; }",
            ".metric-table td:first-child { width: 200px; }",
            ".metric-table td:nth-child(2), .metric-table td:nth-child(3) { text-align: right; width: 100px; }",
            ".improvement { color: #28a745; }",
            ".warning { color: #dc3545; }",
            "ul { list-style-type: none; padding-left: 0; margin: 0.5em 0; }",
            "li { margin: 0.2em 0; }",
            "pre { background-color: #f8f9fa; padding: 1em; border-radius: 4px; overflow-x: auto; }",
            "code { font-family: monospace; }",
            "</style>",
            "</head>",
            "<body>",
            "<h1>SQL Trace Comparison Report</h1>",
            f"<p>Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}</p>",
            "<h2>Summary</h2>",
            ReportGenerator._format_summary_html(comparison),
            "<h2>Performance Differences</h2>",
            ReportGenerator._format_differences_html(comparison.performance_differences[:TOP_N]),
            "<h2>Queries Only In Set 1</h2>",
            ReportGenerator._format_statement_list_html(comparison.only_in_set1),
            "<h2>Queries Only In Set 2</h2>",
            ReportGenerator._format_statement_list_html(comparison.only_in_set2),
            "<h2>Set 1 Analysis</h2>",
            ReportGenerator._format_execution_html(set1),
            "<h2>Set 2 Analysis</h2>",
            ReportGenerator._format_execution_html(set2),
            "</body>",
            "</html>"
        ]

        return '\n'.join(html)

    @staticmethod
    def generate_text_report(comparison_data: Dict[str, Any]) -> str:
        """Generate text report from comparison results."""
        comparison: ComparisonResult = comparison_data['comparison']
        summary = comparison.summary

        lines = [
            "SQL Trace Comparison Report",
            "========================================",
            f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            "",
            "Summary",
            "--------------------",
            f"Total Queries:       {summary.total_queries_set1} vs {summary.total_queries_set2}",
            f"Unique Queries:      {summary.unique_queries_set1} vs {summary.unique_queries_set2}",
            f"Common Queries:      {summary.common_queries}",
            f"Plan Changes:        {summary.queries_with_plan_change}",
            f"Avg Duration:        {summary.avg_duration_set1:.2f} ms vs {summary.avg_duration_set2:.2f} ms",
            f"Change:              {ReportGenerator._format_change_text(summary.avg_duration_set1, summary.avg_duration_set2)}",
            "",
            "Performance Differences",
            "--------------------",
        ]

        if comparison.performance_differences:
            for diff in comparison.performance_differences[:TOP_N]:
                lines.extend(ReportGenerator._format_difference_text(diff))
        else:
            lines.append("No common queries.")

        for label, statements in (('Set 1', comparison.only_in_set1), ('Set 2', comparison.only_in_set2)):
            lines.extend(["", f"Queries Only In {label}", "--------------------"])
            if statements:
                lines.extend(f"- [{s.duration_ms:.2f} ms] {s.raw_query}" for s in statements)
            else:
                lines.append("None")

        for label in ('set1', 'set2'):
            lines.extend(["", f"{label.capitalize()} Analysis", "--------------------"])
            lines.extend(ReportGenerator._format_execution_text(comparison_data[label]))

        return "\n".join(lines)

    @staticmethod
    def generate_json_report(comparison_data: Dict[str, Any]) -> str:
        """Generate structured JSON output from comparison results."""
        return json.dumps({
            'generated_at': datetime.now().isoformat(),
            'comparison': comparison_data['comparison'].to_dict(),
            'set1': comparison_data['set1'].to_dict(),
            'set2': comparison_data['set2'].to_dict(),
        }, indent=2)

    @staticmethod
    def _format_difference_text(diff: PerformanceDifference) -> List[str]:
        lines = [
            f"{diff.normalized_query}",
            f"  Count:     {diff.set1_count} vs {diff.set2_count}",
            f"  Avg Time:  {diff.set1_avg_duration:.2f} ms vs {diff.set2_avg_duration:.2f} ms ({diff.duration_diff_pct:+.1f}%)",
        ]
        if diff.graphql_operation:
            lines.append(f"  Operation: {diff.graphql_operation}")
        if diff.has_plan_change:
            lines.append("  Plan changed:")
            lines.extend(f"    - {d}" for d in diff.plan_differences or ["Plan structure differs"])
        lines.append("")
        return lines

    @staticmethod
    def _format_execution_text(execution: ExecutionAnalysis) -> List[str]:
        summary = execution.summary
        index_analysis = execution.index_analysis
        lines = [
            f"Queries: {summary.total_queries} ({summary.unique_queries} unique), "
            f"total {summary.total_duration:.2f} ms, avg {summary.avg_duration:.2f} ms",
            f"Plans: {index_analysis.summary.queries_with_plans} explained, "
            f"{len(execution.batch.failures)} failed",
            "",
            "Slowest Queries:",
        ]
        lines.extend(f"- [{s.duration_ms:.2f} ms] {s.raw_query}" for s in summary.slowest_queries)

        if summary.n_plus_one_issues:
            lines.extend(["", "Possible N+1 Queries:"])
            lines.extend(f"- {g.count}x {g.normalized_query}" for g in summary.n_plus_one_issues)

        if index_analysis.sequential_scans:
            lines.extend(["", "Sequential Scans:"])
            for issue in index_analysis.sequential_scans:
                line = f"- {issue.table}: {issue.occurrences} scans, avg cost {issue.avg_cost:.2f}"
                if issue.filter_condition:
                    line += f", filter {issue.filter_condition}"
                lines.append(line)

        if index_analysis.recommendations:
            lines.extend(["", "Index Recommendations:"])
            for rec in index_analysis.recommendations:
                lines.append(f"- [{rec.priority.upper()}] {rec.sql_command}")
                lines.append(f"    {rec.reason}")
                lines.append(f"    Impact: {rec.estimated_impact}")

        slow_with_plan = [s for s in summary.slowest_queries if s.explain_plan is not None]
        if slow_with_plan:
            lines.extend(["", "Plan Of Slowest Explained Query:", format_plan_text(slow_with_plan[0].explain_plan)])
        elif summary.slowest_queries:
            lines.extend(["", "No plan available"])

        return lines

    @staticmethod
    def _format_summary_html(comparison: ComparisonResult) -> str:
        """Format summary table of HTML report."""
        summary = comparison.summary
        rows = [
            ['Total Queries', summary.total_queries_set1, summary.total_queries_set2, ''],
            ['Unique Queries', summary.unique_queries_set1, summary.unique_queries_set2, ''],
            [
                'Avg Duration',
                f"{summary.avg_duration_set1:.2f} ms",
                f"{summary.avg_duration_set2:.2f} ms",
                ReportGenerator._format_change(summary.avg_duration_set1, summary.avg_duration_set2)
            ],
        ]
        html = ['<table class="metric-table">', '<tr><th>Metric</th><th>Set 1</th><th>Set 2</th><th>Change</th></tr>']
        for row in rows:
            html.append('<tr>' + ''.join(f'<td>{cell}</td>' for cell in row) + '</tr>')
        html.append('</table>')
        html.append(f'<p>Common queries: {summary.common_queries}, '
                    f'with plan change: {summary.queries_with_plan_change}</p>')
        return '\n'.join(html)

    @staticmethod
    def _format_differences_html(differences: List[PerformanceDifference]) -> str:
        if not differences:
            return '<p>No common queries.</p>'
        html = [
            '<table>',
            '<tr><th>Query</th><th>Count</th><th>Set 1</th><th>Set 2</th><th>Change</th><th>Plan</th></tr>'
        ]
        for diff in differences:
            plan_cell = '<br>'.join(escape(d) for d in diff.plan_differences) if diff.has_plan_change else ''
            html.append(
                '<tr>'
                f'<td><code>{escape(diff.normalized_query)}</code></td>'
                f'<td>{diff.set1_count} / {diff.set2_count}</td>'
                f'<td>{diff.set1_avg_duration:.2f} ms</td>'
                f'<td>{diff.set2_avg_duration:.2f} ms</td>'
                f'<td>{ReportGenerator._format_change(diff.set1_avg_duration, diff.set2_avg_duration)}</td>'
                f'<td>{plan_cell}</td>'
                '</tr>'
            )
        html.append('</table>')
        return '\n'.join(html)

    @staticmethod
    def _format_statement_list_html(statements: List[Statement]) -> str:
        if not statements:
            return '<p>None</p>'
        items = [
            f'<li>[{s.duration_ms:.2f} ms] <code>{escape(s.raw_query)}</code></li>'
            for s in statements
        ]
        return '\n'.join(['<ul>', *items, '</ul>'])

    @staticmethod
    def _format_execution_html(execution: ExecutionAnalysis) -> str:
        summary = execution.summary
        index_analysis = execution.index_analysis
        html = [
            f'<p>Queries: {summary.total_queries} ({summary.unique_queries} unique), '
            f'avg {summary.avg_duration:.2f} ms. '
            f'Plans: {index_analysis.summary.queries_with_plans}, '
            f'sequential scans: {index_analysis.summary.sequential_scans}, '
            f'index scans: {index_analysis.summary.index_scans}</p>'
        ]

        if summary.n_plus_one_issues:
            html.append('<div class="warning"><h3>⚠️ Possible N+1 Queries</h3><ul>')
            for group in summary.n_plus_one_issues:
                html.append(f'<li>{group.count}x <code>{escape(group.normalized_query)}</code></li>')
            html.append('</ul></div>')

        if index_analysis.recommendations:
            html.append('<h3>Index Recommendations</h3>')
            html.append('<table><tr><th>Priority</th><th>Command</th><th>Reason</th><th>Impact</th></tr>')
            for rec in index_analysis.recommendations:
                html.append(
                    f'<tr><td>{rec.priority}</td><td><code>{escape(rec.sql_command)}</code></td>'
                    f'<td>{escape(rec.reason)}</td><td>{escape(rec.estimated_impact)}</td></tr>'
                )
            html.append('</table>')
        else:
            html.append('<p>No index recommendations.</p>')

        return '\n'.join(html)

    @staticmethod
    def _format_change_text(baseline: float, changed: float) -> str:
        """Format the change between set 1 and set 2 values."""
        if baseline == 0 and changed == 0:
            return "N/A"
        elif baseline == 0:
            return "+∞%"

        change = ((changed - baseline) / baseline) * 100
        if change > 0:
            return f"+{change:.1f}% (slower)"
        elif change < 0:
            return f"{change:.1f}% (faster)"
        else:
            return "No change"

    @staticmethod
    def _format_change(baseline: float, changed: float) -> str:
        """Format the change between set 1 and set 2 values as HTML."""
        if baseline == 0 and changed == 0:
            return "N/A"
        elif baseline == 0:
            return '<span class="warning">+∞%</span>'

        change = ((changed - baseline) / baseline) * 100
        if change > 0:
            return f'<span class="warning">+{change:.1f}%</span>'  # Slower is worse
        elif change < 0:
            return f'<span class="improvement">{change:.1f}%</span>'
        else:
            return "No change"
