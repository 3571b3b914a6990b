"""
Query execution plan parsing and comparison.
Handles parsing of EXPLAIN (FORMAT JSON) output into PlanNode trees.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional


class PlanFormatError(ValueError):
    """Raised when an EXPLAIN document does not have the expected shape."""


@dataclass(frozen=True)
class PlanNode:
    node_type: str
    relation_name: Optional[str] = None
    index_name: Optional[str] = None
    filter_condition: Optional[str] = None
    startup_cost: float = 0.0
    total_cost: float = 0.0
    plan_rows: Optional[int] = None
    actual_rows: Optional[int] = None
    children: List['PlanNode'] = field(default_factory=list)

    def walk(self) -> Iterator['PlanNode']:
        """Depth-first, pre-order traversal of this node and its children."""
        yield self
        for child in self.children:
            yield from child.walk()

    @classmethod
    def from_dict(cls, node: Dict[str, Any]) -> 'PlanNode':
        return PlanParser.parse_node(node)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the engine's own JSON key names."""
        data: Dict[str, Any] = {
            'Node Type': self.node_type,
            'Startup Cost': self.startup_cost,
            'Total Cost': self.total_cost,
        }
        if self.relation_name is not None:
            data['Relation Name'] = self.relation_name
        if self.index_name is not None:
            data['Index Name'] = self.index_name
        if self.filter_condition is not None:
            data['Filter'] = self.filter_condition
        if self.plan_rows is not None:
            data['Plan Rows'] = self.plan_rows
        if self.actual_rows is not None:
            data['Actual Rows'] = self.actual_rows
        if self.children:
            data['Plans'] = [child.to_dict() for child in self.children]
        return data


class PlanParser:
    @staticmethod
    def parse_explain_output(document: Any) -> PlanNode:
        """Parse EXPLAIN JSON output shaped as [{"Plan": ...}] or {"Plan": ...}."""
        if isinstance(document, (bytes, bytearray)):
            document = document.decode('utf-8')
        if isinstance(document, str):
            try:
                document = json.loads(document)
            except ValueError as e:
                raise PlanFormatError(f"Invalid EXPLAIN JSON: {e}") from e

        if isinstance(document, list):
            if not document:
                raise PlanFormatError("EXPLAIN output is an empty array")
            document = document[0]

        if not isinstance(document, dict) or not isinstance(document.get('Plan'), dict):
            raise PlanFormatError("EXPLAIN output has no 'Plan' object")

        return PlanParser.parse_node(document['Plan'])

    @staticmethod
    def parse_node(node: Dict[str, Any]) -> PlanNode:
        """Extract a plan node and its children."""
        if not isinstance(node, dict):
            raise PlanFormatError(f"Plan node must be an object, got {type(node).__name__}")

        children = []
        for child in node.get('Plans', []) or []:
            children.append(PlanParser.parse_node(child))

        # Index scans carry their predicate as Index Cond instead of Filter
        filter_condition = node.get('Filter')
        if filter_condition is None:
            filter_condition = node.get('Index Cond')

        return PlanNode(
            node_type=node.get('Node Type', ''),
            relation_name=node.get('Relation Name'),
            index_name=node.get('Index Name'),
            filter_condition=filter_condition,
            startup_cost=PlanParser._to_float(node.get('Startup Cost')),
            total_cost=PlanParser._to_float(node.get('Total Cost')),
            plan_rows=PlanParser._to_int(node.get('Plan Rows')),
            actual_rows=PlanParser._to_int(node.get('Actual Rows')),
            children=children
        )

    @staticmethod
    def _to_float(value: Any) -> float:
        if value is None:
            return 0.0
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise PlanFormatError(f"Expected a number, got {value!r}") from e

    @staticmethod
    def _to_int(value: Any) -> Optional[int]:
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise PlanFormatError(f"Expected an integer, got {value!r}") from e


def parse_explain_output(document: Any) -> PlanNode:
    return PlanParser.parse_explain_output(document)


def plan_signature(node: PlanNode) -> tuple:
    """Structural identity of a plan: operators, relations and indexes, not costs."""
    return (
        node.node_type,
        node.relation_name or '',
        node.index_name or '',
        tuple(plan_signature(child) for child in node.children),
    )


def plans_differ(plan1: PlanNode, plan2: PlanNode) -> bool:
    """Decide whether two plans for the same query shape count as a plan change."""
    return plan_signature(plan1) != plan_signature(plan2)


def _pct_change(before: float, after: float) -> float:
    if before == 0:
        return 0.0
    return (after - before) / before * 100


def describe_plan_differences(plan1: PlanNode, plan2: PlanNode) -> List[str]:
    """List human-readable differences between the root nodes of two plans."""
    diffs = []

    if plan1.node_type != plan2.node_type:
        diffs.append(f"Node type changed: {plan1.node_type} → {plan2.node_type}")

    if plan1.index_name != plan2.index_name:
        if not plan1.index_name:
            diffs.append(f"Now using index: {plan2.index_name}")
        elif not plan2.index_name:
            diffs.append(f"No longer using index: {plan1.index_name}")
        else:
            diffs.append(f"Index changed: {plan1.index_name} → {plan2.index_name}")

    cost_diff = _pct_change(plan1.total_cost, plan2.total_cost)
    if abs(cost_diff) > 20:
        diffs.append(f"Cost changed by {cost_diff:.1f}% ({plan1.total_cost:.2f} → {plan2.total_cost:.2f})")

    if plan1.plan_rows is not None and plan2.plan_rows is not None and plan1.plan_rows != plan2.plan_rows:
        row_diff = _pct_change(plan1.plan_rows, plan2.plan_rows)
        if abs(row_diff) > 20:
            diffs.append(
                f"Estimated rows changed by {row_diff:.1f}% ({plan1.plan_rows} → {plan2.plan_rows})"
            )

    seq1 = 'Seq Scan' in plan1.node_type
    seq2 = 'Seq Scan' in plan2.node_type
    if seq1 and not seq2:
        diffs.append("Changed from sequential scan to indexed access")
    elif seq2 and not seq1:
        diffs.append("Changed from indexed access to sequential scan")

    return diffs


def format_plan_text(node: PlanNode, level: int = 0) -> str:
    """Format a plan tree as indented text."""
    indent = '  ' * level
    prefix = '-> ' if level > 0 else ''
    line = f"{indent}{prefix}{node.node_type}"
    if node.relation_name:
        line += f" on {node.relation_name}"
    if node.index_name:
        line += f" using {node.index_name}"
    line += f" (cost={node.startup_cost:.2f}..{node.total_cost:.2f}"
    if node.plan_rows is not None:
        line += f" rows={node.plan_rows}"
    if node.actual_rows is not None:
        line += f" actual_rows={node.actual_rows}"
    line += ")"

    lines = [line]
    if node.filter_condition:
        lines.append(f"{indent}   Filter: {node.filter_condition}")
    for child in node.children:
        lines.append(format_plan_text(child, level + 1))
    return '\n'.join(lines)
