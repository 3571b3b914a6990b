"""
Bind-variable handling for captured statements.
Turns db.vars evidence into a uniform map and inlines it into parameterized SQL.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r'\$([0-9]+)')
NUMBER_RE = re.compile(r'-?[0-9]+(?:\.[0-9]+)?')


@dataclass(frozen=True)
class PositionalVariables:
    """Array evidence: values bound to $1, $2, ... in order."""
    values: List[Any]


@dataclass(frozen=True)
class NamedVariables:
    """Object evidence: values keyed by placeholder number or name."""
    values: Dict[str, Any]


@dataclass(frozen=True)
class NormalizedVariables:
    """A map that is already string-to-string."""
    values: Dict[str, str]


VariableEvidence = Union[PositionalVariables, NamedVariables, NormalizedVariables]


def _stringify(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(',', ':'))
    return str(value)


def parse_variables(evidence: Any) -> Optional[VariableEvidence]:
    """Resolve raw evidence (JSON text, list, dict or a variant) into a variant."""
    if isinstance(evidence, (PositionalVariables, NamedVariables, NormalizedVariables)):
        return evidence
    if isinstance(evidence, (bytes, bytearray)):
        evidence = evidence.decode('utf-8', errors='replace')
    if isinstance(evidence, str):
        if not evidence.strip():
            return None
        try:
            evidence = json.loads(evidence)
        except ValueError:
            logger.debug("Ignoring unparseable variables: %.80s", evidence)
            return None
    if isinstance(evidence, list):
        return PositionalVariables(list(evidence))
    if isinstance(evidence, dict):
        if all(isinstance(k, str) and isinstance(v, str) for k, v in evidence.items()):
            return NormalizedVariables(dict(evidence))
        return NamedVariables({str(k): v for k, v in evidence.items()})
    return None


def to_map(evidence: Any) -> Dict[str, str]:
    """Convert variable evidence to a {placeholder number: value} map."""
    variables = parse_variables(evidence)
    if variables is None:
        return {}
    if isinstance(variables, PositionalVariables):
        return {str(i): _stringify(v) for i, v in enumerate(variables.values, start=1)}
    if isinstance(variables, NamedVariables):
        return {k: _stringify(v) for k, v in variables.values.items()}
    return dict(variables.values)


def format_literal(value: str) -> str:
    """Render a captured value as a SQL literal."""
    trimmed = value.strip()
    if trimmed == '' or trimmed.upper() == 'NULL':
        return 'NULL'
    if value.lower() in ('true', 'false'):
        return value
    if NUMBER_RE.fullmatch(value):
        return value
    # Quote strings (including timestamps, UUIDs, etc.)
    return "'{}'".format(value.replace("'", "''"))


def substitute_variables(query: str, variables: Dict[str, str]) -> str:
    """Replace $1, $2, ... with literal values; unknown placeholders are left as-is."""
    def replace(match):
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        return format_literal(variables[key])

    return PLACEHOLDER_RE.sub(replace, query)


def interpolate_query(query: str, evidence: Any) -> str:
    """Inline whatever parameters the evidence provides into the query."""
    variables = to_map(evidence)
    if not variables:
        return query
    return substitute_variables(query, variables)
