"""Test configuration and fixtures for pg-sqltrace."""

import pytest
from sqltrace.core.database import DatabaseConfig
from sqltrace.core.models import Statement
from sqltrace.core.normalizer import compute_query_hash, normalize_query
from sqltrace.core.plan import PlanParser

@pytest.fixture
def sample_db_config():
    return DatabaseConfig(
        host='localhost',
        port=5432,
        dbname='test_db',
        user='test_user',
        password='test_pass'
    )

@pytest.fixture
def sample_plan():
    return [{
        'Plan': {
            'Node Type': 'Hash Join',
            'Startup Cost': 10.0,
            'Total Cost': 250.5,
            'Plan Rows': 50,
            'Actual Rows': 48,
            'Plans': [
                {
                    'Node Type': 'Seq Scan',
                    'Relation Name': 'users',
                    'Filter': "((status)::text = 'active'::text)",
                    'Startup Cost': 0.0,
                    'Total Cost': 180.0,
                    'Plan Rows': 1000,
                    'Actual Rows': 950,
                },
                {
                    'Node Type': 'Hash',
                    'Startup Cost': 5.0,
                    'Total Cost': 5.0,
                    'Plans': [
                        {
                            'Node Type': 'Index Scan',
                            'Relation Name': 'orders',
                            'Index Name': 'orders_pkey',
                            'Index Cond': '(id = 42)',
                            'Startup Cost': 0.29,
                            'Total Cost': 4.5,
                            'Plan Rows': 1,
                        }
                    ]
                }
            ]
        },
        'Planning Time': 0.5,
        'Execution Time': 2.0
    }]

@pytest.fixture
def make_statement():
    def factory(query, duration_ms=0.0, table='', plan=None, **kwargs):
        normalized = normalize_query(query)
        statement = Statement(
            raw_query=query,
            normalized_query=normalized,
            query_hash=compute_query_hash(normalized),
            duration_ms=duration_ms,
            table=table,
            **kwargs
        )
        if plan is not None:
            if isinstance(plan, dict) and 'Plan' not in plan:
                plan = {'Plan': plan}
            statement.attach_plan(PlanParser.parse_explain_output(plan))
        return statement
    return factory
