"""
pg-sqltrace: SQL query analysis for traced API executions
"""
__version__ = '0.1.0'
