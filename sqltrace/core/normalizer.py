"""
Query normalization and identity hashing.
Erases placeholders, literals and numbers so equivalent statements group together.
"""
import hashlib
import re

PLACEHOLDER_RE = re.compile(r'\$[0-9]+')
STRING_LITERAL_RE = re.compile(r"'(?:[^']|'')*'")
NUMBER_RE = re.compile(r'[0-9]+')
WHITESPACE_RE = re.compile(r'\s+', re.ASCII)


def normalize_query(raw: str) -> str:
    """Reduce a SQL statement to its parameter-erased shape."""
    # Order matters: placeholders before digits, strings before digits
    normalized = PLACEHOLDER_RE.sub('$N', raw)
    normalized = STRING_LITERAL_RE.sub("'?'", normalized)
    normalized = NUMBER_RE.sub('N', normalized)
    normalized = WHITESPACE_RE.sub(' ', normalized)
    return normalized.strip(' ')


def compute_query_hash(normalized_query: str) -> str:
    """SHA-256 hex digest of a normalized query."""
    return hashlib.sha256(normalized_query.encode('utf-8')).hexdigest()
