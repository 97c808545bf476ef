"""Small helpers for building text filters and slugs."""

import re
import secrets


def escape_like(value: str) -> str:
    """Escape SQL LIKE wildcard characters in user input."""
    return value.replace('\\', '\\\\').replace('%', r'\%').replace('_', r'\_')


def contains_pattern(value: str) -> str:
    """ILIKE pattern matching ``value`` anywhere in the column."""
    return f"%{escape_like(value)}%"


def prefix_pattern(value: str) -> str:
    return f"{escape_like(value)}%"


def slugify(text: str, max_length: int = 50) -> str:
    """Lowercase ASCII slug: runs of other characters collapse to one hyphen."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:max_length].rstrip("-")


def unique_slug(text: str, max_length: int = 50) -> str:
    """Slug with a random suffix so user-generated titles never collide."""
    base = slugify(text, max_length) or "untitled"
    return f"{base}-{secrets.token_hex(3)}"
