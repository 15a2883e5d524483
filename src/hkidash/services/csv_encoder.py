"""
CSV text for exports.

A field is quoted only when it contains a comma, a quote or a newline, and
newlines inside a field become one space each. Rows are joined by a bare
``\\n`` with no trailing newline.
"""

import re
from collections.abc import Iterable, Sequence
from datetime import date, datetime
from enum import Enum
from typing import Any

_NEEDS_QUOTING = re.compile(r'[,"\r\n]')
_NEWLINE = re.compile(r"\r\n|\r|\n")


def format_value(value: Any) -> str:
    """Stringify without any locale-dependent formatting."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def escape_field(value: Any) -> str:
    text = format_value(value)
    if not _NEEDS_QUOTING.search(text):
        return text
    text = _NEWLINE.sub(" ", text)
    return '"' + text.replace('"', '""') + '"'


def encode_csv(labels: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Header line of labels followed by one line per row."""
    lines = [",".join(escape_field(label) for label in labels)]
    lines.extend(",".join(escape_field(value) for value in row) for row in rows)
    return "\n".join(lines)
