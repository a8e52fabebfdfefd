"""
Import metadata headers.

Each content mode has a fixed, ordered header set telling the importer
what the body is and where it should land. ``X-Import-Primary-Keys`` is a
multi-value header: it is emitted once per key, in key order.

``Content-Length`` and ``X-Import-Md5`` depend on the payload and are
added by the request handler, not here.
"""

from typing import List, Tuple

from .content import ContentMode


HeaderList = List[Tuple[str, str]]


CSV_HEADERS: Tuple[Tuple[str, str], ...] = (
    ("Content-Type", "text/csv"),
    ("X-Import-Filename", "transformed.csv"),
    ("X-Import-Table", "csv_table"),
    ("X-Import-Operation", "overwrite"),
    ("X-Import-Primary-Keys", "pk"),
    ("X-Import-Primary-Keys", "col1"),
)

SQL_HEADERS: Tuple[Tuple[str, str], ...] = (
    ("Content-Type", "application/sql"),
    ("X-Import-Filename", "transformed.sql"),
)


def import_headers(mode: ContentMode) -> HeaderList:
    """
    Return the static header set for ``mode``.

    Args:
        mode: The configured content mode.

    Returns:
        A new list of (name, value) pairs, safe for the caller to extend.
    """
    if mode is ContentMode.SQL:
        return list(SQL_HEADERS)
    return list(CSV_HEADERS)
