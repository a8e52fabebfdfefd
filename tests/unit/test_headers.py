"""
Unit tests for the import metadata header sets.
"""

from importserver.content import ContentMode
from importserver.headers import import_headers


class TestImportHeaders:
    """Tests for import_headers()."""

    def test_csv_headers(self):
        """CSV mode sends table metadata and two primary keys in order."""
        assert import_headers(ContentMode.CSV) == [
            ("Content-Type", "text/csv"),
            ("X-Import-Filename", "transformed.csv"),
            ("X-Import-Table", "csv_table"),
            ("X-Import-Operation", "overwrite"),
            ("X-Import-Primary-Keys", "pk"),
            ("X-Import-Primary-Keys", "col1"),
        ]

    def test_sql_headers(self):
        """SQL mode sends only the type and file name."""
        assert import_headers(ContentMode.SQL) == [
            ("Content-Type", "application/sql"),
            ("X-Import-Filename", "transformed.sql"),
        ]

    def test_returns_a_copy(self):
        """Callers may extend the list without affecting later calls."""
        headers = import_headers(ContentMode.SQL)
        headers.append(("X-Extra", "1"))

        assert ("X-Extra", "1") not in import_headers(ContentMode.SQL)
