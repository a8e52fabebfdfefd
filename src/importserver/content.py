"""
=============================================================================
IMPORT PAYLOADS
=============================================================================

The two canned payloads this server hands to an importer, and the small
immutable wrapper used to serve them.

=============================================================================
CONTENT MODES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  MODE   │ PAYLOAD                                                   │
    ├─────────┼───────────────────────────────────────────────────────────┤
    │  CSV    │ One table, header row + three data rows                   │
    │  SQL    │ Script creating t1, t2 (on two import branches) and t3    │
    └─────────┴───────────────────────────────────────────────────────────┘

The mode is picked once at startup (``--sql``) and never changes while
the process runs.

=============================================================================
CHECKSUM
=============================================================================

Importers verify the body against the ``X-Import-Md5`` header:

    payload bytes ──► MD5 (16 bytes) ──► base64 ──► "hM1Ny3..."

The digest is recomputed for every request. It is cheap for payloads
this size and keeps ContentHolder free of cached state.

=============================================================================
"""

import base64
import hashlib
from dataclasses import dataclass
from enum import Enum


class ChecksumError(Exception):
    """Raised when the payload digest cannot be computed."""


class ContentMode(Enum):
    """Which payload and header set the server answers with."""
    CSV = "csv"
    SQL = "sql"


# =============================================================================
# FIXTURES
# =============================================================================
# Importer tests compare these byte-for-byte. Keep the trailing spaces on
# the col3 lines of t2 and t3.

CSV_TEXT = """pk,col1,col2,col3
1,a,b,c
2,d,e,f
3,g,h,i
"""

SQL_TEXT = (
    "CALL DOLT_CHECKOUT('-b', 'import-branch-1');\n"
    "CREATE TABLE t1 (\n"
    "pk int primary key,\n"
    "col1 varchar(55),\n"
    "col2 varchar(55),\n"
    "col3 varchar(55)\n"
    ");\n"
    "INSERT INTO t1 (pk, col1, col2, col3) VALUES (1, 'a', 'b', 'c');\n"
    "INSERT INTO t1 (pk, col1, col2, col3) VALUES (2, 'd', 'e', 'f');\n"
    "INSERT INTO t1 (pk, col1, col2, col3) VALUES (3, 'g', 'h', 'i');\n"
    "CALL DOLT_COMMIT('-A', '-m', 'Create table t1');\n"
    "CALL DOLT_CHECKOUT('main');\n"
    "CALL DOLT_CHECKOUT('-b', 'import-branch-2');\n"
    "CREATE TABLE t2 (\n"
    "pk int primary key,\n"
    "col1 varchar(55),\n"
    "col2 varchar(55),\n"
    "col3 varchar(55)    \n"
    ");\n"
    "INSERT INTO t2 (pk, col1, col2, col3) VALUES (1, 'j', 'k', 'l');\n"
    "INSERT INTO t2 (pk, col1, col2, col3) VALUES (2, 'm', 'n', 'o');\n"
    "INSERT INTO t2 (pk, col1, col2, col3) VALUES (3, 'p', 'q', 'r');\n"
    "CALL DOLT_COMMIT('-A', '-m', 'Create table t2');\n"
    "CALL DOLT_CHECKOUT('main');\n"
    "CREATE TABLE t3 (\n"
    "pk int primary key,\n"
    "col1 varchar(55),\n"
    "col2 varchar(55),\n"
    "col3 varchar(55)    \n"
    ");\n"
    "INSERT INTO t3 (pk, col1, col2, col3) VALUES (1, 's', 't', 'u');\n"
    "INSERT INTO t3 (pk, col1, col2, col3) VALUES (2, 'v', 'w', 'x');\n"
    "INSERT INTO t3 (pk, col1, col2, col3) VALUES (3, 'y', 'z', 'aa');\n"
)


@dataclass(frozen=True)
class ContentHolder:
    """
    Immutable in-memory payload.

    A fresh holder is built for every request and dropped once the
    response has been written. Nothing mutates ``contents`` after
    construction, so holders need no locking.

    Attributes:
        contents: The payload bytes.
    """

    contents: bytes

    def length(self) -> int:
        """Number of payload bytes."""
        return len(self.contents)

    def read_all(self) -> bytes:
        """Return the whole payload."""
        return self.contents

    def checksum(self) -> str:
        """
        Base64-encoded MD5 digest of the payload.

        MD5 is used as a transfer checksum here, not for security, so the
        digest is requested with ``usedforsecurity=False`` to keep working
        on FIPS-restricted interpreters.

        Returns:
            Padded standard-alphabet base64 text of the 16-byte digest.

        Raises:
            ChecksumError: If the hash provider cannot produce an MD5 digest.
        """
        try:
            digest = hashlib.md5(self.contents, usedforsecurity=False).digest()
        except ValueError as e:
            raise ChecksumError(f"md5 unavailable: {e}") from e
        return base64.b64encode(digest).decode("ascii")


def csv_contents() -> ContentHolder:
    """Holder for the CSV fixture."""
    return ContentHolder(CSV_TEXT.encode("utf-8"))


def sql_contents() -> ContentHolder:
    """Holder for the SQL fixture."""
    return ContentHolder(SQL_TEXT.encode("utf-8"))


def new_contents(mode: ContentMode) -> ContentHolder:
    """Build a fresh holder for ``mode``."""
    if mode is ContentMode.SQL:
        return sql_contents()
    return csv_contents()
