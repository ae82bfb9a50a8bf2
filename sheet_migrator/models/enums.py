"""Enum definitions for sheet migration."""

from enum import Enum
from typing import Literal

# Type aliases
RuleType = Literal["contains", "flag"]
Dimension = Literal["ROWS", "COLUMNS"]


class RecordState(Enum):
    """Conceptual per-record lifecycle within one run (not persisted)."""

    UNCLASSIFIED = "unclassified"
    CLASSIFIED = "classified"
    IDENTIFIED = "identified"
    PLANNED_COPY = "planned_copy"
    COPIED = "copied"
    VERIFIED_FOR_DELETE = "verified_for_delete"
    DELETED = "deleted"
    NO_MATCH = "no_match"
    RETAINED = "retained"
