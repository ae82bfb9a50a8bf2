"""Data models for sheet migration."""

from .enums import RecordState, RuleType  # noqa: F401
from .plan import (  # noqa: F401
    MigrationPlan,
    MigrationPlanItem,
    RetainedRecord,
    RunReport,
    VerificationResult,
)
from .rules import ClassifierRule  # noqa: F401
from .records import (  # noqa: F401
    CollectionMeta,
    DestinationState,
    MetadataSnapshot,
    Record,
    row_checksum,
)
from .requests import (  # noqa: F401
    AddCollection,
    AppendDimension,
    CopyBlock,
    DeleteRows,
    SetCellValue,
    StructuralRequest,
    ValueRange,
)

__all__ = [
    # Enums
    "RecordState",
    "RuleType",
    # Rules
    "ClassifierRule",
    # Record models
    "CollectionMeta",
    "DestinationState",
    "MetadataSnapshot",
    "Record",
    "row_checksum",
    # Plan models
    "MigrationPlan",
    "MigrationPlanItem",
    "RetainedRecord",
    "RunReport",
    "VerificationResult",
    # Store requests
    "AddCollection",
    "AppendDimension",
    "CopyBlock",
    "DeleteRows",
    "SetCellValue",
    "StructuralRequest",
    "ValueRange",
]
