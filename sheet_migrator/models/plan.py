"""Migration plan and run report models."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from ..constants import STAGE_START


class MigrationPlanItem(BaseModel):
    """Immutable intent to move one record.

    ``destination_position`` is None for a delete-only item: the record is
    already present at the destination and only the source row is pending.
    """

    model_config = ConfigDict(frozen=True)

    source_collection: str
    source_position: int = Field(ge=1)
    identity: str = Field(min_length=1)
    checksum_snapshot: str
    destination_collection: str
    destination_position: int | None = Field(default=None, ge=1)

    @property
    def requires_copy(self) -> bool:
        return self.destination_position is not None

    @property
    def source_key(self) -> tuple[str, int]:
        return (self.source_collection, self.source_position)


class MigrationPlan(BaseModel):
    """Planner output: ordered items plus the rows elected for deletion."""

    items: list[MigrationPlanItem] = Field(default_factory=list)
    delete_candidates: set[tuple[str, int]] = Field(default_factory=set)
    classified: int = 0
    no_match: int = 0
    already_present: int = 0
    identities_assigned: int = 0

    @property
    def copy_items(self) -> list[MigrationPlanItem]:
        return [item for item in self.items if item.requires_copy]

    @property
    def candidate_items(self) -> list[MigrationPlanItem]:
        return [item for item in self.items if item.source_key in self.delete_candidates]


class RetainedRecord(BaseModel):
    """A delete candidate held back by an integrity guard."""

    model_config = ConfigDict(frozen=True)

    item: MigrationPlanItem
    reason: str


class VerificationResult(BaseModel):
    """Delete verifier output."""

    admitted: list[MigrationPlanItem] = Field(default_factory=list)
    retained: list[RetainedRecord] = Field(default_factory=list)


class RunReport(BaseModel):
    """Operator-facing summary of one invocation."""

    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    dry_run: bool = False
    classified: int = 0
    no_match: int = 0
    identities_assigned: int = 0
    already_present: int = 0
    planned: int = 0
    copied: int = 0
    verified: int = 0
    deleted: int = 0
    retained: int = 0
    last_completed_stage: str = STAGE_START
    aborted: bool = False
    error: str | None = None

    def summary(self) -> dict[str, object]:
        return self.model_dump(exclude={"started_at"}, exclude_none=True)
