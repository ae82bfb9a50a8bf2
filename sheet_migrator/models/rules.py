"""Classifier rule model."""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import RuleType


class ClassifierRule(BaseModel):
    """One ordered predicate mapping row fields to a destination collection.

    ``columns`` and ``exclude_columns`` are 1-based column indices. Exclusion
    phrases default to being searched in the same columns as the patterns.
    """

    model_config = ConfigDict(frozen=True)

    destination: str = Field(min_length=1)
    type: RuleType = "contains"
    columns: tuple[int, ...] = Field(min_length=1)
    patterns: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    exclude_columns: tuple[int, ...] | None = None

    @field_validator("columns", "exclude_columns")
    @classmethod
    def _positive_columns(cls, value: tuple[int, ...] | None) -> tuple[int, ...] | None:
        if value is not None and any(column < 1 for column in value):
            raise ValueError("column indices are 1-based and must be >= 1")
        return value

    @field_validator("patterns", "exclude")
    @classmethod
    def _normalize_phrases(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        phrases = tuple(phrase.strip().lower() for phrase in value)
        if any(not phrase for phrase in phrases):
            raise ValueError("phrases must not be blank")
        return phrases

    @model_validator(mode="after")
    def _patterns_for_contains(self) -> "ClassifierRule":
        if self.type == "contains" and not self.patterns:
            raise ValueError(f"contains rule for '{self.destination}' needs at least one pattern")
        return self

    @property
    def exclusion_columns(self) -> tuple[int, ...]:
        return self.exclude_columns if self.exclude_columns is not None else self.columns
