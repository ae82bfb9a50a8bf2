"""Rule-based record classification.

``classify`` is a pure function: the same cells and rule table always give the
same destination, regardless of which collection the row was read from.
"""

from collections.abc import Sequence

from ...models.records import Record
from ...models.rules import ClassifierRule
from ...utils import cell_at, is_truthy


def _joined(cells: Sequence[str], columns: Sequence[int]) -> str:
    return " ".join(cell_at(cells, column) for column in columns).lower()


def _excluded(cells: Sequence[str], rule: ClassifierRule) -> bool:
    if not rule.exclude:
        return False
    text = _joined(cells, rule.exclusion_columns)
    return any(phrase in text for phrase in rule.exclude)


def rule_matches(cells: Sequence[str], rule: ClassifierRule) -> bool:
    """Evaluate one rule; exclusion phrases veto an otherwise positive match."""
    if _excluded(cells, rule):
        return False
    if rule.type == "flag":
        return any(is_truthy(cell_at(cells, column)) for column in rule.columns)
    text = _joined(cells, rule.columns)
    return any(pattern in text for pattern in rule.patterns)


def classify(cells: Sequence[str], rules: Sequence[ClassifierRule]) -> str | None:
    """Return the destination of the first matching rule, or None."""
    for rule in rules:
        if rule_matches(cells, rule):
            return rule.destination
    return None


class Classifier:
    """Holds the ordered rule table for a run."""

    def __init__(self, rules: Sequence[ClassifierRule]):
        self.rules = tuple(rules)

    def classify(self, record: Record) -> str | None:
        return classify(record.cells, self.rules)

    @property
    def destinations(self) -> list[str]:
        """Rule destinations in priority order, without repeats."""
        return list(dict.fromkeys(rule.destination for rule in self.rules))
