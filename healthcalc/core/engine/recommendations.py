"""
Recommendation Mapping Module

Looks up the narrative and recommendation list for a category label.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Tuple

from healthcalc.core.engine.classifier import ThresholdTable
from healthcalc.core.engine.errors import ConfigurationError, UnknownCategoryError


@dataclass(frozen=True)
class RecommendationEntry:
    """Narrative text plus ordered recommendations for one category."""
    narrative: str
    recommendations: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, object]:
        return {"narrative": self.narrative, "recommendations": list(self.recommendations)}


class RecommendationMapper:
    """Category label -> RecommendationEntry."""

    def __init__(self, name: str, entries: Mapping[str, RecommendationEntry]):
        self.name = name
        self._entries: Dict[str, RecommendationEntry] = dict(entries)

    @classmethod
    def from_table(cls, table: ThresholdTable) -> "RecommendationMapper":
        """Build from the same bucket list the classifier uses."""
        return cls(table.name, {
            bucket.category.label: RecommendationEntry(
                narrative=bucket.category.description,
                recommendations=tuple(bucket.recommendations),
            )
            for bucket in table.buckets
        })

    @property
    def labels(self) -> List[str]:
        return list(self._entries.keys())

    def recommendations_for(self, label: str) -> RecommendationEntry:
        try:
            return self._entries[label]
        except KeyError:
            raise UnknownCategoryError(label, self.name) from None

    def ensure_covers(self, labels: Iterable[str]) -> None:
        """Raise ConfigurationError unless every label has an entry."""
        missing = [label for label in labels if label not in self._entries]
        if missing:
            raise ConfigurationError(
                f"Recommendation mapper '{self.name}' has no entry for: {', '.join(missing)}"
            )
