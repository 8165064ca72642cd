"""
Threshold Classification Module

Maps a scalar value to a category using an ordered list of buckets with
exclusive upper bounds: a value equal to a cutoff belongs to the bucket above.
"""
import math
from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from healthcalc.core.engine.errors import ConfigurationError

INF = math.inf


class Severity(str, Enum):
    """Domain severity of a category. Presentation colors are assigned by the API layer."""
    OK = "ok"
    CAUTION = "caution"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    @classmethod
    def worst(cls, severities) -> "Severity":
        """Highest severity in an iterable, OK when empty."""
        result = cls.OK
        for severity in severities:
            if severity.rank > result.rank:
                result = severity
        return result


_SEVERITY_ORDER = [Severity.OK, Severity.CAUTION, Severity.WARNING, Severity.CRITICAL]


def _slug(label: str) -> str:
    chars = [c.lower() if c.isalnum() else "_" for c in label]
    return "_".join(part for part in "".join(chars).split("_") if part)


@dataclass(frozen=True)
class Category:
    """One classification outcome."""
    label: str
    description: str = ""
    severity: Severity = Severity.OK
    range_text: str = ""
    code: str = ""

    def __post_init__(self):
        if not self.code:
            object.__setattr__(self, "code", _slug(self.label))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "label": self.label,
            "description": self.description,
            "severity": self.severity.value,
            "range": self.range_text,
        }


@dataclass(frozen=True)
class Bucket:
    """Category applying to values below ``upper_bound``."""
    upper_bound: float
    category: Category
    recommendations: Tuple[str, ...] = field(default_factory=tuple)


class ThresholdTable:
    """
    Ordered bucket list for one measured or derived quantity.

    Bounds must be strictly increasing. The last bucket catches everything
    above the previous cutoff whatever its declared bound.
    """

    def __init__(self, name: str, buckets: Sequence[Bucket]):
        if not buckets:
            raise ConfigurationError(f"Threshold table '{name}' has no buckets")
        bounds = [b.upper_bound for b in buckets[:-1]]
        for lower, upper in zip(bounds, bounds[1:]):
            if not lower < upper:
                raise ConfigurationError(
                    f"Threshold table '{name}' bounds not strictly increasing: {lower} >= {upper}"
                )
        if any(math.isnan(b) for b in bounds):
            raise ConfigurationError(f"Threshold table '{name}' has a NaN bound")
        labels = [b.category.label for b in buckets]
        if len(set(labels)) != len(labels):
            raise ConfigurationError(f"Threshold table '{name}' repeats a category label")
        self.name = name
        self.buckets: Tuple[Bucket, ...] = tuple(buckets)
        self._bounds = bounds

    @property
    def cutoffs(self) -> List[float]:
        """Finite boundaries between consecutive buckets."""
        return list(self._bounds)

    @property
    def categories(self) -> List[Category]:
        return [b.category for b in self.buckets]

    @property
    def labels(self) -> List[str]:
        return [b.category.label for b in self.buckets]

    def index_of(self, value: float) -> int:
        """Rank of the bucket a value falls in."""
        if value is None or math.isnan(value):
            raise ValueError(f"Cannot classify {value!r} in '{self.name}'")
        return bisect_right(self._bounds, value)

    def bucket_for(self, value: float) -> Bucket:
        return self.buckets[self.index_of(value)]

    def classify(self, value: float) -> Category:
        return self.bucket_for(value).category

    def category_by_code(self, code: str) -> Optional[Category]:
        for category in self.categories:
            if category.code == code:
                return category
        return None

    def __repr__(self) -> str:
        return f"ThresholdTable({self.name!r}, labels={self.labels})"


def classify(value: float, table: ThresholdTable) -> Category:
    """Category for value in table."""
    return table.classify(value)


def build_table(name: str, rows: Sequence[tuple]) -> ThresholdTable:
    """
    Build a table from compact rows.

    Each row is ``(upper_bound, label, severity, description, range_text,
    recommendations)``; trailing elements may be omitted.
    """
    buckets = []
    for row in rows:
        upper, label = row[0], row[1]
        severity = row[2] if len(row) > 2 else Severity.OK
        description = row[3] if len(row) > 3 else ""
        range_text = row[4] if len(row) > 4 else ""
        recommendations = tuple(row[5]) if len(row) > 5 else ()
        buckets.append(Bucket(
            upper_bound=upper,
            category=Category(label, description, severity, range_text),
            recommendations=recommendations,
        ))
    return ThresholdTable(name, buckets)
