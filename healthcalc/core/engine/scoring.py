"""
Weighted Risk Scoring Module

Sums fixed signed integer weights of the risk factors present for a subject
and classifies the floored total into a risk tier.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Sequence

from healthcalc.core.engine.classifier import Category, ThresholdTable
from healthcalc.core.engine.errors import ConfigurationError
from healthcalc.utils import get_logger

logger = get_logger(__name__)

Predicate = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class RiskFactorPredicate:
    """A named yes/no test on the subject with a fixed weight."""
    name: str
    weight: int
    evaluate: Predicate
    description: str = ""


@dataclass
class RiskFactor:
    """Evaluated factor for one subject."""
    name: str
    present: bool
    impact_weight: int
    description: str = ""

    @property
    def protective(self) -> bool:
        return self.impact_weight < 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "present": self.present,
            "impact_weight": self.impact_weight,
            "description": self.description,
        }


@dataclass
class RiskAssessment:
    """Score, tier and every evaluated factor in declaration order."""
    score: int
    tier: Category
    factors: List[RiskFactor] = field(default_factory=list)

    @property
    def present_factors(self) -> List[RiskFactor]:
        return [f for f in self.factors if f.present]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "tier": self.tier.code,
            "label": self.tier.label,
            "severity": self.tier.severity.value,
            "factors": [f.to_dict() for f in self.factors],
        }


class RiskModel:
    """
    Additive point model.

    Every predicate is evaluated independently; the score is the sum of the
    weights of those that hold, floored at zero.
    """

    def __init__(
        self,
        name: str,
        predicates: Sequence[RiskFactorPredicate],
        tiers: ThresholdTable,
        required_fields: Sequence[str] = (),
    ):
        names = [p.name for p in predicates]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Risk model '{name}' repeats a factor name")
        for predicate in predicates:
            if not isinstance(predicate.weight, int) or isinstance(predicate.weight, bool):
                raise ConfigurationError(
                    f"Risk factor '{predicate.name}' weight must be an integer"
                )
        self.name = name
        self.predicates = tuple(predicates)
        self.tiers = tiers
        self.required_fields = tuple(required_fields)

    def missing_fields(self, subject: Mapping[str, Any]) -> List[str]:
        return [f for f in self.required_fields if subject.get(f) is None]

    def is_applicable(self, subject: Mapping[str, Any]) -> bool:
        return not self.missing_fields(subject)

    def score(self, subject: Mapping[str, Any]) -> RiskAssessment:
        factors = []
        total = 0
        for predicate in self.predicates:
            present = bool(predicate.evaluate(subject))
            if present:
                total += predicate.weight
            factors.append(RiskFactor(
                name=predicate.name,
                present=present,
                impact_weight=predicate.weight,
                description=predicate.description,
            ))
        total = max(0, total)
        tier = self.tiers.classify(total)
        logger.debug(f"{self.name}: score={total} tier={tier.code}")
        return RiskAssessment(score=total, tier=tier, factors=factors)


# Predicate builders. A missing (None) value never satisfies a predicate.

def at_least(name: str, threshold: float) -> Predicate:
    return lambda s: s.get(name) is not None and s[name] >= threshold


def above(name: str, threshold: float) -> Predicate:
    return lambda s: s.get(name) is not None and s[name] > threshold


def below(name: str, threshold: float) -> Predicate:
    return lambda s: s.get(name) is not None and s[name] < threshold


def between(name: str, low: float, high: float) -> Predicate:
    """low <= value < high"""
    return lambda s: s.get(name) is not None and low <= s[name] < high


def one_of(name: str, *choices: Any) -> Predicate:
    return lambda s: s.get(name) in choices


def is_true(name: str) -> Predicate:
    return lambda s: s.get(name) is True


def contains(name: str, item: Any) -> Predicate:
    return lambda s: item in (s.get(name) or ())


def all_of(*predicates: Predicate) -> Predicate:
    return lambda s: all(p(s) for p in predicates)


def any_of(*predicates: Predicate) -> Predicate:
    return lambda s: any(p(s) for p in predicates)
