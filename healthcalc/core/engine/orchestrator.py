"""
Assessment Orchestrator

Runs one metric's configuration through the fixed pipeline:
validate -> convert -> derive -> classify -> score -> map -> flag -> assemble.

Per-metric behaviour lives entirely in a MetricConfig; the orchestrator
itself is generic.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from healthcalc.core.engine.base import (
    AssessmentOutcome, AssessmentResult, FlagLevel, Reading, ReadingSource,
    TreatmentPlan, UnavailableValue, WarningFlag,
)
from healthcalc.core.engine.classifier import Severity, ThresholdTable
from healthcalc.core.engine.errors import ConfigurationError, DomainInvalidError
from healthcalc.core.engine.recommendations import RecommendationEntry, RecommendationMapper
from healthcalc.core.engine.scoring import RiskAssessment, RiskModel
from healthcalc.core.engine.units import UnitBinding
from healthcalc.core.validation.schema import InputSchema
from healthcalc.utils import get_logger

logger = get_logger(__name__)


@dataclass
class AssessmentContext:
    """Everything later pipeline steps may look at."""
    metric: str
    values: Dict[str, Any]
    entered_units: Dict[str, str] = field(default_factory=dict)
    readings: Dict[str, Reading] = field(default_factory=dict)
    unavailable: Dict[str, UnavailableValue] = field(default_factory=dict)
    risk: Optional[RiskAssessment] = None
    treatment: Optional[TreatmentPlan] = None

    def get(self, key: str, default: Any = None) -> Any:
        value = self.values.get(key)
        return default if value is None else value

    @property
    def risk_tier(self) -> Optional[str]:
        return self.risk.tier.code if self.risk else None

    @property
    def worst_severity(self) -> Severity:
        return Severity.worst(r.category.severity for r in self.readings.values())


@dataclass(frozen=True)
class Derivation:
    """
    Computes ``name`` from already-available values.

    Skipped silently when an input in ``requires`` is missing. If a required
    input is itself unavailable, or ``compute`` raises DomainInvalidError, the
    value is reported as unavailable. A value supplied directly by the user
    wins over the derivation unless ``overwrite`` is set.
    """
    name: str
    requires: Sequence[str]
    compute: Callable[[Mapping[str, Any]], Any]
    source: ReadingSource = ReadingSource.DERIVED
    overwrite: bool = False


@dataclass(frozen=True)
class ReadingSpec:
    """Which value to classify against which table."""
    kind: str
    table: ThresholdTable
    label: str = ""
    unit: str = ""
    precision: int = 1
    binding: Optional[UnitBinding] = None


@dataclass(frozen=True)
class FlagRule:
    """
    Warning flag condition evaluated on canonical values.

    Within a ``group`` only the first matching rule emits a flag.
    """
    kind: str
    level: FlagLevel
    condition: Callable[[AssessmentContext], bool]
    message: Union[str, Callable[[AssessmentContext], str]]
    recommendations: Sequence[str] = ()
    group: Optional[str] = None

    def build(self, ctx: AssessmentContext) -> WarningFlag:
        message = self.message(ctx) if callable(self.message) else self.message
        return WarningFlag(self.level, message, list(self.recommendations), self.kind)


@dataclass(frozen=True)
class TreatmentTier:
    code: str
    label: str
    narrative: str
    recommendations: Sequence[str] = ()


@dataclass(frozen=True)
class TreatmentOverride:
    """
    Raises the plan to at least ``tier`` when ``condition`` holds.

    An override without a tier only appends its recommendations.
    """
    name: str
    condition: Callable[[AssessmentContext], bool]
    tier: Optional[str] = None
    recommendations: Sequence[str] = ()


class TreatmentPolicy:
    """
    Ordered treatment tiers selected from risk tier and reading severity.

    Selection is the highest of the risk mapping and the severity mapping,
    escalated by each matching override in order. Any reading in a CRITICAL
    bucket forces ``urgent_tier``.
    """

    def __init__(
        self,
        tiers: Sequence[TreatmentTier],
        by_risk: Mapping[str, str],
        urgent_tier: str,
        by_severity: Optional[Mapping[Severity, str]] = None,
        overrides: Sequence[TreatmentOverride] = (),
        default_tier: Optional[str] = None,
    ):
        self.tiers = tuple(tiers)
        self._order = [t.code for t in self.tiers]
        self._by_code = {t.code: t for t in self.tiers}
        self.by_risk = dict(by_risk)
        self.by_severity = dict(by_severity or {})
        self.overrides = tuple(overrides)
        self.urgent_tier = urgent_tier
        self.default_tier = default_tier or self._order[0]
        referenced = list(self.by_risk.values()) + list(self.by_severity.values()) + [
            urgent_tier, self.default_tier] + [o.tier for o in self.overrides if o.tier]
        unknown = sorted({code for code in referenced if code not in self._by_code})
        if unknown:
            raise ConfigurationError(f"Treatment policy references unknown tiers: {unknown}")

    def _rank(self, code: str) -> int:
        return self._order.index(code)

    def _raise_to(self, current: str, candidate: str) -> str:
        return candidate if self._rank(candidate) > self._rank(current) else current

    def covers(self, risk_codes: Sequence[str]) -> None:
        missing = [code for code in risk_codes if code not in self.by_risk]
        if missing:
            raise ConfigurationError(f"Treatment policy has no tier for risk tiers: {missing}")

    def select(self, ctx: AssessmentContext) -> TreatmentPlan:
        reasons: List[str] = []
        tier = self.default_tier
        if ctx.risk is not None:
            tier = self._raise_to(tier, self.by_risk[ctx.risk.tier.code])
            reasons.append(f"risk tier {ctx.risk.tier.code}")
        worst = ctx.worst_severity
        if worst in self.by_severity:
            raised = self._raise_to(tier, self.by_severity[worst])
            if raised != tier:
                reasons.append(f"{worst.value} reading")
            tier = raised
        extra: List[str] = []
        for override in self.overrides:
            if not override.condition(ctx):
                continue
            reasons.append(override.name)
            if override.tier:
                tier = self._raise_to(tier, override.tier)
            extra.extend(override.recommendations)
        if worst == Severity.CRITICAL and self._raise_to(tier, self.urgent_tier) != tier:
            tier = self.urgent_tier
            reasons.append("critical reading")

        chosen = self._by_code[tier]
        recommendations = list(chosen.recommendations)
        recommendations.extend(r for r in extra if r not in recommendations)
        return TreatmentPlan(
            tier=chosen.code,
            label=chosen.label,
            narrative=chosen.narrative,
            recommendations=recommendations,
            reasons=reasons,
        )


DetailsBuilder = Callable[[AssessmentContext], Dict[str, Any]]


@dataclass
class MetricConfig:
    """Complete declarative description of one health metric."""
    name: str
    title: str
    schema: InputSchema
    readings: Sequence[ReadingSpec] = ()
    ratios: Sequence[ReadingSpec] = ()
    derivations: Sequence[Derivation] = ()
    risk_model: Optional[RiskModel] = None
    risk_mapper: Optional[RecommendationMapper] = None
    treatment: Optional[TreatmentPolicy] = None
    flags: Sequence[FlagRule] = ()
    details: Optional[DetailsBuilder] = None
    disclaimer: str = ""
    description: str = ""

    @property
    def unit_bindings(self) -> Dict[str, UnitBinding]:
        return {spec.name: spec.unit for spec in self.schema.unit_fields}

    def tables(self) -> List[ThresholdTable]:
        tables = [spec.table for spec in list(self.readings) + list(self.ratios)]
        if self.risk_model is not None:
            tables.append(self.risk_model.tiers)
        return tables


class AssessmentOrchestrator:
    """
    Generic assessment pipeline for one MetricConfig.

    Table/mapper coverage is checked here, at construction, so a mismatch
    fails at startup rather than per request.
    """

    def __init__(self, config: MetricConfig):
        self.config = config
        self._reading_mappers = {
            spec.kind: RecommendationMapper.from_table(spec.table)
            for spec in list(config.readings) + list(config.ratios)
        }
        for spec in list(config.readings) + list(config.ratios):
            self._reading_mappers[spec.kind].ensure_covers(spec.table.labels)
        # unit-bound readings; converting one for display needs a non-negative value
        self._measured_kinds = {
            spec.kind for spec in list(config.readings) + list(config.ratios)
            if spec.binding is not None or spec.kind in config.unit_bindings
        }
        self._risk_mapper: Optional[RecommendationMapper] = None
        if config.risk_model is not None:
            self._risk_mapper = config.risk_mapper or RecommendationMapper.from_table(config.risk_model.tiers)
            self._risk_mapper.ensure_covers(config.risk_model.tiers.labels)
            if config.treatment is not None:
                config.treatment.covers([c.code for c in config.risk_model.tiers.categories])
        logger.info(f"AssessmentOrchestrator initialized for '{config.name}'")

    @property
    def name(self) -> str:
        return self.config.name

    def assess(self, raw: Mapping[str, Any]) -> AssessmentOutcome:
        """Run the full pipeline. Invalid input yields field errors, never an exception."""
        validation = self.config.schema.validate(raw)
        if not validation.is_valid:
            logger.info(f"{self.name}: rejected input, invalid fields {sorted(validation.errors)}")
            return AssessmentOutcome(metric=self.name, errors=dict(validation.errors))

        ctx = AssessmentContext(metric=self.name, values=dict(validation.values))
        self._convert(ctx)
        derived = self._derive(ctx)
        self._classify(ctx, derived)
        self._score(ctx)

        result = AssessmentResult(
            metric=self.name,
            readings=[ctx.readings[s.kind] for s in self.config.readings if s.kind in ctx.readings],
            ratios=[ctx.readings[s.kind] for s in self.config.ratios if s.kind in ctx.readings],
            risk=ctx.risk,
            disclaimer=self.config.disclaimer,
        )
        if ctx.risk is not None:
            entry: RecommendationEntry = self._risk_mapper.recommendations_for(ctx.risk.tier.label)
            result.risk_narrative = entry.narrative
            result.risk_recommendations = list(entry.recommendations)
        if self.config.treatment is not None:
            result.treatment = ctx.treatment = self.config.treatment.select(ctx)

        result.flags = self._flag(ctx)
        result.unavailable = list(ctx.unavailable.values())
        if self.config.details is not None:
            result.details = self.config.details(ctx)
        logger.debug(
            f"{self.name}: {len(result.readings)} readings, risk={ctx.risk_tier}, "
            f"flags={[f.kind for f in result.flags]}"
        )
        return AssessmentOutcome(metric=self.name, result=result)

    def _convert(self, ctx: AssessmentContext) -> None:
        for name, binding in self.config.unit_bindings.items():
            value = ctx.values.get(name)
            if value is None:
                continue
            entered = binding.entered_unit(ctx.values)
            ctx.entered_units[name] = entered.value
            ctx.values[name] = binding.to_canonical(value, ctx.values)

    def _derive(self, ctx: AssessmentContext) -> Dict[str, ReadingSource]:
        sources: Dict[str, ReadingSource] = {}
        for derivation in self.config.derivations:
            if ctx.values.get(derivation.name) is not None and not derivation.overwrite:
                continue
            blocked = [r for r in derivation.requires if r in ctx.unavailable]
            if blocked:
                ctx.unavailable[derivation.name] = UnavailableValue(
                    derivation.name, f"Depends on unavailable value: {', '.join(blocked)}"
                )
                continue
            if any(ctx.values.get(r) is None for r in derivation.requires):
                continue
            try:
                value = derivation.compute(ctx.values)
            except (DomainInvalidError, ConfigurationError) as e:
                reason = e.reason if isinstance(e, DomainInvalidError) else str(e)
                logger.warning(f"{self.name}: {derivation.name} unavailable ({reason})")
                ctx.unavailable[derivation.name] = UnavailableValue(derivation.name, reason)
                continue
            if value is None:
                continue
            if derivation.name in self._measured_kinds and value < 0:
                reason = f"Computed {derivation.name} of {value:g} is not a valid measurement"
                logger.warning(f"{self.name}: {derivation.name} unavailable ({reason})")
                ctx.unavailable[derivation.name] = UnavailableValue(derivation.name, reason)
                continue
            ctx.values[derivation.name] = value
            sources[derivation.name] = derivation.source
        return sources

    def _classify(self, ctx: AssessmentContext, derived: Mapping[str, ReadingSource]) -> None:
        bindings = self.config.unit_bindings
        for spec in list(self.config.readings) + list(self.config.ratios):
            value = ctx.values.get(spec.kind)
            if value is None:
                continue
            bucket = spec.table.bucket_for(value)
            entry = self._reading_mappers[spec.kind].recommendations_for(bucket.category.label)
            unit = spec.unit
            display_value, display_unit = value, unit
            binding = spec.binding or bindings.get(spec.kind)
            if binding is not None:
                unit = binding.canonical.symbol
                display_unit = binding.entered_unit(ctx.values).symbol
                display_value = binding.from_canonical(value, ctx.values)
            ctx.readings[spec.kind] = Reading(
                kind=spec.kind,
                value=value,
                unit=unit,
                category=bucket.category,
                label=spec.label,
                source=derived.get(spec.kind, ReadingSource.MEASURED),
                display_value=display_value,
                display_unit=display_unit,
                recommendations=list(entry.recommendations),
                precision=spec.precision,
            )

    def _score(self, ctx: AssessmentContext) -> None:
        model = self.config.risk_model
        if model is None:
            return
        missing = model.missing_fields(ctx.values)
        if missing:
            ctx.unavailable["risk"] = UnavailableValue(
                "risk", f"Risk assessment requires: {', '.join(missing)}"
            )
            return
        ctx.risk = model.score(ctx.values)

    def _flag(self, ctx: AssessmentContext) -> List[WarningFlag]:
        flags: List[WarningFlag] = []
        fired_groups = set()
        for rule in self.config.flags:
            if rule.group is not None and rule.group in fired_groups:
                continue
            if rule.condition(ctx):
                flags.append(rule.build(ctx))
                if rule.group is not None:
                    fired_groups.add(rule.group)
        return flags
