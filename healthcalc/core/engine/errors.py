"""
Engine error types.

User input problems are reported as data (field errors on the outcome);
these exceptions signal configuration defects or domain-invalid derivations.
"""


class AssessmentError(Exception):
    """Base class for engine errors."""


class ConfigurationError(AssessmentError):
    """A metric table, unit pair or mapper is inconsistent."""


class UnknownCategoryError(ConfigurationError):
    """A category label has no recommendation entry."""

    def __init__(self, label: str, mapper: str = ""):
        self.label = label
        self.mapper = mapper
        where = f" in '{mapper}'" if mapper else ""
        super().__init__(f"No recommendations registered for category '{label}'{where}")


class DomainInvalidError(AssessmentError):
    """A derived value cannot be computed for this input (e.g. Friedewald at TG >= 400)."""

    def __init__(self, kind: str, reason: str):
        self.kind = kind
        self.reason = reason
        super().__init__(f"{kind}: {reason}")
