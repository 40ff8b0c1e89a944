"""Exception hierarchy for the reasoning service.

Unprovable goals and runs that derive nothing are ordinary results, not
errors. The exceptions here cover input that cannot be interpreted, rule
modules that cannot be loaded, and engines that hit their work caps.
"""

from __future__ import annotations

__all__ = [
    "ReasonerError",
    "MalformedInput",
    "RuleSetError",
    "RuleSafetyViolation",
    "EngineInternalLimitExceeded",
]


class ReasonerError(Exception):
    """Base class for all reasoning errors."""


class MalformedInput(ReasonerError, ValueError):
    """Facts or goal text could not be parsed into literals."""


class RuleSetError(ReasonerError):
    """A rule module is invalid and cannot be loaded."""


class RuleSafetyViolation(RuleSetError):
    """A rule uses variables that its antecedents never bind.

    Attributes:
        rule_id: Id of the offending rule
        variables: Sorted names of the unbound variables
    """

    def __init__(self, rule_id: str, variables: list[str], reason: str) -> None:
        self.rule_id = rule_id
        self.variables = variables
        names = ", ".join(f"?{v}" for v in variables)
        super().__init__(f"Rule '{rule_id}' is unsafe: {reason} ({names})")


class EngineInternalLimitExceeded(ReasonerError, RuntimeError):
    """An engine tripped its pass or depth cap.

    Raised instead of returning a partial result, so that a truncated
    search is never mistaken for a negative answer.

    Attributes:
        engine: "forward" or "backward"
        limit: The cap that was exceeded
    """

    def __init__(self, engine: str, limit: int, detail: str) -> None:
        self.engine = engine
        self.limit = limit
        super().__init__(f"{engine} chaining exceeded limit {limit}: {detail}")
