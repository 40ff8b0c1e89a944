"""Pydantic models for the reasoning API.

The browser client sends loosely typed JSON sensor readings. They are
validated here and turned into ground literals once, at the boundary:

    {"motion_detected": true, "night_time": false,
     "temperatures": [["Bedroom", 15.0]], "energy_usage_high": false}

becomes

    MotionDetected(true), NightTime(false), EnergyUsageHigh(false),
    Temperature(Bedroom,15.0)

Responses render every literal in the canonical ``Predicate(arg1,arg2)``
text syntax.
"""

from __future__ import annotations

import math
from typing import Annotated, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StringConstraints,
    field_validator,
)

from homereason.logic import (
    BackwardResult,
    Constant,
    FactBase,
    ForwardResult,
    Literal,
    RuleSet,
)

__all__ = [
    "SensorFacts",
    "ForwardRequest",
    "BackwardRequest",
    "ForwardResponse",
    "ProofStepModel",
    "BackwardResponse",
    "RuleModel",
    "RulesResponse",
    "HealthResponse",
    "ErrorResponse",
]

RoomName = Annotated[str, StringConstraints(strict=True, min_length=1)]
Celsius = Union[StrictInt, StrictFloat]


class SensorFacts(BaseModel):
    """Current sensor readings for one request.

    Flags must be JSON booleans and temperatures JSON numbers; strings
    such as ``"true"`` or ``"15"`` are rejected rather than coerced.
    """

    model_config = ConfigDict(extra="forbid")

    motion_detected: StrictBool = Field(default=False, description="Motion sensor state")
    night_time: StrictBool = Field(default=False, description="Whether it is night")
    temperatures: list[tuple[RoomName, Celsius]] = Field(
        default_factory=list,
        description="[room, celsius] readings",
    )
    energy_usage_high: StrictBool = Field(
        default=False, description="Whether energy usage is above normal"
    )

    @field_validator("temperatures")
    @classmethod
    def validate_temperatures(
        cls, v: list[tuple[str, int | float]]
    ) -> list[tuple[str, float]]:
        """Normalize readings to finite floats with UTF-8 room names."""
        readings = []
        for room, celsius in v:
            try:
                room.encode("utf-8")
            except UnicodeEncodeError as e:
                raise ValueError(f"Room name must be valid UTF-8: {room!r}") from e
            try:
                value = float(celsius)
            except OverflowError as e:
                raise ValueError(f"Temperature for {room} is out of range") from e
            if not math.isfinite(value):
                raise ValueError(f"Temperature for {room} must be finite, got: {celsius}")
            readings.append((room, value))
        return readings

    def to_literals(self) -> list[Literal]:
        """Convert readings to ground literals, flags first."""
        literals = [
            Literal("MotionDetected", (Constant(self.motion_detected),)),
            Literal("NightTime", (Constant(self.night_time),)),
            Literal("EnergyUsageHigh", (Constant(self.energy_usage_high),)),
        ]
        for room, celsius in self.temperatures:
            literals.append(Literal("Temperature", (Constant(room), Constant(celsius))))
        return literals

    def to_fact_base(self) -> FactBase:
        """Build a fresh fact base holding these readings as asserted facts."""
        return FactBase(self.to_literals())


class ForwardRequest(BaseModel):
    """Body of ``POST /reason/forward``."""

    facts: SensorFacts


class BackwardRequest(ForwardRequest):
    """Body of ``POST /reason/backward``."""

    goal: str = Field(..., min_length=1, description="Ground goal, e.g. TurnOn(Heater)")


class ForwardResponse(BaseModel):
    """Forward chaining result."""

    initial_facts: list[str]
    inferred_facts: list[str]
    actions: list[str]
    trace: list[str]

    @classmethod
    def from_result(cls, result: ForwardResult) -> "ForwardResponse":
        return cls(
            initial_facts=[str(lit) for lit in result.initial_facts],
            inferred_facts=[str(lit) for lit in result.inferred_facts],
            actions=[str(lit) for lit in result.actions],
            trace=result.trace,
        )


class ProofStepModel(BaseModel):
    """One step of a flattened proof."""

    goal: str
    rule_used: str | None = None
    satisfied_by: list[str] = Field(default_factory=list)
    depth: int = Field(default=0, ge=0, description="Nesting depth in the proof tree")


class BackwardResponse(BaseModel):
    """Backward chaining result."""

    goal: str
    provable: bool
    proof: list[ProofStepModel]

    @classmethod
    def from_result(cls, result: BackwardResult) -> "BackwardResponse":
        return cls(
            goal=str(result.goal),
            provable=result.provable,
            proof=[
                ProofStepModel(
                    goal=str(step.goal),
                    rule_used=step.rule_used,
                    satisfied_by=[str(lit) for lit in step.satisfied_by],
                    depth=depth,
                )
                for depth, step in result.proof
            ],
        )


class RuleModel(BaseModel):
    """A loaded rule, rendered as text."""

    id: str
    description: str = ""
    antecedents: list[str]
    consequent: str
    action: bool = False


class RulesResponse(BaseModel):
    """Listing of the loaded rule set."""

    source: str
    actions: list[str]
    rules: list[RuleModel]

    @classmethod
    def from_rule_set(cls, rules: RuleSet) -> "RulesResponse":
        return cls(
            source=rules.source,
            actions=sorted(rules.action_predicates),
            rules=[
                RuleModel(
                    id=rule.id,
                    description=rule.description,
                    antecedents=[str(a) for a in rule.antecedents],
                    consequent=str(rule.consequent),
                    action=rules.is_action(rule.consequent),
                )
                for rule in rules
            ],
        )


class HealthResponse(BaseModel):
    """Health check payload."""

    status: str = "healthy"
    rules_loaded: int
    rule_source: str


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    code: str
    message: str
    detail: str | None = None
