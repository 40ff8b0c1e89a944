"""Reasoning endpoints.

Each request builds its own fact base from the payload and runs one
engine against the shared rule set. Engines are synchronous, so the
handlers are plain functions and FastAPI runs them in its threadpool.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from homereason.logic import BackwardChainer, ForwardChainer, parse_literal
from homereason.schema import (
    BackwardRequest,
    BackwardResponse,
    ForwardRequest,
    ForwardResponse,
    HealthResponse,
    RulesResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/reason/forward", response_model=ForwardResponse, tags=["reason"])
def reason_forward(body: ForwardRequest, request: Request) -> ForwardResponse:
    """Derive every fact and action that follows from the sensor facts."""
    chainer: ForwardChainer = request.app.state.forward
    facts = body.facts.to_fact_base()

    result = chainer.run(facts)

    logger.info(
        f"Forward run: {len(result.initial_facts)} facts in, "
        f"{len(result.inferred_facts)} inferred, {len(result.actions)} actions"
    )
    return ForwardResponse.from_result(result)


@router.post("/reason/backward", response_model=BackwardResponse, tags=["reason"])
def reason_backward(body: BackwardRequest, request: Request) -> BackwardResponse:
    """Prove or disprove a goal and explain the proof."""
    chainer: BackwardChainer = request.app.state.backward
    goal = parse_literal(body.goal)
    facts = body.facts.to_fact_base()

    result = chainer.prove(goal, facts)

    logger.info(f"Backward run: {goal} provable={result.provable}")
    return BackwardResponse.from_result(result)


@router.get("/rules", response_model=RulesResponse, tags=["rules"])
def list_rules(request: Request) -> RulesResponse:
    """List the loaded rules."""
    return RulesResponse.from_rule_set(request.app.state.rules)


@router.get("/health", response_model=HealthResponse, tags=["health"])
def health(request: Request) -> HealthResponse:
    """Health check with rule set status."""
    rules = request.app.state.rules
    return HealthResponse(rules_loaded=len(rules), rule_source=rules.source)
