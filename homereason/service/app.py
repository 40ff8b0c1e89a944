"""FastAPI application factory for the reasoning service.

The rule set is loaded once here and shared read-only by every request
through ``app.state``. Loading fails fast: an unsafe or malformed rule
module prevents the application from being created at all.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from homereason import __version__
from homereason.errors import EngineInternalLimitExceeded, MalformedInput
from homereason.logic import BackwardChainer, ForwardChainer, KBLoader, RuleSet
from homereason.schema import ErrorResponse

from .config import ReasonerSettings, get_settings
from .routes import router

logger = logging.getLogger(__name__)


def load_rules(settings: ReasonerSettings) -> RuleSet:
    """Load the rule set named by the settings.

    Raises:
        RuleSetError: If the rules cannot be loaded or are unsafe
    """
    if settings.rules_path:
        return KBLoader.load_file(settings.rules_path)
    return KBLoader.load_modules(settings.rule_modules)


def create_app(
    settings: ReasonerSettings | None = None,
    rules: RuleSet | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Service settings (defaults to environment settings)
        rules: Rule set to serve instead of the configured one

    Returns:
        The configured application
    """
    if settings is None:
        settings = get_settings()
    if rules is None:
        rules = load_rules(settings)

    app = FastAPI(
        title="Home Reasoner",
        version=__version__,
        description="Forward chaining to infer actions and backward chaining to explain why.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.rules = rules
    app.state.forward = ForwardChainer(rules, max_passes=settings.max_forward_passes)
    app.state.backward = BackwardChainer(rules, max_depth=settings.max_proof_depth)

    # -----------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------

    @app.exception_handler(MalformedInput)
    async def malformed_input_handler(request: Request, exc: MalformedInput) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                code="MALFORMED_INPUT",
                message="Could not parse the request",
                detail=str(exc),
            ).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Offending input values are left out; they may not be encodable.
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=ErrorResponse(
                code="INVALID_REQUEST",
                message="The request body failed validation",
                detail="; ".join(problems),
            ).model_dump(),
        )

    @app.exception_handler(EngineInternalLimitExceeded)
    async def limit_exceeded_handler(
        request: Request, exc: EngineInternalLimitExceeded
    ) -> JSONResponse:
        logger.error(f"{request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                code="ENGINE_LIMIT_EXCEEDED",
                message=f"The {exc.engine} chaining engine exceeded its limit of {exc.limit}",
                detail=str(exc),
            ).model_dump(),
        )

    app.include_router(router)

    logger.info(f"Serving {len(rules)} rules from {rules.source}")
    return app
