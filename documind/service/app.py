"""FastAPI application entrypoint for documind service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..errors import DocuMindError
from ..models import BudgetValidation
from ..orchestrator import Orchestrator
from ..workspace import Workspace

T = TypeVar("T")


class ExecuteRequest(BaseModel):
    command: str
    options: Dict[str, Any] = Field(default_factory=dict)


class ValidateRequest(BaseModel):
    paths: List[str]


class ValidationReport(BaseModel):
    file: str
    status: str
    errors: List[str]
    warnings: List[str]


class ValidateResponse(BaseModel):
    results: List[ValidationReport]
    valid: bool


class TokensRequest(BaseModel):
    text: str
    budget: Optional[int] = Field(default=None, gt=0)


class HealthResponse(BaseModel):
    status: str


def _workspace_factory(root: Path | str | None) -> Callable[[], Orchestrator]:
    def _factory() -> Orchestrator:
        return Orchestrator(Workspace.open(root or Path.cwd()))

    return _factory


async def _run_blocking(func: Callable[[], T]) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] | None = None,
    *,
    root: Path | str | None = None,
) -> FastAPI:
    """Create the FastAPI application exposing documind operations."""
    factory = orchestrator_factory or _workspace_factory(root)
    app = FastAPI(title="DocuMind Service", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        # Built per request so manifests and config are always re-read from disk.
        return factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/execute")
    async def execute(
        payload: ExecuteRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> JSONResponse:
        result = await _run_blocking(lambda: orchestrator.execute(payload.command, payload.options))
        status_code = 200 if result.get("success") else 400
        return JSONResponse(status_code=status_code, content=result)

    @app.post("/validate", response_model=ValidateResponse)
    async def validate(
        payload: ValidateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> ValidateResponse:
        workspace = orchestrator.workspace
        paths = [workspace.resolve(path) for path in payload.paths]
        results = await _run_blocking(lambda: orchestrator.generator.validator.validate_many(paths))
        reports = [ValidationReport(**result.to_dict()) for result in results]
        return ValidateResponse(results=reports, valid=all(result.valid for result in results))

    @app.post("/tokens")
    async def tokens(
        payload: TokensRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        result = await _run_blocking(lambda: orchestrator.generator.counter.count(payload.text))
        if payload.budget is not None:
            result.budget_validation = BudgetValidation.compute(result.tokens, payload.budget)
        return result.to_dict()

    @app.exception_handler(DocuMindError)
    async def documind_error_handler(_: Any, exc: DocuMindError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc), "errorType": type(exc).__name__},
        )

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000, root: Path | str | None = None
) -> None:  # pragma: no cover - integration path
    app = create_app(root=root)
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
