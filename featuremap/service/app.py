"""FastAPI application entrypoint for featuremap service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, TypeVar

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..errors import BatchValidationError, FeaturemapError
from ..models import FeatureProposal
from ..orchestrator import Orchestrator

T = TypeVar("T")


class ScanRequest(BaseModel):
    path: str


class FeatureProposalModel(BaseModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    purpose: Optional[str] = None
    scope: Optional[str] = None
    status: Optional[str] = None
    clusters: Optional[List[str]] = None
    dependsOn: Optional[List[str]] = None
    reasoning: Optional[str] = None

    def to_proposal(self) -> FeatureProposal:
        return FeatureProposal(
            id=self.id,
            name=self.name,
            description=self.description,
            purpose=self.purpose,
            scope=self.scope,
            status=self.status,
            clusters=self.clusters,
            depends_on=self.dependsOn,
            reasoning=self.reasoning,
        )


class SaveFeaturesRequest(BaseModel):
    path: str
    features: List[FeatureProposalModel]
    mode: str = "merge"
    dryRun: bool = False
    source: str = "ai"


class SaveFeaturesResponse(BaseModel):
    saved: Dict[str, List[str]]
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


async def _run_blocking(func: Callable[[], T]) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing featuremap operations."""

    app = FastAPI(title="featuremap", version="0.4.0")

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/scan")
    async def scan(
        payload: ScanRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        summary = await _run_blocking(lambda: orchestrator.run_scan(payload.path))
        return summary.to_dict()

    @app.post("/features", response_model=SaveFeaturesResponse)
    async def save_features(
        payload: SaveFeaturesRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Any:
        proposals = [item.to_proposal() for item in payload.features]
        summary = await _run_blocking(
            lambda: orchestrator.save_features(
                payload.path,
                proposals,
                mode=payload.mode,
                dry_run=payload.dryRun,
                proposer=payload.source,
            )
        )
        if summary.errors:
            return JSONResponse(status_code=422, content=summary.to_dict())
        return summary.to_dict()

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(BatchValidationError)
    async def batch_error_handler(_: Any, exc: BatchValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.errors})

    @app.exception_handler(FeaturemapError)
    async def featuremap_error_handler(_: Any, exc: FeaturemapError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["create_app", "run_service"]
