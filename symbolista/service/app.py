"""FastAPI application entrypoint for symbolista service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..models import AnalysisResult, SequenceConfig
from ..orchestrator import Orchestrator


class SequenceOptions(BaseModel):
    enabled: bool = True
    threshold: int = Field(default=2, ge=0)
    top_n: Optional[int] = Field(default=None, ge=0)


class AnalyzeRequest(BaseModel):
    path: str
    workers: int = Field(default=0, ge=0)
    include_dotfiles: bool = False
    ascii_only: bool = True
    sequences: SequenceOptions = Field(default_factory=SequenceOptions)


class CharEntry(BaseModel):
    char: str
    count: int
    percentage: float


class SequenceEntry(BaseModel):
    sequence: str
    count: int
    percentage: float


class Summary(BaseModel):
    files_found: int
    files_ignored: int
    files_processed: int
    total_characters: int
    unique_characters: int
    unique_sequences: int


class Timing(BaseModel):
    total: float
    rules: float
    traversal: float
    sorting: float


class AnalyzeResponse(BaseModel):
    directory: str
    characters: List[CharEntry]
    sequences: List[SequenceEntry]
    summary: Summary
    timing: Timing


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _to_response(directory: str, result: AnalysisResult) -> AnalyzeResponse:
    return AnalyzeResponse(
        directory=directory,
        characters=[
            CharEntry(char=entry.character, count=entry.count, percentage=entry.percentage)
            for entry in result.characters
        ],
        sequences=[
            SequenceEntry(sequence=entry.sequence, count=entry.count, percentage=entry.percentage)
            for entry in result.sequences
        ],
        summary=Summary(
            files_found=result.files_found,
            files_ignored=result.files_ignored,
            files_processed=result.files_processed,
            total_characters=result.total_chars,
            unique_characters=result.unique_chars,
            unique_sequences=result.unique_sequences,
        ),
        timing=Timing(
            total=result.timing.total,
            rules=result.timing.rules,
            traversal=result.timing.traversal,
            sorting=result.timing.sorting,
        ),
    )


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing symbolista analysis."""

    app = FastAPI(title="Symbolista Service", version=__version__)

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/analyze", response_model=AnalyzeResponse)
    async def analyze(
        payload: AnalyzeRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> AnalyzeResponse:
        sequence_config = SequenceConfig(
            enabled=payload.sequences.enabled,
            threshold=payload.sequences.threshold,
            top_n=payload.sequences.top_n,
        )

        def _run_analysis() -> AnalysisResult:
            return orchestrator.analyze(
                payload.path,
                workers=payload.workers,
                include_dotfiles=payload.include_dotfiles,
                ascii_only=payload.ascii_only,
                sequence_config=sequence_config,
            )

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run_analysis)
        return _to_response(payload.path, result)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(_: Any, exc: NotADirectoryError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)
