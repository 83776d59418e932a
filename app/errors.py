"""Error taxonomy for the shipping pipeline and its HTTP mapping."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


@dataclass(frozen=True, eq=False)
class PipelineError(Exception):
    code: str
    detail: str
    status_code: int = 400
    retryable: bool = False

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"


class NotFoundError(PipelineError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=404, retryable=False)


class InvalidTransitionError(PipelineError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=409, retryable=False)


class AllocationConflictError(PipelineError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=409, retryable=True)


class DuplicateConversionError(PipelineError):
    """A derived record for the same parent was inserted concurrently.

    Never reaches callers: conversions resolve it by returning the winner.
    """

    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=409, retryable=False)


class PipelineValidationError(PipelineError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=400, retryable=False)


class IngestionError(PipelineError):
    def __init__(self, code: str, detail: str, status_code: int = 422, retryable: bool = False):
        super().__init__(code=code, detail=detail, status_code=status_code, retryable=retryable)


async def _pipeline_error_handler(_request: Request, exc: PipelineError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.detail},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PipelineError, _pipeline_error_handler)
