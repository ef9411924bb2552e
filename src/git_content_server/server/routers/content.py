"""
Content REST API Router.

Decodes HTTP requests into content-pipeline operations and encodes the
results (or failures) as JSON. No pipeline exception crosses this boundary:
every failure becomes a structured response with a machine-readable status
and a human-readable message.

Routes with fixed prefixes are registered before the catch-all file routes.
"""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from git_content_server import __version__
from git_content_server.server.logging_utils import (
    format_error_log,
    get_log_extra,
    sanitize_for_logging,
)
from git_content_server.server.services.content_service import GitContentService
from git_content_server.server.services.exceptions import (
    ContentNotFoundError,
    ContentOperationError,
    FileOperationError,
    PathEscapeError,
    RepositoryError,
    UploadTooLargeError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["content"])


class AuthorRequest(BaseModel):
    """Optional request body for DELETE /{rel_path}."""

    name: Optional[str] = Field(default=None, description="Commit author name")
    email: Optional[str] = Field(default=None, description="Commit author email")


class CreateFileRequest(BaseModel):
    """Request body for PUT /{rel_path}."""

    content: str = Field(description="Full file content to write")


class CommitRequest(BaseModel):
    """Request body for POST /commit."""

    files: List[str] = Field(
        min_length=1, description="Paths relative to the content root to commit"
    )
    message: Optional[str] = Field(
        default=None, description="Commit message (configured default if absent)"
    )
    name: Optional[str] = Field(default=None, description="Commit author name")
    email: Optional[str] = Field(default=None, description="Commit author email")


class ResetRequest(BaseModel):
    """Request body for POST /reset and POST /reset-all."""

    files: List[str] = Field(
        min_length=1, description="Paths relative to the content root to reset"
    )


def get_content_service(request: Request) -> GitContentService:
    """Get the content service from app state."""
    service = getattr(request.app.state, "content_service", None)
    if service is None:
        raise RuntimeError(
            "content_service not initialized. "
            "Server must set app.state.content_service during startup."
        )
    return service


def _failure(status_code: int, message: str, outcome: str = "failure", **extra: Any) -> JSONResponse:
    content = {"status": outcome, "message": message}
    content.update(extra)
    return JSONResponse(content=content, status_code=status_code)


def _rejected_path(e: PathEscapeError, **extra: Any) -> JSONResponse:
    logger.warning(
        format_error_log("CONTENT-PATH-001", "Rejected path", reason=e),
        extra=get_log_extra("CONTENT-PATH-001"),
    )
    return _failure(status.HTTP_403_FORBIDDEN, str(e), **extra)


@router.get("/health")
def health(service: GitContentService = Depends(get_content_service)) -> JSONResponse:
    """Health check."""
    payload = {"ok": True, "service": "git-content-server", "version": __version__}
    payload.update(service.health())
    return JSONResponse(content=payload)


@router.post("/upload")
def upload_file(
    file: UploadFile = File(...),
    directory: str = Form(default=""),
    service: GitContentService = Depends(get_content_service),
) -> JSONResponse:
    """
    Receive a multipart upload and move it into directory.

    Returns the uploaded file descriptor. A failed relocation is logged and
    reported in the body but does not fail the request; the staged file is
    left in the staging area.
    """
    try:
        uploaded, relocation = service.receive_upload(
            file.filename or "",
            file.file,
            directory=directory,
            content_type=file.content_type,
        )
    except PathEscapeError as e:
        return _rejected_path(e)
    except ValueError as e:
        return _failure(status.HTTP_400_BAD_REQUEST, str(e), outcome="error")
    except UploadTooLargeError as e:
        return _failure(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, str(e), outcome="error"
        )
    except FileOperationError as e:
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e), outcome="error")

    descriptor = uploaded.to_descriptor()
    descriptor["relocated"] = relocation.success
    if not relocation.success:
        logger.warning(
            f"Upload {uploaded.original_name} accepted but not relocated: {relocation.error}"
        )
        descriptor["relocation_error"] = relocation.error
    return JSONResponse(content=descriptor)


@router.post("/commit")
def commit(
    body: CommitRequest,
    service: GitContentService = Depends(get_content_service),
) -> JSONResponse:
    """Stage and commit already modified files as a single commit."""
    logger.debug(f"Commit request: {sanitize_for_logging(body.model_dump())}")
    try:
        commit_id = service.commit(body.files, body.message, body.name, body.email)
    except PathEscapeError as e:
        return _rejected_path(e)
    except ContentOperationError as e:
        return _failure(status.HTTP_412_PRECONDITION_FAILED, str(e))

    return JSONResponse(content={"status": "success", "commit": commit_id})


@router.post("/reset")
def reset(
    body: ResetRequest,
    service: GitContentService = Depends(get_content_service),
) -> JSONResponse:
    """Discard uncommitted changes to the FIRST listed file."""
    try:
        result = service.reset(body.files)
    except PathEscapeError as e:
        return _rejected_path(e)
    except ContentOperationError as e:
        return _failure(status.HTTP_412_PRECONDITION_FAILED, str(e))

    return JSONResponse(
        content={
            "status": "success",
            "ignored": [service.resolver.relative_to_root(p) for p in result.ignored],
        }
    )


@router.post("/reset-all")
def reset_all(
    body: ResetRequest,
    service: GitContentService = Depends(get_content_service),
) -> JSONResponse:
    """Discard uncommitted changes to every listed file."""
    try:
        service.reset_all(body.files)
    except PathEscapeError as e:
        return _rejected_path(e)
    except ContentOperationError as e:
        return _failure(status.HTTP_412_PRECONDITION_FAILED, str(e))

    return JSONResponse(content={"status": "success"})


@router.get("/show/{file_relative_path:path}")
def show_contents(
    file_relative_path: str,
    service: GitContentService = Depends(get_content_service),
) -> JSONResponse:
    """Return a file's content as of the last commit."""
    try:
        content = service.show(file_relative_path)
    except PathEscapeError as e:
        return _rejected_path(e, fileRelativePath=file_relative_path)
    except ContentNotFoundError as e:
        logger.warning(
            format_error_log("CONTENT-SHOW-001", "No committed content", path=file_relative_path),
            extra=get_log_extra("CONTENT-SHOW-001"),
        )
        return _failure(
            status.HTTP_501_NOT_IMPLEMENTED, str(e), fileRelativePath=file_relative_path
        )
    except RepositoryError as e:
        return _failure(
            status.HTTP_501_NOT_IMPLEMENTED, str(e), fileRelativePath=file_relative_path
        )

    return JSONResponse(
        content={
            "fileRelativePath": file_relative_path,
            "content": content,
            "status": "success",
        }
    )


@router.delete("/{rel_path:path}")
def delete_file(
    rel_path: str,
    body: Optional[AuthorRequest] = None,
    service: GitContentService = Depends(get_content_service),
) -> JSONResponse:
    """Delete a file and commit the deletion."""
    author = body or AuthorRequest()
    try:
        service.delete_file(rel_path, author.name, author.email)
    except PathEscapeError as e:
        return _rejected_path(e)
    except ContentNotFoundError as e:
        return _failure(status.HTTP_404_NOT_FOUND, str(e), outcome="error")
    except ContentOperationError as e:
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e), outcome="error")

    return JSONResponse(content={"status": "success"})


@router.put("/{rel_path:path}")
def create_file(
    rel_path: str,
    body: CreateFileRequest,
    service: GitContentService = Depends(get_content_service),
) -> JSONResponse:
    """Create or overwrite a file. The change is not committed."""
    try:
        content = service.create_file(rel_path, body.content)
    except PathEscapeError as e:
        return _rejected_path(e)
    except ContentOperationError as e:
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e), outcome="error")

    return JSONResponse(content={"content": content})
