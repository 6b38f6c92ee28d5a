"""
Paste routes.
Handles create, view (JSON), raw (plain text) and download operations.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import PlainTextResponse, Response

from pastebin.config import settings
from pastebin.database import db
from pastebin.exceptions import KeyGenerationExhausted, StorageError
from pastebin.models import CreatePasteResponse, PasteCreate, PasteView
from pastebin.policy import AccessMode, Denied, DenialReason, ReadResult
from pastebin.service import PasteService

router = APIRouter(prefix="/api/pastes")
logger = logging.getLogger(__name__)

_service = PasteService(db)

FILE_EXTENSIONS = {
    "java": ".java",
    "python": ".py",
    "javascript": ".js",
    "typescript": ".ts",
    "cpp": ".cpp",
    "c++": ".cpp",
    "csharp": ".cs",
    "c#": ".cs",
    "go": ".go",
    "rust": ".rs",
    "php": ".php",
    "ruby": ".rb",
    "html": ".html",
    "css": ".css",
    "json": ".json",
    "xml": ".xml",
    "markdown": ".md",
    "sql": ".sql",
    "shell": ".sh",
    "bash": ".sh",
    "yaml": ".yml",
}

_STATUS = {
    DenialReason.NOT_FOUND: 404,
    DenialReason.EXPIRED: 410,
    DenialReason.BURN_CONTENT_FORBIDDEN: 403,
}

_RAW_MESSAGES = {
    DenialReason.NOT_FOUND: "Error: Content not found or expired",
    DenialReason.EXPIRED: "Error: Content has expired",
    DenialReason.BURN_CONTENT_FORBIDDEN: "Error: Burn-after-reading content cannot be accessed in raw mode",
}

_VIEW_MESSAGES = {
    DenialReason.NOT_FOUND: "Paste not found or expired",
    DenialReason.EXPIRED: "Paste has expired",
}


def get_paste_service() -> PasteService:
    return _service


def file_extension(syntax: Optional[str]) -> str:
    """Map a syntax label to a download file extension."""
    if not syntax:
        return ".txt"
    return FILE_EXTENSIONS.get(syntax.lower(), ".txt")


def _get_current_time(x_test_now_ms: Optional[str] = None) -> datetime:
    """
    Get current time, respecting TEST_MODE for deterministic testing.

    Args:
        x_test_now_ms: Test timestamp header (milliseconds since epoch)

    Returns:
        Current datetime in UTC
    """
    if settings.TEST_MODE and x_test_now_ms:
        try:
            timestamp_ms = int(x_test_now_ms)
            return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
        except (ValueError, TypeError, OverflowError) as e:
            logger.warning(f"Invalid x-test-now-ms header: {e}")

    return datetime.now(timezone.utc)


def _read(service: PasteService, key: str, mode: AccessMode, now: datetime) -> ReadResult:
    try:
        return service.read(key, mode, now)
    except StorageError:
        raise HTTPException(status_code=503, detail="Storage unavailable")


@router.post("", response_model=CreatePasteResponse, status_code=201)
def create_paste(
    paste: PasteCreate,
    x_test_now_ms: Optional[str] = Header(None),
    service: PasteService = Depends(get_paste_service),
) -> CreatePasteResponse:
    """
    Create a new paste.

    Raises:
        HTTPException: 400 on blank content, 500 if no free key, 503 on storage failure
    """
    if not paste.content.strip():
        raise HTTPException(
            status_code=400,
            detail="content is required and must be non-empty",
        )

    try:
        key = service.create(
            content=paste.content,
            syntax=paste.syntax,
            burn_after_reading=paste.burn_after_reading,
            expire_minutes=paste.expire_minutes,
            now=_get_current_time(x_test_now_ms),
        )
    except KeyGenerationExhausted:
        raise HTTPException(status_code=500, detail="Failed to allocate a paste key")
    except StorageError:
        raise HTTPException(status_code=503, detail="Failed to save paste")

    base_url = settings.APP_DOMAIN.rstrip("/")
    return CreatePasteResponse(key=key, url=f"{base_url}/{key}")


@router.get("/{key}", response_model=PasteView)
def view_paste(
    key: str,
    x_test_now_ms: Optional[str] = Header(None),
    service: PasteService = Depends(get_paste_service),
) -> PasteView:
    """
    Fetch a paste. Burn-after-reading pastes are destroyed by this read.

    Raises:
        HTTPException: 404 if not found or already burned, 410 if expired
    """
    result = _read(service, key, AccessMode.VIEW, _get_current_time(x_test_now_ms))
    if isinstance(result, Denied):
        raise HTTPException(status_code=_STATUS[result.reason], detail=_VIEW_MESSAGES[result.reason])
    return PasteView.from_record(result.record)


@router.get("/{key}/raw", response_class=PlainTextResponse)
def raw_paste(
    key: str,
    x_test_now_ms: Optional[str] = Header(None),
    service: PasteService = Depends(get_paste_service),
) -> PlainTextResponse:
    """Plain text content for curl/wget. Never burns; refuses burn-after-reading pastes."""
    result = _read(service, key, AccessMode.RAW, _get_current_time(x_test_now_ms))
    if isinstance(result, Denied):
        return PlainTextResponse(_RAW_MESSAGES[result.reason], status_code=_STATUS[result.reason])
    return PlainTextResponse(result.record.content)


@router.get("/{key}/download")
def download_paste(
    key: str,
    x_test_now_ms: Optional[str] = Header(None),
    service: PasteService = Depends(get_paste_service),
) -> Response:
    """Paste content as a file attachment. Never burns; refuses burn-after-reading pastes."""
    result = _read(service, key, AccessMode.DOWNLOAD, _get_current_time(x_test_now_ms))
    if isinstance(result, Denied):
        return Response(status_code=_STATUS[result.reason])

    record = result.record
    filename = f"{record.key}{file_extension(record.syntax)}"
    return Response(
        content=record.content.encode("utf-8"),
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
