# Bookmarks API - import/export of browser bookmark files
#
# Imports take the raw file text as the request body and return the parsed
# forest in the JSON form plus every skipped node. Exports take that JSON
# form and return a download.

import logging

from fastapi import APIRouter, HTTPException, Request, Response, status

from ..bookmarks import (
    HTML_MIME_TYPE,
    JSON_FILENAME,
    JSON_MIME_TYPE,
    ExportOptions,
    ImportOptions,
    MalformedInput,
    ParseResult,
    export_filename,
    forest_to_json,
    parse_html,
    parse_json,
    serialize_html,
    serialize_json,
)
from ..core import EventSeverity, EventType, get_audit_logger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookmarks", tags=["bookmarks"])


def _import_response(result: ParseResult, source: str) -> dict:
    bookmarks = result.bookmarks
    get_audit_logger().log_event(
        event_type=EventType.BOOKMARKS_IMPORTED,
        severity=EventSeverity.INFO,
        message=f"Bookmarks imported from {source}",
        details={
            "bookmarks": len(bookmarks),
            "folders": len(result.folders),
            "skipped": len(result.skipped),
        },
    )
    return {
        "bookmarks": forest_to_json(result.forest),
        "imported": len(bookmarks),
        "folders": len(result.folders),
        "skipped": [s.to_dict() for s in result.skipped],
    }


def _malformed(e: MalformedInput, source: str) -> HTTPException:
    get_audit_logger().log_event(
        event_type=EventType.BOOKMARKS_IMPORT_FAILED,
        severity=EventSeverity.WARNING,
        message=f"Bookmark {source} import rejected: {e}",
    )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _download(content: str, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def _forest_from_body(request: Request):
    """Forest for export, from a JSON-form request body (kept as is, no default folder)."""
    try:
        result = parse_json(await request.body(), ImportOptions(default_folder=None))
    except MalformedInput as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if result.skipped:
        logger.warning("Export request had %d unusable entries", len(result.skipped))
    return result.forest


# ── Import ───────────────────────────────────────────────────────────


@router.post("/import/html")
async def import_html(request: Request, create_folders: bool = True, preserve_dates: bool = True):
    """Parse a browser bookmark export (Netscape HTML)."""
    options = ImportOptions(create_folders=create_folders, preserve_dates=preserve_dates)
    try:
        result = parse_html(await request.body(), options)
    except MalformedInput as e:
        raise _malformed(e, "HTML")
    return _import_response(result, "HTML")


@router.post("/import/json")
async def import_json(request: Request, create_folders: bool = True, preserve_dates: bool = True):
    options = ImportOptions(create_folders=create_folders, preserve_dates=preserve_dates)
    try:
        result = parse_json(await request.body(), options)
    except MalformedInput as e:
        raise _malformed(e, "JSON")
    return _import_response(result, "JSON")


# ── Export ───────────────────────────────────────────────────────────


@router.post("/export/html")
async def export_html(
    request: Request,
    group_by_folder: bool = True,
    include_uncategorized: bool = True,
):
    forest = await _forest_from_body(request)
    options = ExportOptions(
        group_by_folder=group_by_folder,
        include_uncategorized=include_uncategorized,
    )
    content = serialize_html(forest, options)
    get_audit_logger().log_event(
        event_type=EventType.BOOKMARKS_EXPORTED,
        severity=EventSeverity.INFO,
        message="Bookmarks exported as HTML",
        details={"bookmarks": len(forest.bookmarks()), "grouped": group_by_folder},
    )
    return _download(content, HTML_MIME_TYPE, export_filename())


@router.post("/export/json")
async def export_json(request: Request):
    forest = await _forest_from_body(request)
    get_audit_logger().log_event(
        event_type=EventType.BOOKMARKS_EXPORTED,
        severity=EventSeverity.INFO,
        message="Bookmarks exported as JSON",
        details={"bookmarks": len(forest.bookmarks())},
    )
    return _download(serialize_json(forest), JSON_MIME_TYPE, JSON_FILENAME)
