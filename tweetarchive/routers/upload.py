"""
Tweet Archive - Upload Router

GET  /upload - Minimal upload form
POST /upload - Ingest a tweet archive zip (form field ``zipfile``)

A successful upload redirects to ``/``. Any failure (no zipfile part, not a tweet archive,
bad shard, bad record, store failure) answers 500 with the error text.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response

from ..core.errors import ERR_ARCHIVE_MISSING, StructuralError, TweetArchiveError
from ..deps import get_ingest_service
from ..services.ingest_service import IngestService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["upload"])

UPLOAD_FORM = """<!DOCTYPE html>
<html>
<head><title>Upload tweet archive</title></head>
<body>
<h1>Upload your tweet archive</h1>
<form action="/upload" method="post" enctype="multipart/form-data">
  <input type="file" name="zipfile" accept=".zip">
  <input type="submit" value="Upload">
</form>
</body>
</html>
"""


@router.get("/upload", response_class=HTMLResponse, include_in_schema=False)
def upload_form() -> str:
    return UPLOAD_FORM


@router.post("/upload", summary="Upload a tweet archive zip")
def upload_archive(
    archive_file: Optional[UploadFile] = File(None, alias="zipfile", description="Tweet archive zip"),
    service: IngestService = Depends(get_ingest_service),
) -> Response:
    filename = archive_file.filename if archive_file is not None else None
    try:
        if archive_file is None:
            raise StructuralError(error_code=ERR_ARCHIVE_MISSING)
        result = service.ingest_stream(archive_file.file)
    except TweetArchiveError as exc:
        logger.error(
            f"Upload of {filename!r} failed: {exc.message}",
            extra={"error_code": exc.error_code.code},
        )
        return PlainTextResponse(exc.message, status_code=exc.error_code.http_status)
    finally:
        if archive_file is not None:
            archive_file.file.close()

    logger.info(f"Upload of {filename!r} complete: {result.summary()}")
    return RedirectResponse("/", status_code=302)
