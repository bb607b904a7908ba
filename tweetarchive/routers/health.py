"""
Tweet Archive - Health Check Router

- GET /health - Liveness probe: returns 200 if the process is up
- GET /readyz - Readiness probe: returns 200 only if the database answers
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..db import TweetStore
from ..deps import get_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


class LivenessResponse(BaseModel):
    status: str
    timestamp: str
    version: str


@router.get("/health", response_model=LivenessResponse)
def health() -> LivenessResponse:
    return LivenessResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
    )


@router.get("/readyz")
def readiness(store: Optional[TweetStore] = Depends(get_store)) -> JSONResponse:
    ready = store is not None and store.check_ready()
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not_ready",
            "database": "ok" if ready else "unavailable",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
