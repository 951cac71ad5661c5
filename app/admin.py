from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from app.errors import error_envelope
from app.schemas import UrlFields, UrlOut
from app.store import MappingStore, get_store

logger = logging.getLogger(__name__)

ADMIN_API_PREFIX = "/admin/api"


def token_matches(presented: str | None, token: str) -> bool:
    """
    Constant-time comparison of the raw header bytes against the token.
    An empty configured token never matches.
    """
    if not token or presented is None:
        return False
    # Header values arrive latin-1 decoded; encoding back gives the raw bytes.
    return secrets.compare_digest(presented.encode("latin-1"), token.encode("utf-8"))


class AdminTokenMiddleware(BaseHTTPMiddleware):
    """
    Rejects every /admin/api request without the exact Authorization
    token before routing, so neither the body nor the store is touched.
    """

    def __init__(self, app: ASGIApp, token: str) -> None:
        super().__init__(app)
        self.token = token

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # Same decoded path the router matches on.
        path = request.scope["path"]
        if path == ADMIN_API_PREFIX or path.startswith(ADMIN_API_PREFIX + "/"):
            if not token_matches(request.headers.get("authorization"), self.token):
                logger.info("unauthorized admin request: %s %s", request.method, path)
                return error_envelope("unauthorized", "UNAUTHORIZED: missing or invalid admin token", 401)
        return await call_next(request)


router = APIRouter(prefix=ADMIN_API_PREFIX)


@router.get("/urls", response_model=list[UrlOut])
async def list_urls(store: MappingStore = Depends(get_store)) -> list[UrlOut]:
    rows = await store.list_all()
    return [UrlOut.model_validate(row) for row in rows]


@router.post("/urls", response_model=UrlOut)
async def create_url(payload: UrlFields, store: MappingStore = Depends(get_store)) -> UrlOut:
    row = await store.insert(payload)
    logger.info("created url %d for path %s", row.id, row.path)
    return UrlOut.model_validate(row)


@router.put("/urls/{url_id}")
async def update_url(url_id: int, payload: UrlFields, store: MappingStore = Depends(get_store)) -> None:
    await store.update(url_id, payload)
    logger.info("updated url %d", url_id)


@router.delete("/urls/{url_id}")
async def delete_url(url_id: int, store: MappingStore = Depends(get_store)) -> None:
    await store.delete(url_id)
    logger.info("deleted url %d", url_id)
