from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import Request
from fastapi.responses import Response

from app.crawler import CrawlerDetector, is_preview_crawler
from app.errors import client_input
from app.store import MappingStore
from app.tasks import DetachedTasks
from app.ui import preview_page

logger = logging.getLogger(__name__)


def request_path(request: Request) -> str:
    """
    The path exactly as the client sent it, still percent-encoded and
    without the query string. Mappings are stored in this form.
    """
    raw = request.scope.get("raw_path")
    if raw is None:
        return request.scope["path"]
    return raw.split(b"?", 1)[0].decode("latin-1")


def redirect(url: str) -> Response:
    # Location carries the stored value untouched; header values must be
    # latin-1, so only non-ASCII URLs get percent-encoded.
    if not url.isascii():
        url = quote(url, safe=":/%#?=@[]!$&'()*+,;")
    return Response(status_code=307, headers={"location": url})


class RedirectEngine:
    """
    Resolves a request path to a response:

      - no mapping         -> 307 to the fallback URL, whoever asks
      - preview crawler    -> 200 preview page, not counted
      - anybody else       -> 307 to the mapping's redirect, counted
                              by a detached task
    """

    def __init__(
        self,
        store: MappingStore,
        tasks: DetachedTasks,
        fallback_url: str,
        is_crawler: CrawlerDetector = is_preview_crawler,
    ) -> None:
        self.store = store
        self.tasks = tasks
        self.fallback_url = fallback_url
        self.is_crawler = is_crawler

    async def handle(self, path: str, user_agent: str | None) -> Response:
        if user_agent is None:
            raise client_input("missing UA")
        logger.debug("request path=%s ua=%s", path, user_agent)

        url = await self.store.lookup_by_path(path)
        if url is None:
            logger.info("no mapping for %s, redirecting to fallback", path)
            return redirect(self.fallback_url)

        if self.is_crawler(user_agent):
            logger.debug("preview crawler detected for %s, serving html", path)
            return preview_page(url)

        logger.info("redirecting %s to %s", path, url.redirect)
        self.tasks.spawn(self.store.increment_hits(url.id), name=f"incr-hits-{url.id}")
        return redirect(url.redirect)


def get_redirect_engine(request: Request) -> RedirectEngine:
    return request.app.state.redirect_engine
