"""
server.py — HTTP front end for a WikiStore.

Routes:
    GET /wiki/<title>           raw wikitext (text/plain), 404 if unknown
    GET /suggest?q=<prefix>     JSON list of matching titles
    anything else               static files from the configured directory

One thread per request (ThreadingHTTPServer). A failed extraction answers
that request with 500 and leaves the server running.
"""

import functools
import logging
from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, unquote, urlsplit

import orjson

from tinywiki.config import Settings
from tinywiki.errors import ArticleNotFoundError, ExtractionError
from tinywiki.store import WikiStore


logger = logging.getLogger(__name__)

WIKI_PREFIX = "/wiki/"
SUGGEST_PATH = "/suggest"
MAX_SUGGEST_LIMIT = 100


class WikiRequestHandler(SimpleHTTPRequestHandler):
    server_version = "tinywiki/0.1"

    def __init__(self, *args, store: WikiStore, suggest_limit: int = 10, directory=None, **kwargs):
        # Attributes must exist before the base class handles the request
        self.store = store
        self.suggest_limit = suggest_limit
        super().__init__(*args, directory=directory, **kwargs)

    def do_GET(self):
        parsed = urlsplit(self.path)

        if parsed.path.startswith(WIKI_PREFIX):
            return self._serve_article(unquote(parsed.path[len(WIKI_PREFIX):]))
        if parsed.path == SUGGEST_PATH:
            return self._serve_suggestions(parse_qs(parsed.query))
        return super().do_GET()

    def _serve_article(self, title: str):
        try:
            text = self.store.article(title)
        except ArticleNotFoundError as e:
            logger.info(f"Not found: {e}")
            return self.send_error(HTTPStatus.NOT_FOUND, explain=f"No article for {title}")
        except ExtractionError as e:
            logger.error(f"Extraction failed for {title!r}: {e}")
            return self.send_error(HTTPStatus.INTERNAL_SERVER_ERROR, explain="The article could not be extracted")

        self._send_body(HTTPStatus.OK, text.encode("utf-8"), "text/plain; charset=utf-8")

    def _serve_suggestions(self, params):
        prefix = params.get("q", [None])[0]
        if not prefix:
            return self.send_error(HTTPStatus.BAD_REQUEST, explain="missing ?q= parameter")
        if not self.store.table.has_suggestions:
            return self.send_error(HTTPStatus.NOT_FOUND, explain="title suggestions are disabled")

        try:
            limit = int(params.get("limit", [self.suggest_limit])[0])
        except ValueError:
            limit = self.suggest_limit
        limit = max(1, min(limit, MAX_SUGGEST_LIMIT))

        titles = self.store.suggest(prefix, limit)
        self._send_body(HTTPStatus.OK, orjson.dumps(titles), "application/json")

    def _send_body(self, status: HTTPStatus, body: bytes, content_type: str):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        logger.info(f"{self.address_string()} - {format % args}")


def make_server(store: WikiStore, settings: Settings) -> ThreadingHTTPServer:
    """Bind a threading HTTP server for `store` to settings.host:settings.port."""
    handler = functools.partial(
        WikiRequestHandler,
        store=store,
        suggest_limit=settings.suggest_limit,
        directory=str(settings.static_dir),
    )
    return ThreadingHTTPServer((settings.host, settings.port), handler)


def serve(store: WikiStore, settings: Settings):
    """Serve until interrupted."""
    with make_server(store, settings) as server:
        host, port = server.server_address[:2]
        logger.info(f"Serving on http://{host or 'localhost'}:{port}/ (static files from {settings.static_dir})")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")
