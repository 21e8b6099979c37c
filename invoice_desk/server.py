"""HTTP server entrypoints for the invoice API and PDF export."""

from __future__ import annotations

import atexit
import errno
import json
import logging
import multiprocessing as mp
import threading
from concurrent.futures import ProcessPoolExecutor, TimeoutError as FutureTimeoutError
from concurrent.futures.process import BrokenProcessPool
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qs, quote, urlsplit

from .api import ApiError, InvoiceService, parse_json_body
from .config import (
    CORS_ORIGIN,
    DB_PATH,
    LISTEN_BACKLOG,
    MAX_BODY_BYTES as MAX_BODY_BYTES_CONFIG,
    MAX_CONCURRENT_RENDERS,
    MAX_INFLIGHT_RENDERS,
    MAX_PAGES as MAX_PAGES_CONFIG,
    RENDER_QUEUE_TIMEOUT_MS,
    RENDER_TIMEOUT_MS,
)
from .formatting import invoice_filename
from .pagination import estimate_page_count, max_items_for_pages
from .storage import InvoiceStore

logger = logging.getLogger(__name__)

API_PATHS = ("/api", "/.netlify/functions/api")
RENDER_PATHS = ("/render", "/invoice", "/generate")
HEALTH_PATHS = ("/health", "/healthz", "/ready")

RENDER_INFLIGHT_SEMAPHORE = threading.BoundedSemaphore(MAX_INFLIGHT_RENDERS)
RENDER_EXECUTOR_LOCK = threading.Lock()
RENDER_EXECUTOR: Optional[ProcessPoolExecutor] = None

DISCONNECT_ERRNOS = {errno.EPIPE, errno.ECONNRESET, errno.ETIMEDOUT}


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name and the UTF-8 name in ``filename*``."""
    fallback = filename.encode("ascii", "replace").decode("ascii")
    fallback = fallback.replace("\\", "_").replace('"', "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


class DependencyError(RuntimeError):
    """Raised when a required runtime dependency is missing."""


def is_client_disconnect(exc: BaseException) -> bool:
    if isinstance(exc, (BrokenPipeError, ConnectionResetError, TimeoutError)):
        return True
    return isinstance(exc, OSError) and exc.errno in DISCONNECT_ERRNOS


def load_render_payload():
    try:
        from .rendering import render_invoice_payload
    except ModuleNotFoundError as exc:
        if exc.name == "fpdf":
            raise DependencyError(
                "Missing dependency 'fpdf2'. Install the project with 'pip install .'."
            ) from exc
        raise
    return render_invoice_payload


def create_render_executor() -> ProcessPoolExecutor:
    return ProcessPoolExecutor(
        max_workers=MAX_CONCURRENT_RENDERS,
        mp_context=mp.get_context("spawn"),
    )


def get_render_executor() -> ProcessPoolExecutor:
    global RENDER_EXECUTOR
    with RENDER_EXECUTOR_LOCK:
        if RENDER_EXECUTOR is None:
            RENDER_EXECUTOR = create_render_executor()
        return RENDER_EXECUTOR


def restart_render_executor(previous: ProcessPoolExecutor) -> ProcessPoolExecutor:
    global RENDER_EXECUTOR
    with RENDER_EXECUTOR_LOCK:
        if RENDER_EXECUTOR is previous:
            try:
                previous.shutdown(wait=False, cancel_futures=True)
            except Exception:
                logger.warning("Render pool shutdown failed", exc_info=True)
            RENDER_EXECUTOR = create_render_executor()
        if RENDER_EXECUTOR is None:
            RENDER_EXECUTOR = create_render_executor()
        return RENDER_EXECUTOR


def submit_render_job(payload: Dict[str, Any]):
    render_invoice_payload = load_render_payload()
    executor = get_render_executor()
    try:
        return executor.submit(render_invoice_payload, payload)
    except BrokenProcessPool:
        logger.warning("Render pool broken; restarting")
        return restart_render_executor(executor).submit(render_invoice_payload, payload)


def shutdown_render_executor() -> None:
    global RENDER_EXECUTOR
    with RENDER_EXECUTOR_LOCK:
        executor = RENDER_EXECUTOR
        RENDER_EXECUTOR = None
    if executor is not None:
        executor.shutdown(wait=False, cancel_futures=True)


atexit.register(shutdown_render_executor)


def validate_render_payload(payload: Dict[str, Any], max_pages: int) -> Dict[str, Any]:
    """Check the shape of a ``{"company", "invoice", "total"}`` render request."""
    invoice = payload.get("invoice")
    if not isinstance(invoice, dict):
        raise ApiError(400, "'invoice' must be an object.")
    company = payload.get("company")
    if company is not None and not isinstance(company, dict):
        raise ApiError(400, "'company' must be an object.")

    items = invoice.get("items", [])
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ApiError(400, "'items' must be an array.")

    estimated_pages = estimate_page_count(len(items))
    if estimated_pages > max_pages:
        raise ApiError(
            413,
            f"Invoice would render at least {estimated_pages} pages; maximum is {max_pages} "
            f"({max_items_for_pages(max_pages)} items).",
        )
    return payload


class InvoiceHandler(BaseHTTPRequestHandler):
    MAX_BODY_BYTES = MAX_BODY_BYTES_CONFIG
    MAX_PAGES = MAX_PAGES_CONFIG
    service: InvoiceService

    def _write_response(
        self,
        status: int,
        content_type: str,
        body: bytes,
        headers: Optional[Dict[str, str]] = None,
    ) -> bool:
        try:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.send_header("Access-Control-Allow-Origin", CORS_ORIGIN)
            for name, value in (headers or {}).items():
                self.send_header(name, value)
            self.end_headers()
            self.wfile.write(body)
            return True
        except Exception as exc:
            if is_client_disconnect(exc):
                return False
            raise

    def _send_json(self, status: int, payload: Any) -> bool:
        body = json.dumps(payload, default=str).encode("utf-8")
        return self._write_response(status, "application/json", body)

    def _send_pdf(self, pdf_bytes: bytes, filename: str) -> bool:
        return self._write_response(
            200,
            "application/pdf",
            pdf_bytes,
            {"Content-Disposition": content_disposition(filename)},
        )

    def _route(self) -> Tuple[str, Dict[str, str]]:
        parts = urlsplit(self.path)
        params = {key: values[-1] for key, values in parse_qs(parts.query).items()}
        return parts.path.rstrip("/") or "/", params

    def _read_body(self) -> Optional[bytes]:
        header = self.headers.get("Content-Length")
        if header is None:
            self._send_json(411, {"error": "Content-Length header is required."})
            return None

        try:
            content_length = int(header)
        except ValueError:
            self._send_json(400, {"error": "Content-Length must be an integer."})
            return None

        if content_length <= 0:
            self._send_json(400, {"error": "Request body cannot be empty."})
            return None

        if content_length > self.MAX_BODY_BYTES:
            self._send_json(413, {"error": f"Body exceeds {self.MAX_BODY_BYTES} bytes."})
            return None

        try:
            return self.rfile.read(content_length)
        except Exception as exc:
            if is_client_disconnect(exc):
                return None
            raise

    def _render(self, payload: Dict[str, Any]) -> None:
        acquired = RENDER_INFLIGHT_SEMAPHORE.acquire(timeout=RENDER_QUEUE_TIMEOUT_MS / 1000.0)
        if not acquired:
            self._send_json(503, {"error": "Render queue is full; retry shortly."})
            return

        future = None
        try:
            future = submit_render_job(payload)
            pdf_bytes = future.result(timeout=RENDER_TIMEOUT_MS / 1000.0)
        except FutureTimeoutError:
            if future is not None:
                future.cancel()
            self._send_json(504, {"error": f"Render exceeded timeout of {RENDER_TIMEOUT_MS} ms."})
            return
        except BrokenProcessPool:
            restart_render_executor(get_render_executor())
            self._send_json(503, {"error": "Render worker pool restarted; retry shortly."})
            return
        except Exception as exc:
            logger.exception("Invoice render failed")
            self._send_json(500, {"error": str(exc)})
            return
        finally:
            RENDER_INFLIGHT_SEMAPHORE.release()

        number = (payload.get("invoice") or {}).get("number", "")
        self._send_pdf(pdf_bytes, invoice_filename(number))

    def _dispatch_api(self, method: str, params: Dict[str, str], body: Optional[bytes]) -> None:
        action = params.get("action")
        try:
            if method == "GET" and action == "pdf":
                self._render(self.service.pdf_payload(params))
                return
            status, payload = self.service.dispatch(method, action, params, body)
        except ApiError as exc:
            self._send_json(exc.status, exc.payload())
            return
        except Exception as exc:
            logger.exception("API error on %s %s", method, action)
            self._send_json(500, {"error": str(exc)})
            return
        self._send_json(status, payload)

    def do_GET(self) -> None:
        path, params = self._route()
        if path in API_PATHS:
            self._dispatch_api("GET", params, None)
            return
        if path in HEALTH_PATHS or path == "/":
            self._send_json(200, {"status": "ok"})
            return
        self._send_json(404, {"error": "Unsupported endpoint."})

    def do_POST(self) -> None:
        path, params = self._route()
        if path not in API_PATHS and path not in RENDER_PATHS:
            self._send_json(404, {"error": "Unsupported endpoint."})
            return

        body = self._read_body()
        if body is None:
            return

        if path in API_PATHS:
            self._dispatch_api("POST", params, body)
            return

        try:
            payload = validate_render_payload(parse_json_body(body), self.MAX_PAGES)
        except ApiError as exc:
            self._send_json(exc.status, exc.payload())
            return
        self._render(payload)

    def do_DELETE(self) -> None:
        path, params = self._route()
        if path not in API_PATHS:
            self._send_json(404, {"error": "Unsupported endpoint."})
            return
        self._dispatch_api("DELETE", params, None)

    def do_PUT(self) -> None:
        self._send_json(405, {"error": "Method not allowed"})

    do_PATCH = do_PUT

    def do_OPTIONS(self) -> None:
        self._write_response(
            204,
            "text/plain",
            b"",
            {
                "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type",
            },
        )

    def handle_one_request(self) -> None:
        try:
            super().handle_one_request()
        except Exception as exc:
            if is_client_disconnect(exc):
                return
            raise

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class InvoiceHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True
    request_queue_size = LISTEN_BACKLOG


def make_handler(service: InvoiceService) -> type:
    return type("BoundInvoiceHandler", (InvoiceHandler,), {"service": service})


def run(host: str = "0.0.0.0", port: int = 8080, db_path: str = DB_PATH) -> None:
    load_render_payload()
    store = InvoiceStore(db_path)
    store.setup()
    get_render_executor()
    server = InvoiceHTTPServer((host, port), make_handler(InvoiceService(store)))
    logger.info("Invoice API server listening on http://%s:%d (database: %s)", host, port, db_path)
    server.serve_forever()
