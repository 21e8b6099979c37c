"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import os
from typing import Dict

from .pdf_constants import DEFAULT_CONDITIONS as TEMPLATE_CONDITIONS


def env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


def env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


HOST = env_str("INVOICE_HOST", "0.0.0.0")
PORT = env_int("INVOICE_PORT", 8080, minimum=1)
DB_PATH = env_str("INVOICE_DB_PATH", "invoices.db")
LOG_LEVEL = env_str("INVOICE_LOG_LEVEL", "INFO").upper()
CORS_ORIGIN = env_str("INVOICE_CORS_ORIGIN", "*")

DEFAULT_MAX_CONCURRENT_RENDERS = max(2, min(8, os.cpu_count() or 2))
MAX_CONCURRENT_RENDERS = env_int(
    "INVOICE_MAX_CONCURRENT_RENDERS",
    DEFAULT_MAX_CONCURRENT_RENDERS,
    minimum=1,
)
MAX_INFLIGHT_RENDERS = env_int(
    "INVOICE_MAX_INFLIGHT_RENDERS",
    max(16, MAX_CONCURRENT_RENDERS * 4),
    minimum=1,
)
RENDER_QUEUE_TIMEOUT_MS = env_int("INVOICE_RENDER_QUEUE_TIMEOUT_MS", 30000, minimum=0)
RENDER_TIMEOUT_MS = env_int("INVOICE_RENDER_TIMEOUT_MS", 60000, minimum=1000)

MAX_BODY_BYTES = env_int("INVOICE_MAX_BODY_BYTES", 8 * 1024 * 1024, minimum=1024)
MAX_PAGES = env_int("INVOICE_MAX_PAGES", 500, minimum=1)
LISTEN_BACKLOG = env_int("INVOICE_LISTEN_BACKLOG", 128, minimum=1)

# Suggested number when no invoice has been saved yet.
INVOICE_NUMBER_SEED = env_str("INVOICE_NUMBER_SEED", "INV-100")
DEFAULT_CONDITIONS = env_str("INVOICE_DEFAULT_CONDITIONS", TEMPLATE_CONDITIONS)


def default_company() -> Dict[str, str]:
    """Company inserted by ``setup`` when the store has none."""
    return {
        "name": env_str("INVOICE_COMPANY_NAME", "My Company"),
        "address": env_str("INVOICE_COMPANY_ADDRESS", "1 Main Street, City"),
        "email": env_str("INVOICE_COMPANY_EMAIL", "billing@example.com"),
        "ifu": env_str("INVOICE_COMPANY_IFU", ""),
        "vmcf": env_str("INVOICE_COMPANY_VMCF", ""),
        "paypal": env_str("INVOICE_COMPANY_PAYPAL", ""),
    }
