"""Outbound HTTPS sessions for the research clients.

Both the DataForSEO client and the competitor heading scraper open their
aiohttp sessions here, so certificate verification uses the certifi CA
bundle in every environment. Set DRAFTSMITH_SSL_SKIP_VERIFY=1 to turn
verification off behind an intercepting proxy.
"""

from __future__ import annotations

import os
import ssl
from typing import Any

import aiohttp
import certifi

SKIP_VERIFY_ENV = "DRAFTSMITH_SSL_SKIP_VERIFY"


def default_ssl_context() -> ssl.SSLContext:
    return ssl.create_default_context(cafile=certifi.where())


def verification_disabled() -> bool:
    return os.getenv(SKIP_VERIFY_ENV, "").lower() in ("1", "true", "yes")


def research_session(timeout_seconds: float, *, limit: int = 100, **kwargs: Any) -> aiohttp.ClientSession:
    """ClientSession with a certifi-backed connector and a total request timeout.

    Extra keyword arguments (auth, headers) pass straight to aiohttp.
    """
    ssl_option: ssl.SSLContext | bool = False if verification_disabled() else default_ssl_context()
    return aiohttp.ClientSession(
        connector=aiohttp.TCPConnector(ssl=ssl_option, limit=limit),
        timeout=aiohttp.ClientTimeout(total=timeout_seconds),
        **kwargs,
    )
