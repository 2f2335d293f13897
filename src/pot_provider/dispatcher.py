"""Outbound network dispatchers: direct or through a proxy."""

import os
from dataclasses import dataclass
from typing import Mapping
from urllib.parse import urlsplit

import httpx

from pot_provider.errors import ProxyConfigError
from pot_provider.logging import REDACTED, get_logger, redact_proxy_url

logger = get_logger("dispatcher")

# Checked in order when no proxy is passed explicitly
PROXY_ENV_VARS = ("HTTPS_PROXY", "HTTP_PROXY", "ALL_PROXY")

HTTP_SCHEMES = {"http", "https"}
SOCKS_SCHEMES = {"socks", "socks4", "socks4a", "socks5", "socks5h"}


@dataclass
class ProxyConfig:
    """A parsed proxy specification."""
    url: str
    scheme: str
    host: str
    port: int | None = None
    username: str | None = None
    password: str | None = None
    source_address: str | None = None
    verify_tls: bool = True

    @property
    def kind(self) -> str:
        """Scheme family: http, socks or other."""
        if self.scheme in HTTP_SCHEMES:
            return "http"
        if self.scheme in SOCKS_SCHEMES:
            return "socks"
        return "other"

    @property
    def redacted_url(self) -> str:
        return redact_proxy_url(self.url)


def _split_proxy_url(url: str):
    """Split a proxy URL, returning None unless it is well formed.

    A proxy URL needs a scheme and a host, a numeric port whenever a port
    separator is present, and no path, query or fragment.
    """
    if not url or any(c.isspace() for c in url):
        return None
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None

    if not parts.scheme or not parts.hostname:
        return None
    if parts.netloc.endswith(":"):
        return None
    if parts.path not in ("", "/") or parts.query or parts.fragment:
        return None
    return parts, port


def parse_proxy_url(
    proxy: str,
    source_address: str | None = None,
    verify_tls: bool = True,
) -> ProxyConfig:
    """Parse a proxy specification, assuming http:// when no scheme is given.

    Raises:
        ProxyConfigError: If the proxy is not a valid URL even with the prefix.
    """
    url = proxy.strip()
    split = _split_proxy_url(url)
    if split is None:
        url = f"http://{url}"
        split = _split_proxy_url(url)
    if split is None:
        raise ProxyConfigError(f"Invalid proxy URL: {redact_proxy_url(url)}")

    parts, port = split
    return ProxyConfig(
        url=url,
        scheme=parts.scheme.lower(),
        host=parts.hostname,
        port=port,
        username=parts.username,
        password=parts.password,
        source_address=source_address,
        verify_tls=verify_tls,
    )


def resolve_proxy(proxy: str | None, environ: Mapping[str, str] | None = None) -> str | None:
    """Return the explicit proxy, else the first proxy environment variable set."""
    if proxy:
        return proxy
    environ = os.environ if environ is None else environ
    for name in PROXY_ENV_VARS:
        value = environ.get(name)
        if value:
            return value
    return None


class Dispatcher:
    """A configured transport and the client that sends through it."""

    def __init__(self, transport: httpx.AsyncBaseTransport, proxy: ProxyConfig | None = None):
        self.transport = transport
        self.proxy = proxy
        self.client = httpx.AsyncClient(transport=transport)

    @property
    def is_direct(self) -> bool:
        return self.proxy is None

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "Dispatcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def build_dispatcher(
    proxy: str | None,
    source_address: str | None = None,
    disable_tls_verification: bool = False,
) -> Dispatcher | None:
    """Build a dispatcher for the given proxy spec.

    Returns None when the proxy cannot be used; the caller then continues
    without a dispatcher. Never raises for a bad proxy.
    """
    verify = not disable_tls_verification

    if not proxy:
        transport = httpx.AsyncHTTPTransport(local_address=source_address, verify=verify)
        return Dispatcher(transport)

    try:
        config = parse_proxy_url(proxy, source_address=source_address, verify_tls=verify)
    except ProxyConfigError as e:
        logger.warning("%s", e.message)
        return None

    if config.kind == "http":
        logger.info("Using HTTP/HTTPS proxy: %s", config.redacted_url)
    elif config.kind == "socks":
        logger.info("Using SOCKS proxy: %s", config.redacted_url)
    else:
        logger.info("Using proxy: %s", config.redacted_url)

    try:
        transport = httpx.AsyncHTTPTransport(
            proxy=config.url,
            local_address=source_address,
            verify=verify,
        )
    except Exception as e:
        reason = str(e)
        if config.password:
            reason = reason.replace(config.password, REDACTED)
        logger.warning("Failed to create proxy transport for %s: %s", config.redacted_url, reason)
        return None

    return Dispatcher(transport, proxy=config)
