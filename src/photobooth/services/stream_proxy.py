"""Range-aware pass-through of remote video files."""

import logging
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass

import httpx

_logger = logging.getLogger(__name__)

_ALLOWED_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
_PASSTHROUGH_HEADERS = ("content-length", "content-range", "accept-ranges")
DEFAULT_CONTENT_TYPE = "video/mp4"
CACHE_CONTROL = "public, max-age=3600"


class InvalidProxyRequestError(ValueError):
    """Raised for a missing or disallowed target URL."""


class UpstreamError(RuntimeError):
    """Raised when the upstream response cannot be relayed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def validate_target_url(url: str | None) -> str:
    """Return the URL if it is an absolute http(s) URL with a host."""
    if not url:
        raise InvalidProxyRequestError("Missing url param")
    if not _ALLOWED_SCHEME.match(url):
        raise InvalidProxyRequestError("Invalid protocol")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise InvalidProxyRequestError("Invalid url") from exc
    if not parsed.host:
        raise InvalidProxyRequestError("Invalid url")
    return url


@dataclass
class UpstreamStream:
    """An open upstream response ready to be relayed."""

    status_code: int
    headers: dict[str, str]
    response: httpx.Response

    async def iter_body(self) -> AsyncIterator[bytes]:
        """Yield upstream chunks as they arrive.

        Headers are already on the wire by the time this runs, so a broken
        upstream just ends the body.
        """
        try:
            async for chunk in self.response.aiter_raw():
                yield chunk
        except httpx.HTTPError:
            _logger.exception("Upstream stream failed mid-response")
        finally:
            await self.response.aclose()


@dataclass
class StreamProxy:
    """Opens upstream requests on behalf of the proxy endpoint."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(cls) -> "StreamProxy":
        """Create a proxy with a managed httpx session."""
        return cls(
            http_client=httpx.AsyncClient(
                follow_redirects=True,
                timeout=httpx.Timeout(60, connect=10),
            )
        )

    async def open(
        self, url: str | None, range_header: str | None = None
    ) -> UpstreamStream:
        """Send the upstream request and shape the response headers."""
        target = validate_target_url(url)
        _logger.info("Streaming %s (range=%s)", target, range_header)

        # Identity encoding keeps Content-Length and Content-Range byte-accurate.
        headers = {"Accept-Encoding": "identity"}
        if range_header:
            headers["Range"] = range_header
        request = self.http_client.build_request("GET", target, headers=headers)
        response = await self.http_client.send(request, stream=True)

        if not response.is_success:
            await response.aclose()
            if response.status_code == httpx.codes.REQUESTED_RANGE_NOT_SATISFIABLE:
                _logger.warning("Range not satisfiable for %s: %s", target, range_header)
            raise UpstreamError(
                f"Upstream Error: {response.status_code}",
                status_code=response.status_code,
            )
        if response.status_code == httpx.codes.NO_CONTENT:
            await response.aclose()
            raise UpstreamError("No response body", status_code=response.status_code)

        relayed = {
            "Content-Type": response.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
            "Cache-Control": CACHE_CONTROL,
        }
        for name in _PASSTHROUGH_HEADERS:
            value = response.headers.get(name)
            if value:
                relayed["-".join(part.capitalize() for part in name.split("-"))] = value
        return UpstreamStream(
            status_code=response.status_code, headers=relayed, response=response
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
