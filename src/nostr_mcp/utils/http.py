"""HTTP helpers for NIP-05 and LNURL lookups.

Well-known endpoints are third-party servers, so every JSON body is read
under a size cap before it is parsed.

See Also:
    [resolve_nip05()][nostr_mcp.nips.nip05.resolve_nip05]: NIP-05 lookup.
    [fetch_pay_info()][nostr_mcp.nips.nip57.fetch_pay_info]: LNURL-pay lookup.
"""

from __future__ import annotations

import json
from typing import Any

import aiohttp


DEFAULT_MAX_JSON_SIZE = 64 * 1024
_CHUNK_SIZE = 8 * 1024


async def read_bounded_json(response: aiohttp.ClientResponse, max_size: int) -> Any:
    """Decode the JSON body of *response*, refusing bodies over *max_size* bytes.

    A declared ``Content-Length`` above the cap fails before anything is
    read; otherwise the body is streamed and the cap checked per chunk.

    Raises:
        ValueError: If the body is larger than *max_size*.
        json.JSONDecodeError: If the body is not valid JSON.
    """
    declared = response.content_length
    if declared is not None and declared > max_size:
        raise ValueError(f"Response body too large: {declared} > {max_size} bytes")

    body = bytearray()
    async for chunk in response.content.iter_chunked(_CHUNK_SIZE):
        body += chunk
        if len(body) > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
    return json.loads(body)


async def fetch_json(
    url: str,
    *,
    params: dict[str, str] | None = None,
    timeout: float = 10.0,  # noqa: ASYNC109
    max_size: int = DEFAULT_MAX_JSON_SIZE,
) -> Any:
    """GET *url* and return its decoded JSON body.

    Args:
        url: Absolute HTTPS URL.
        params: Optional query parameters.
        timeout: Total request timeout in seconds.
        max_size: Maximum accepted body size in bytes.

    Raises:
        aiohttp.ClientError: On connection failure or non-2xx status.
        TimeoutError: If the request exceeds *timeout*.
        ValueError: If the body is too large or not valid JSON.
    """
    async with (
        aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session,
        session.get(url, params=params) as response,
    ):
        response.raise_for_status()
        return await read_bounded_json(response, max_size)
