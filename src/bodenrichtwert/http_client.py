from __future__ import annotations

import asyncio
import logging
import os
import random
from typing import Any, Dict, Mapping, Optional

import httpx

from .errors import NetworkTimeout, UpstreamError
from .settings import get_settings


RETRY_STATUS = {429, 500, 502, 503, 504}

logger = logging.getLogger("brw.http")


class RetryConfig:
    def __init__(self, retries=1, base_delay=0.2, factor=2.0, jitter=0.1):
        self.retries = retries
        self.base_delay = base_delay
        self.factor = factor
        self.jitter = jitter


def compute_backoff_delays(
    retries, base_delay=0.2, factor=2.0, jitter=0.1, rand_fn=None
):
    delays = []
    current = base_delay
    rand_fn = rand_fn or random.random
    for _ in range(retries):
        noise = (rand_fn() * 2 - 1) * jitter
        delays.append(max(0.0, current + noise))
        current *= factor
    return delays


class AsyncHttpClient:
    """Thin httpx wrapper shared by all adapters of one lookup process.

    Every call carries its own timeout. Responses come back as plain dicts with
    ``status``, ``text``, ``final_url``, ``content_type`` and ``truncated``.
    """

    def __init__(
        self,
        timeout=10,
        max_bytes=2_000_000,
        retry_config=None,
        user_agent=None,
        transport=None,
        sleep_fn=None,
    ):
        settings = get_settings()
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.retry_config = retry_config or RetryConfig(retries=settings.http_retries)
        self.user_agent = user_agent or settings.user_agent
        self._transport = transport
        self._sleep = sleep_fn or asyncio.sleep
        self._client = None

    async def _ensure_client(self):
        if self._client is not None:
            return self._client
        use_no_proxy = (
            os.environ.get("NO_PROXY_LOOKUP") == "1"
            or os.environ.get("CI") == "1"
        )
        kwargs: Dict[str, Any] = {
            "timeout": self.timeout,
            "follow_redirects": True,
            "trust_env": not use_no_proxy,
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        await self._ensure_client()
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    def _response_dict(self, response: httpx.Response) -> Dict[str, Any]:
        content = response.content
        truncated = len(content) > self.max_bytes
        if truncated:
            content = content[: self.max_bytes]
        encoding = response.encoding or "utf-8"
        return {
            "status": response.status_code,
            "text": content.decode(encoding, errors="replace"),
            "final_url": str(response.url),
            "content_type": response.headers.get("Content-Type", ""),
            "truncated": truncated,
        }

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        raise_for_status: bool = True,
    ) -> Dict[str, Any]:
        merged = {
            "User-Agent": self.user_agent,
            "Accept-Encoding": "gzip, deflate",
        }
        merged.update(headers or {})
        delays = compute_backoff_delays(
            self.retry_config.retries,
            self.retry_config.base_delay,
            self.retry_config.factor,
            self.retry_config.jitter,
        )
        attempts = len(delays) + 1
        client = await self._ensure_client()
        result = None
        for attempt in range(attempts):
            try:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    headers=merged,
                    timeout=timeout if timeout is not None else self.timeout,
                )
            except httpx.TimeoutException as exc:
                # a dead endpoint must not stall the enumeration twice
                raise NetworkTimeout(f"timeout for {url}") from exc
            except httpx.TransportError as exc:
                if attempt < len(delays):
                    await self._sleep(delays[attempt])
                    continue
                raise UpstreamError(f"transport error for {url}: {exc}") from exc
            result = self._response_dict(response)
            if result["status"] in RETRY_STATUS and attempt < len(delays):
                logger.debug("retrying %s after status %s", url, result["status"])
                await self._sleep(delays[attempt])
                continue
            break
        if raise_for_status and not 200 <= result["status"] < 300:
            raise UpstreamError(f"HTTP {result['status']} for {url}", status=result["status"])
        return result

    async def get(self, url, params=None, headers=None, timeout=None, raise_for_status=True):
        return await self.request(
            "GET",
            url,
            params=params,
            headers=headers,
            timeout=timeout,
            raise_for_status=raise_for_status,
        )

    async def head(self, url, headers=None, timeout=None):
        return await self.request(
            "HEAD", url, headers=headers, timeout=timeout, raise_for_status=False
        )
