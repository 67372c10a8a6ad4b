"""X (Twitter) API v2 poster signed with OAuth 1.0a user context."""

import base64
import hashlib
import hmac
import logging
import secrets
import time
from collections.abc import Callable
from urllib.parse import quote

import httpx

from live_notify.errors import UpstreamFailure
from live_notify.http import retry_transient

logger = logging.getLogger(__name__)

X_API_URL = "https://api.twitter.com/2/tweets"


def rfc3986_encode(value: str) -> str:
    return quote(value, safe="")


def oauth_signature(
    method: str,
    url: str,
    params: dict[str, str],
    consumer_secret: str,
    token_secret: str,
) -> str:
    """Compute the HMAC-SHA1 OAuth 1.0a signature (base64)."""
    normalized = "&".join(
        f"{k}={v}"
        for k, v in sorted((rfc3986_encode(k), rfc3986_encode(v)) for k, v in params.items())
    )
    base_string = "&".join(
        (method.upper(), rfc3986_encode(url), rfc3986_encode(normalized))
    )
    signing_key = f"{rfc3986_encode(consumer_secret)}&{rfc3986_encode(token_secret)}"
    digest = hmac.new(
        signing_key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1
    ).digest()
    return base64.b64encode(digest).decode("ascii")


class XClient:
    """Posts text to X. JSON request bodies are not part of the OAuth signature."""

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        access_token: str,
        access_secret: str,
        *,
        url: str = X_API_URL,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
        nonce: Callable[[], str] = lambda: secrets.token_hex(16),
        timeout: float = 10.0,
    ) -> None:
        self._consumer_key = consumer_key
        self._consumer_secret = consumer_secret
        self._access_token = access_token
        self._access_secret = access_secret
        self._url = url
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._clock = clock
        self._nonce = nonce

    def authorization_header(self, method: str = "POST") -> str:
        params = {
            "oauth_consumer_key": self._consumer_key,
            "oauth_nonce": self._nonce(),
            "oauth_signature_method": "HMAC-SHA1",
            "oauth_timestamp": str(int(self._clock())),
            "oauth_token": self._access_token,
            "oauth_version": "1.0",
        }
        params["oauth_signature"] = oauth_signature(
            method, self._url, params, self._consumer_secret, self._access_secret
        )
        return "OAuth " + ", ".join(
            f'{rfc3986_encode(k)}="{rfc3986_encode(v)}"' for k, v in sorted(params.items())
        )

    @retry_transient
    async def _post(self, text: str) -> httpx.Response:
        # Fresh nonce and timestamp per attempt
        response = await self._http.post(
            self._url,
            headers={"Authorization": self.authorization_header("POST")},
            json={"text": text},
        )
        response.raise_for_status()
        return response

    async def post(self, text: str) -> None:
        """Publish a post. Raises UpstreamFailure on rejection."""
        try:
            await self._post(text)
        except httpx.HTTPStatusError as exc:
            raise UpstreamFailure(
                f"X API error {exc.response.status_code}: {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"X API request failed: {exc}") from exc
        logger.info("Posted to X")

    async def aclose(self) -> None:
        await self._http.aclose()
