"""
Authenticated HTTP client for the Vercel REST API
"""
from typing import Any, Optional
import httpx
from .. import config as _cfg
from ..errors import TransportError
from ..utils.logging import vlog
from ..utils.retry import retried


class ApiClient:
    """
    Wraps an httpx.Client carrying the bearer token.

    get_json() returns whatever JSON the server sent, including error
    envelopes on 4xx answers; only network failures and undecodable bodies
    raise TransportError. Pass *transport* to plug in a fake server.
    """

    def __init__(self, token: str, transport: Optional[httpx.BaseTransport] = None,
                 timeout: Optional[float] = None):
        self._client = httpx.Client(
            headers={
                "Authorization": f"Bearer {token}",
                "User-Agent": "vdsource",
            },
            timeout=timeout if timeout is not None else _cfg.REQUEST_TIMEOUT,
            follow_redirects=True,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self._client.close()

    # ── raw get ────────────────────────────────────────────────────────────

    def get_json(self, url: str, params: Optional[dict] = None) -> Any:
        """GET *url* and decode the JSON body."""
        vlog(f"  [GET] {url} {params or ''}")
        try:
            resp = self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise TransportError(f"GET {url} failed: {exc}") from exc
        try:
            return resp.json()
        except ValueError as exc:
            body = resp.text
            raise TransportError(
                f"Failed to parse JSON (HTTP {resp.status_code}): {body[:200]}",
                status=resp.status_code, body=body,
            ) from exc

    # ── metadata (setup phase) ─────────────────────────────────────────────

    @retried
    def get_metadata(self, url: str, params: Optional[dict] = None) -> Any:
        """Same as get_json(), retried with back-off on transport failures."""
        return self.get_json(url, params)
