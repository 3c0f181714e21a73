"""
Client for the local TDX agent (tappd).

tappd listens on a unix domain socket and speaks JSON over HTTP POST:
- /prpc/Tappd.DeriveKey?json   {}                                   -> {key, certificate_chain}
- /prpc/Tappd.TdxQuote?json    {report_data, hash_algorithm: "raw"} -> {quote, event_log}
- /prpc/Tappd.Info?json        {}                                   -> instance info

Every call opens its own connection, is bounded by an explicit timeout and is never retried.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .errors import AttestationError
from .models import AttestationQuote, DerivedKey

logger = logging.getLogger("tlsn_verifier.tappd")

DERIVE_KEY_PATH = "/prpc/Tappd.DeriveKey?json"
TDX_QUOTE_PATH = "/prpc/Tappd.TdxQuote?json"
INFO_PATH = "/prpc/Tappd.Info?json"

# host part is ignored when talking over the socket
SOCKET_BASE_URL = "http://localhost"


class AttestationClient:
    def __init__(
        self,
        socket_path: Optional[str] = "/var/run/tappd.sock",
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._socket_path = socket_path
        self._base_url = (base_url or SOCKET_BASE_URL).rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        if self._transport is None and self._base_url == SOCKET_BASE_URL and self._socket_path:
            return f"unix:{self._socket_path}"
        return self._base_url

    def _client(self) -> httpx.AsyncClient:
        transport = self._transport
        if transport is None and self._base_url == SOCKET_BASE_URL and self._socket_path:
            transport = httpx.AsyncHTTPTransport(uds=self._socket_path)
        return httpx.AsyncClient(base_url=self._base_url, transport=transport, timeout=self._timeout)

    async def _post(self, path: str, body: Dict[str, Any]) -> Any:
        try:
            async with self._client() as client:
                res = await client.post(path, json=body)
        except httpx.TimeoutException as e:
            raise AttestationError(
                f"tappd request {path} timed out after {self._timeout}s", reason=AttestationError.UNREACHABLE
            ) from e
        except httpx.TransportError as e:
            raise AttestationError(
                f"tappd unreachable at {self.endpoint}: {e}", reason=AttestationError.UNREACHABLE
            ) from e

        if not res.is_success:
            raise AttestationError(
                f"tappd returned {res.status_code} for {path}: {res.text.strip()[:512]}",
                reason=AttestationError.SERVICE_ERROR,
                status_code=res.status_code,
            )
        try:
            return res.json()
        except ValueError as e:
            raise AttestationError(
                f"tappd returned a non-JSON body for {path}: {e}", reason=AttestationError.MALFORMED_RESPONSE
            ) from e

    async def derive_key(self) -> DerivedKey:
        data = await self._post(DERIVE_KEY_PATH, {})
        try:
            derived = DerivedKey.model_validate(data)
        except ValidationError as e:
            # never echo the body: it carries the private key
            raise AttestationError(
                f"malformed DeriveKey response ({e.error_count()} validation errors)",
                reason=AttestationError.MALFORMED_RESPONSE,
            ) from None
        logger.info({"event": "key_derived", "certificates": len(derived.certificate_chain)})
        return derived

    async def generate_quote(self, report_data: str) -> AttestationQuote:
        data = await self._post(TDX_QUOTE_PATH, {"report_data": report_data, "hash_algorithm": "raw"})
        try:
            quote = AttestationQuote.model_validate(data)
        except ValidationError as e:
            raise AttestationError(
                f"malformed TdxQuote response: {e}", reason=AttestationError.MALFORMED_RESPONSE
            ) from e
        logger.info({"event": "quote_generated", "report_data": report_data, "quote_len": len(quote.quote_hex)})
        return quote

    async def info(self) -> Dict[str, Any]:
        data = await self._post(INFO_PATH, {})
        if not isinstance(data, dict):
            raise AttestationError("malformed Info response", reason=AttestationError.MALFORMED_RESPONSE)
        return data

    async def is_reachable(self) -> bool:
        try:
            await self.info()
        except AttestationError as e:
            logger.warning({"event": "tappd_unreachable", "reason": e.reason, "error": e.message})
            return False
        return True
