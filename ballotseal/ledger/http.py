"""
BALLOTSEAL — HTTP Ledger Client.

Talks to a remote ledger gateway over HTTP:

    POST /v1/commitments           {"election_id", "voter_tag", "ballot_tag"}
    POST /v1/closures              {"election_id", "root", "results_digest"}
    GET  /v1/closures/{election}   -> {"root": ...} | 404

Timeouts, transport failures and HTTP errors all surface as ``LedgerError``.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from ballotseal.exceptions import LedgerError
from ballotseal.ledger.base import LedgerClient
from ballotseal.result import Err, Ok, Result

logger = logging.getLogger("ballotseal.ledger.http")


class HttpLedgerClient(LedgerClient):
    """Async client for a ledger gateway.

    Args:
        base_url: Gateway URL.
        api_key: Optional bearer token.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key or ""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=self._headers(),
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        h = {"Content-Type": "application/json"}
        if self.api_key:
            h["Authorization"] = f"Bearer {self.api_key}"
        return h

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise LedgerError(f"Ledger timed out on {method} {path}") from e
        except httpx.HTTPError as e:
            raise LedgerError(f"Ledger unreachable: {e}") from e
        return resp

    @staticmethod
    def _detail(resp: httpx.Response) -> str:
        if resp.headers.get("content-type", "").startswith("application/json"):
            try:
                return str(resp.json().get("detail", resp.text))
            except ValueError:
                return resp.text
        return resp.text

    async def _submit(
        self,
        path: str,
        body: dict[str, str],
        on_conflict: Optional[Callable[[], Awaitable[Result[None]]]] = None,
    ) -> Result[None]:
        try:
            resp = await self._request("POST", path, json=body)
        except LedgerError as e:
            logger.error("Ledger submit to %s failed: %s", path, e)
            return Err(e)
        if resp.status_code == 409 and on_conflict is not None:
            return await on_conflict()
        if resp.status_code >= 400:
            detail = self._detail(resp)
            logger.error("Ledger rejected %s (%d): %s", path, resp.status_code, detail)
            return Err(LedgerError(f"Ledger error {resp.status_code}: {detail}"))
        return Ok(None)

    async def submit_vote_commitment(
        self, election_id: str, voter_tag: str, ballot_tag: str
    ) -> Result[None]:
        return await self._submit(
            "/v1/commitments",
            {"election_id": election_id, "voter_tag": voter_tag, "ballot_tag": ballot_tag},
        )

    async def submit_closure(
        self, election_id: str, root: str, results_digest: str
    ) -> Result[None]:
        async def same_closure() -> Result[None]:
            # Gateway already holds a closure: fine if it is this one
            try:
                committed = await self.query_committed_root(election_id)
            except LedgerError as e:
                return Err(e)
            if committed != root:
                return Err(LedgerError(
                    f"Election {election_id} already closed on ledger with a different root"
                ))
            logger.info("Closure for %s already anchored, accepting retry", election_id)
            return Ok(None)

        return await self._submit(
            "/v1/closures",
            {"election_id": election_id, "root": root, "results_digest": results_digest},
            on_conflict=same_closure,
        )

    async def query_committed_root(self, election_id: str) -> Optional[str]:
        resp = await self._request("GET", f"/v1/closures/{election_id}")
        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise LedgerError(f"Ledger error {resp.status_code}: {self._detail(resp)}")
        try:
            return resp.json().get("root")
        except ValueError as e:
            raise LedgerError("Ledger returned invalid JSON") from e

    async def close(self) -> None:
        await self._client.aclose()
