import asyncio
import json
import logging
from typing import Optional

from pulse_cli.client import HttpClient
from pulse_cli.credential_store import CredentialStore
from pulse_cli.outcomes import RefreshOutcome

logger = logging.getLogger(__name__)

TOKEN_PATH = "/auth/v1/token?grant_type=refresh_token"


class TokenRefresher:
    """
    Exchanges the stored refresh token for a new token pair.

    At most one exchange runs at a time: callers arriving while one is in
    flight await that same task instead of issuing a second request.
    """

    def __init__(self, store: CredentialStore, http: HttpClient):
        self.store = store
        self.http = http
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def is_refreshing(self) -> bool:
        return self._in_flight is not None

    async def refresh(self) -> RefreshOutcome:
        if self._in_flight is None:
            self._in_flight = asyncio.ensure_future(self._run())
        else:
            logger.debug("Refresh already in flight, joining it")
        # shield so one cancelled waiter does not cancel the exchange for the others
        return await asyncio.shield(self._in_flight)

    async def _run(self) -> RefreshOutcome:
        try:
            return await self._exchange()
        finally:
            self._in_flight = None

    async def _exchange(self) -> RefreshOutcome:
        creds = self.store.credentials
        if not creds.can_refresh:
            logger.warning("Cannot refresh: no refresh token stored")
            return RefreshOutcome.missing_credentials()

        logger.info("Refreshing access token")
        result = await self.http.apost_json(
            f"{creds.endpoint}{TOKEN_PATH}",
            {"refresh_token": creds.refresh_token},
            {"apikey": creds.api_key, "Content-Type": "application/json"},
        )

        if result.status_code is None:
            return RefreshOutcome.network_error(result.error or "Request failed")
        if not result.ok:
            logger.warning("Token refresh rejected with %s", result.status_code)
            return RefreshOutcome.rejected(result.status_code, result.text or None)

        try:
            body = json.loads(result.text)
        except ValueError:
            return RefreshOutcome.malformed("Token response is not valid JSON")
        if not isinstance(body, dict) or not body.get("access_token"):
            return RefreshOutcome.malformed("Token response has no access_token")

        self.store.update_tokens(body["access_token"], body.get("refresh_token") or None)
        return RefreshOutcome.refreshed()
