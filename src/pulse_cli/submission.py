import logging
from typing import Callable, Optional

from pulse_cli.client import HttpClient
from pulse_cli.credential_store import CredentialStore
from pulse_cli.outcomes import Outcome
from pulse_cli.refresher import TokenRefresher
from pulse_cli.timer import AutoSubmitTimer
from pulse_cli.utils import Credentials, SubmissionRequest

logger = logging.getLogger(__name__)

TASKS_PATH = "/rest/v1/tasks"
AUTH_FAILURES = (401, 403)


class SubmissionController:
    """
    Posts one task to the backend.

    A 401/403 on the first attempt triggers one token refresh followed by
    one retry of the same request; anything after that is reported as is.
    """

    def __init__(
        self,
        store: CredentialStore,
        http: HttpClient,
        refresher: TokenRefresher,
        timer: Optional[AutoSubmitTimer] = None,
        on_trigger_changed: Optional[Callable[[bool], None]] = None,
        on_input_cleared: Optional[Callable[[], None]] = None,
    ):
        self.store = store
        self.http = http
        self.refresher = refresher
        self.timer = timer
        self.on_trigger_changed = on_trigger_changed
        self.on_input_cleared = on_input_cleared
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def detach(self):
        """Drop the UI hooks; completions arriving later become no-ops."""
        self.on_trigger_changed = None
        self.on_input_cleared = None

    async def submit(self, text: str, is_retry: bool = False) -> Outcome:
        if self._in_flight:
            logger.debug("Submission ignored, another one is in flight")
            return Outcome.ignored()

        title = (text or "").strip()
        if not title:
            return Outcome.empty_input()
        creds = self.store.credentials
        if not creds.can_submit:
            logger.warning("Cannot submit: credentials missing")
            return Outcome.missing_credentials()

        if self.timer is not None:
            self.timer.cancel()
        self._in_flight = True
        self._set_trigger(False)
        try:
            request = SubmissionRequest(title=title, user_id=creds.user_id)
            outcome = await self._dispatch(request, is_retry)
            if outcome.ok and self.on_input_cleared:
                self.on_input_cleared()
            return outcome
        finally:
            self._in_flight = False
            self._set_trigger(True)

    async def _dispatch(self, request: SubmissionRequest, is_retry: bool) -> Outcome:
        creds = self.store.credentials
        result = await self.http.apost_json(
            f"{creds.endpoint}{TASKS_PATH}", request.to_payload(), _headers(creds)
        )

        if result.status_code is None:
            return Outcome.network_error(result.error or "Request failed", retried=is_retry)
        if result.ok:
            logger.info("Task saved%s", " after token refresh" if is_retry else "")
            return Outcome.success(retried=is_retry)

        if result.status_code in AUTH_FAILURES:
            if is_retry or not creds.refresh_token:
                logger.warning("Access denied (%s)", result.status_code)
                return Outcome.access_denied(result.status_code, retried=is_retry)
            refresh = await self.refresher.refresh()
            if not refresh.ok:
                logger.warning("Token refresh failed: %s", refresh.kind.value)
                return Outcome.session_expired(refresh)
            # same payload, fresh bearer token
            return await self._dispatch(request, is_retry=True)

        logger.error("Error posting task: %s %s", result.status_code, result.text)
        return Outcome.server_error(result.status_code, result.text or None, retried=is_retry)

    def _set_trigger(self, enabled: bool):
        if self.on_trigger_changed:
            self.on_trigger_changed(enabled)


def _headers(creds: Credentials) -> dict:
    return {
        "apikey": creds.api_key,
        "Authorization": f"Bearer {creds.access_token}",
        "Content-Type": "application/json",
        "Prefer": "return=minimal",
    }
