import asyncio
import logging
from typing import Optional

from pulse_cli.client import HttpClient
from pulse_cli.credential_store import CredentialStore
from pulse_cli.outcomes import Outcome
from pulse_cli.refresher import TokenRefresher
from pulse_cli.submission import SubmissionController
from pulse_cli.timer import AutoSubmitTimer, TimerState
from pulse_cli.utils import Config, join_voice_text

logger = logging.getLogger(__name__)


class QuickAddListener:
    """UI binding for a quick-add session. Override what you need."""

    def on_auto_submit_tick(self, remaining_seconds: int):
        pass

    def on_auto_submit_fired(self):
        pass

    def on_auto_submit_cancelled(self):
        pass

    def on_trigger_changed(self, enabled: bool):
        pass

    def on_text_changed(self, text: str):
        pass

    def on_outcome(self, outcome: Outcome):
        pass


class QuickAddSession:
    """
    One quick-add screen: the text being composed, the submit trigger and
    the auto-submit countdown, wired to a SubmissionController.
    """

    def __init__(
        self,
        cfg: Config,
        store: CredentialStore,
        http: HttpClient,
        listener: Optional[QuickAddListener] = None,
        refresher: Optional[TokenRefresher] = None,
    ):
        self.cfg = cfg
        self.listener = listener or QuickAddListener()
        self.text = ""
        self.trigger_enabled = True
        self._closed = False
        self._pending: Optional[asyncio.Task] = None

        self.timer = AutoSubmitTimer(
            on_tick=self._on_tick,
            on_fired=self._on_fired,
            on_cancelled=self._on_cancelled,
        )
        self.controller = SubmissionController(
            store,
            http,
            refresher or TokenRefresher(store, http),
            timer=self.timer,
            on_trigger_changed=self._on_trigger_changed,
            on_input_cleared=self._on_input_cleared,
        )

    # ----- user input -----
    def set_text(self, text: str):
        """A user edit; stops a running countdown."""
        self.timer.cancel()
        self._replace_text(text)

    def append_voice_text(self, spoken: str, auto_submit: bool = True):
        self._replace_text(join_voice_text(self.text, spoken))
        if auto_submit:
            self.arm_auto_submit()

    def arm_auto_submit(self, delay: Optional[float] = None):
        # a submission the previous countdown started keeps its reference until it completes
        if self._pending is not None and self._pending.done():
            self._pending = None
        self.timer.arm(self.cfg.auto_submit_delay if delay is None else delay, self.cfg.tick_interval)

    async def submit(self) -> Outcome:
        """Manual trigger."""
        if not self.trigger_enabled or self.controller.in_flight:
            return Outcome.ignored()
        self.timer.cancel()
        return await self._submit_current()

    async def wait_auto_submit(self) -> Optional[Outcome]:
        """Wait for the countdown; the outcome of the submission it fired, None if cancelled."""
        state = await self.timer.wait()
        if state is not TimerState.FIRED or self._pending is None:
            return None
        return await self._pending

    def close(self):
        self._closed = True
        self.timer.cancel()
        self.controller.detach()

    # ----- internals -----
    async def _submit_current(self) -> Outcome:
        outcome = await self.controller.submit(self.text)
        if not self._closed:
            self.listener.on_outcome(outcome)
        return outcome

    def _replace_text(self, text: str):
        self.text = text
        if not self._closed:
            self.listener.on_text_changed(text)

    def _on_tick(self, remaining: int):
        if not self._closed:
            self.listener.on_auto_submit_tick(remaining)

    def _on_fired(self):
        if self._closed:
            return
        self.listener.on_auto_submit_fired()
        self._pending = asyncio.ensure_future(self._submit_current())
        self._pending.add_done_callback(_log_failure)

    def _on_cancelled(self):
        if not self._closed:
            self.listener.on_auto_submit_cancelled()

    def _on_trigger_changed(self, enabled: bool):
        self.trigger_enabled = enabled
        if not self._closed:
            self.listener.on_trigger_changed(enabled)

    def _on_input_cleared(self):
        self._replace_text("")


def _log_failure(task: asyncio.Task):
    if not task.cancelled() and task.exception() is not None:
        logger.error("Auto-submission failed", exc_info=task.exception())
