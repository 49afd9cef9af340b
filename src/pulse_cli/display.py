from typing import Optional
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

from pulse_cli.outcomes import Outcome, OutcomeKind, RefreshOutcome
from pulse_cli.session import QuickAddListener
from pulse_cli.utils import Credentials

# ========== UI Theme ==========
custom_theme = Theme({
    "ok":   "bold green",
    "warn": "bold yellow",
    "err":  "bold red",
    "info": "bold cyan",
})
console = Console(theme=custom_theme)

NEUTRAL_LABEL = "Send"

_TITLES = {
    OutcomeKind.EMPTY_INPUT: "Nothing to send.",
    OutcomeKind.MISSING_CREDENTIALS: "Credentials missing.",
    OutcomeKind.ACCESS_DENIED: "Access denied.",
    OutcomeKind.SESSION_EXPIRED: "Session expired.",
    OutcomeKind.SERVER_ERROR: "Send error.",
    OutcomeKind.NETWORK_ERROR: "Network error.",
    OutcomeKind.IGNORED: "Busy.",
}


def info_panel(title: str, msg: str, style: str = "cyan"):
    console.print(Panel.fit(Text(msg, no_wrap=False), title=title, border_style=style))


def warn_panel(title: str, msg: str):
    info_panel(title, msg, style="yellow")


def error_panel(title: str, msg: str):
    info_panel(title, msg, style="red")


def print_rule(title: Optional[str] = None):
    if title:
        console.rule(f"[info]{title}[/info]")
    else:
        console.rule()


def countdown_label(remaining_seconds: int) -> str:
    return f"Sending in {remaining_seconds}s..."


def show_outcome(outcome: Outcome, debug: bool = False):
    if outcome.ok:
        suffix = " (after token refresh)" if outcome.retried and debug else ""
        console.print(Text(text=f"Task saved !{suffix}"), style="ok")
        return

    title = _TITLES.get(outcome.kind, "Send error.")
    lines = []
    if outcome.status_code is not None:
        lines.append(f"Status: {outcome.status_code}")
    if outcome.message:
        lines.append(outcome.message)
    if outcome.refresh is not None:
        lines.append(f"Refresh: {describe_refresh(outcome.refresh)}")
    msg = "\n".join(lines) or title

    if outcome.kind in (OutcomeKind.EMPTY_INPUT, OutcomeKind.IGNORED):
        warn_panel(title, msg)
    else:
        error_panel(title, msg)


def describe_refresh(outcome: RefreshOutcome) -> str:
    parts = [outcome.kind.value]
    if outcome.status_code is not None:
        parts.append(str(outcome.status_code))
    if outcome.message:
        parts.append(outcome.message)
    return " - ".join(parts)


def show_credentials(creds: Credentials, source: str):
    def mark(value) -> str:
        return "[ok]present[/ok]" if value else "[err]missing[/err]"

    console.print(f"[info]Credentials file：[/info]{source}")
    console.print(f" - endpoint:      {creds.endpoint or '[err]missing[/err]'}")
    console.print(f" - api key:       {mark(creds.api_key)}")
    console.print(f" - access token:  {mark(creds.access_token)}")
    console.print(f" - refresh token: {mark(creds.refresh_token)}")
    console.print(f" - user id:       {mark(creds.user_id)}")


class ConsoleListener(QuickAddListener):
    """Prints the countdown and outcomes of a quick-add session."""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.label = NEUTRAL_LABEL

    def on_auto_submit_tick(self, remaining_seconds: int):
        self.label = countdown_label(remaining_seconds)
        console.print(f"[info]{self.label}[/info] (Ctrl+C to cancel)")

    def on_auto_submit_fired(self):
        self.label = NEUTRAL_LABEL

    def on_auto_submit_cancelled(self):
        self.label = NEUTRAL_LABEL
        console.print("[warn]Auto-submit cancelled.[/warn]")

    def on_outcome(self, outcome: Outcome):
        show_outcome(outcome, debug=self.debug)
