#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import asyncio
import sys
import tomllib
import click
from typing import Optional, Sequence
from prompt_toolkit.application.current import get_app

from rich.panel import Panel
from rich.text import Text

from pulse_cli.key_manager import KeyBindingManager
from pulse_cli.client import HttpClient
from pulse_cli.key_manager import SessionFactory
from pulse_cli.utils import Config, DEFAULT_CONFIG_PATH
from pulse_cli.display import ConsoleListener, console, describe_refresh, error_panel, print_rule, show_credentials, warn_panel
from pulse_cli.credential_store import CredentialStore, CredentialStoreError
from pulse_cli.logging_setup import setup_logging
from pulse_cli.outcomes import Outcome, RefreshOutcome
from pulse_cli.refresher import TokenRefresher
from pulse_cli.session import QuickAddSession


# ========== Application Orchestrator ==========
class App:
    def __init__(self, cfg: Config):
        self.cfg = cfg
        self.http = HttpClient(cfg)
        self.store = CredentialStore(cfg.credentials_path, cfg.namespace)
        self.refresher = TokenRefresher(self.store, self.http)
        self.listener = ConsoleListener(debug=cfg.debug)
        self.quick = QuickAddSession(cfg, self.store, self.http, listener=self.listener, refresher=self.refresher)

        def accept():
            app = get_app()
            buf = app.current_buffer
            app.exit(result=buf.text)

        def clear():
            get_app().exit(exception=KeyboardInterrupt())

        self.kbm = KeyBindingManager(accept_callback=accept, clear_callback=clear)
        self.session = None
        self.counter = 1

    def load_credentials(self):
        creds = self.store.load()
        if not creds.can_submit:
            warn_panel("Not logged in", "Please open the main app to sync login.")
        return creds

    async def run(self):
        self.load_credentials()
        self.session = SessionFactory.build_session(self.kbm.bindings)
        self._print_banner()

        while True:
            try:
                text = await self.session.prompt_async(SessionFactory.make_prompt_fragments(self.counter))
                self.quick.set_text(text)
                outcome = await self.quick.submit()
                if outcome.ok:
                    self.counter += 1
            except KeyboardInterrupt:
                console.print("[warn] Input cancelled.（Ctrl+C）[/warn]")
                continue
            except EOFError:
                console.print("\n[info]Exited.（Ctrl+D）[/info]")
                break
            except CredentialStoreError as e:
                error_panel("Credentials error", str(e))
                continue
            except Exception as e:
                console.print(Panel.fit(Text(repr(e), no_wrap=False), title="Unexpected error !", border_style="red"))
                continue

    async def add(self, text: str, auto: bool = False, delay: Optional[float] = None) -> Optional[Outcome]:
        self.load_credentials()
        if not auto:
            self.quick.set_text(text)
            return await self.quick.submit()

        self.quick.append_voice_text(text, auto_submit=False)
        self.quick.arm_auto_submit(delay)
        try:
            return await self.quick.wait_auto_submit()
        except asyncio.CancelledError:
            # Ctrl+C while counting down
            self.quick.timer.cancel()
            raise

    async def refresh(self) -> RefreshOutcome:
        self.load_credentials()
        return await self.refresher.refresh()

    def close(self):
        self.quick.close()
        self.http.close()

    # ========== Internal helpers ==========
    def _print_banner(self):
        submit_hint = "、".join(self.kbm.submit_labels) or "Ctrl+J"
        print_rule("Start")
        console.print(Panel.fit(
                Text(
                        "Descriptions：\n"
                        f" - Submit：{submit_hint}\n"
                        " - Cancel：Ctrl+C\n"
                        " - Exit：Ctrl+D\n\n"
                        "Each submission creates one task. Expired sessions are refreshed once automatically.",
                        no_wrap=False
                ),
                title="Help", border_style="cyan"
        ))
        console.print(f"[info]Your backend：[/info]{self.store.credentials.endpoint or '-'}")
        if not self.cfg.verify_tls:
            console.print("[warn] Disable tls verification !（--insecure）[/warn]")


# ========== CLI with Click ==========

@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Config file, default ~/.pulse.cli.toml")
@click.option("--credentials", type=click.Path(dir_okay=False), help="Credentials file synced by the main app.")
@click.option("--timeout", type=float, default=None, help="Connect/read timeout in seconds (default 10).")
@click.option("--insecure", is_flag=True, help="Whether disable tls.")
@click.option("--debug", "-d", is_flag=True, help="Start with debug mode.")
@click.pass_context
def cli(ctx, config_path, credentials, timeout, insecure, debug):
    """
    pulse-cli: quick-add tasks to your Pulse backend.
    """
    # Simulate argparse.Namespace for Config.init_from_args
    class Args:
        pass
    args = Args()
    args.config = config_path
    args.credentials = credentials
    args.timeout = timeout
    args.insecure = insecure
    args.debug = debug
    try:
        cfg = Config.init_from_args(args)
    except tomllib.TOMLDecodeError as e:
        raise click.ClickException(f"Invalid config file {args.config or DEFAULT_CONFIG_PATH}: {e}") from e
    setup_logging(cfg.log_dir, cfg.debug)
    ctx.obj = {"cfg": cfg}


def _run_app(cfg: Config, coro_factory):
    app = App(cfg)
    try:
        return asyncio.run(coro_factory(app))
    except CredentialStoreError as e:
        error_panel("Credentials error", str(e))
        sys.exit(1)
    finally:
        app.close()


@cli.command("run")
@click.pass_context
def run_cmd(ctx):
    """Start the interactive quick-add prompt."""
    _run_app(ctx.obj["cfg"], lambda app: app.run())


@cli.command("add")
@click.argument("words", nargs=-1, required=True)
@click.option("--auto", is_flag=True, help="Send after a countdown, like a voice result. Ctrl+C cancels.")
@click.option("--delay", type=float, default=None, help="Countdown length in seconds.")
@click.pass_context
def add_cmd(ctx, words: Sequence[str], auto: bool, delay: Optional[float]):
    """Add one task."""
    text = " ".join(words)
    try:
        outcome = _run_app(ctx.obj["cfg"], lambda app: app.add(text, auto=auto, delay=delay))
    except KeyboardInterrupt:
        console.print("[warn]Cancelled, nothing sent.[/warn]")
        sys.exit(1)
    if outcome is None or not outcome.ok:
        sys.exit(1)


@cli.command("refresh")
@click.pass_context
def refresh_cmd(ctx):
    """Exchange the refresh token for a new token pair."""
    outcome = _run_app(ctx.obj["cfg"], lambda app: app.refresh())
    if outcome.ok:
        console.print("[ok]Tokens refreshed.[/ok]")
    else:
        error_panel("Refresh failed.", describe_refresh(outcome))
        sys.exit(1)


@cli.command("status")
@click.pass_context
def status_cmd(ctx):
    """Show which credentials are available."""
    cfg = ctx.obj["cfg"]
    store = CredentialStore(cfg.credentials_path, cfg.namespace)
    try:
        creds = store.load()
    except CredentialStoreError as e:
        error_panel("Credentials error", str(e))
        sys.exit(1)
    show_credentials(creds, str(cfg.credentials_path))
    if not creds.can_submit:
        sys.exit(1)


def main():
    cli(prog_name="pulse-cli")

if __name__ == "__main__":
    main()
