# tests/conftest.py
import asyncio
import json
from pathlib import Path
from typing import List, Optional

import pytest

from pulse_cli.credential_store import CredentialStore
from pulse_cli.utils import Config, SubmitResult

ENDPOINT = "https://x.test"


def ok(status: int = 201, text: str = "") -> SubmitResult:
    return SubmitResult(ok=True, status_code=status, text=text)


def fail(status: int, text: str = "") -> SubmitResult:
    return SubmitResult(ok=False, status_code=status, text=text)


def network_down(message: str = "Read timed out.") -> SubmitResult:
    return SubmitResult(ok=False, status_code=None, text="", error=message)


def token_response(access: str = "A2", refresh: Optional[str] = "R2") -> SubmitResult:
    body = {"access_token": access, "token_type": "bearer"}
    if refresh is not None:
        body["refresh_token"] = refresh
    return ok(200, json.dumps(body))


class FakeHttp:
    """Scripted stand-in for HttpClient.apost_json, answers per URL suffix in order."""

    def __init__(self, tasks: Optional[List[SubmitResult]] = None, token: Optional[List[SubmitResult]] = None):
        self.responses = {"tasks": list(tasks or []), "token": list(token or [])}
        self.calls = []
        self.gate: Optional[asyncio.Event] = None

    def _kind(self, url: str) -> str:
        return "token" if "/auth/v1/token" in url else "tasks"

    async def apost_json(self, url, payload, headers):
        self.calls.append({"url": url, "payload": dict(payload), "headers": dict(headers)})
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        return self.responses[self._kind(url)].pop(0)

    def calls_to(self, kind: str):
        return [c for c in self.calls if self._kind(c["url"]) == kind]

    def close(self):
        pass


def write_credentials(path: Path, namespace: str = "CapacitorStorage", **overrides) -> Path:
    values = {
        "supabase_url": ENDPOINT,
        "supabase_key": "anon-key",
        "access_token": "A",
        "refresh_token": "R",
        "user_id": "u1",
    }
    values.update(overrides)
    values = {k: v for k, v in values.items() if v is not None}
    path.write_text(json.dumps({namespace: values}), encoding="utf-8")
    return path


@pytest.fixture
def credentials_path(tmp_path):
    return write_credentials(tmp_path / "credentials.json")


@pytest.fixture
def cfg(tmp_path, credentials_path):
    return Config(
        credentials_path=credentials_path,
        auto_submit_delay=0.05,
        tick_interval=0.02,
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def store(credentials_path):
    s = CredentialStore(credentials_path)
    s.load()
    return s
