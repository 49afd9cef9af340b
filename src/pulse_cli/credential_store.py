import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pulse_cli.utils import Credentials, DEFAULT_NAMESPACE

logger = logging.getLogger(__name__)

# key names shared with the app that syncs the login
KEY_URL = "supabase_url"
KEY_API_KEY = "supabase_key"
KEY_ACCESS_TOKEN = "access_token"
KEY_REFRESH_TOKEN = "refresh_token"
KEY_USER_ID = "user_id"


class CredentialStoreError(Exception):
    pass


class CredentialStore:
    """
    Key-value JSON file holding the synced login, one object per namespace:

        {"CapacitorStorage": {"supabase_url": ..., "access_token": ..., ...}}

    The in-memory ``credentials`` are loaded once and only the token pair is
    ever written back.
    """

    def __init__(self, path: Path, namespace: str = DEFAULT_NAMESPACE):
        self.path = Path(path)
        self.namespace = namespace
        self.credentials = Credentials()

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise CredentialStoreError(f"Cannot read credentials from {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise CredentialStoreError(f"{self.path} does not hold a JSON object")
        return data

    def load(self) -> Credentials:
        values = self._read_all().get(self.namespace) or {}
        self.credentials = Credentials(
            endpoint=_strip_slash(values.get(KEY_URL)),
            api_key=values.get(KEY_API_KEY),
            access_token=values.get(KEY_ACCESS_TOKEN),
            refresh_token=values.get(KEY_REFRESH_TOKEN),
            user_id=values.get(KEY_USER_ID),
        )
        logger.debug(
            "Credentials loaded. url=%s access=%s refresh=%s user=%s",
            self.credentials.endpoint is not None,
            self.credentials.access_token is not None,
            self.credentials.refresh_token is not None,
            self.credentials.user_id is not None,
        )
        return self.credentials

    def update_tokens(self, access_token: str, refresh_token: Optional[str]):
        """Replace the token pair in memory and on disk; a missing refresh token keeps the old one."""
        if refresh_token is None:
            refresh_token = self.credentials.refresh_token
        self._persist_tokens(access_token, refresh_token)
        self.credentials.access_token = access_token
        self.credentials.refresh_token = refresh_token
        logger.info("Tokens refreshed and saved to %s", self.path)

    def _persist_tokens(self, access_token: str, refresh_token: Optional[str]):
        data = self._read_all()
        section = dict(data.get(self.namespace) or {})
        section[KEY_ACCESS_TOKEN] = access_token
        if refresh_token is not None:
            section[KEY_REFRESH_TOKEN] = refresh_token
        data[self.namespace] = section

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".credentials-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise CredentialStoreError(f"Cannot write credentials to {self.path}: {e}") from e


def _strip_slash(url: Optional[str]) -> Optional[str]:
    return url.rstrip("/") if url else url
