import asyncio
import logging
from typing import Mapping, Optional

import requests

from pulse_cli.utils import Config, SubmitResult

logger = logging.getLogger(__name__)


# ========== HTTP transport ==========
class HttpClient:
    """Blocking JSON POST transport; the async entry point runs it off the event loop."""

    def __init__(self, cfg: Config, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.session = session or requests.Session()

    @property
    def timeout(self):
        # (connect, read)
        return (self.cfg.timeout, self.cfg.timeout)

    def post_json(self, url: str, payload: dict, headers: Mapping[str, Optional[str]]) -> SubmitResult:
        clean_headers = {k: v for k, v in headers.items() if v is not None}
        try:
            resp = self.session.post(
                url,
                json=payload,
                headers=clean_headers,
                timeout=self.timeout,
                verify=self.cfg.verify_tls,
            )
        except requests.RequestException as e:
            logger.warning("POST %s failed: %s", url, e)
            return SubmitResult(ok=False, status_code=None, text="", error=str(e) or e.__class__.__name__)

        logger.debug("POST %s -> %s", url, resp.status_code)
        return SubmitResult(ok=200 <= resp.status_code < 300, status_code=resp.status_code, text=resp.text)

    async def apost_json(self, url: str, payload: dict, headers: Mapping[str, Optional[str]]) -> SubmitResult:
        return await asyncio.to_thread(self.post_json, url, payload, headers)

    def close(self):
        self.session.close()
