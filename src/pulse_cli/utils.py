import tomllib
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field

DEFAULT_CONFIG_PATH = Path.home() / ".pulse.cli.toml"
DEFAULT_CREDENTIALS_PATH = Path.home() / ".pulse" / "credentials.json"
DEFAULT_LOG_DIR = Path.home() / ".pulse" / "logs"
DEFAULT_NAMESPACE = "CapacitorStorage"


# ========== Config & Models ==========
@dataclass
class Config:
    credentials_path: Path = DEFAULT_CREDENTIALS_PATH
    namespace: str = DEFAULT_NAMESPACE
    timeout: float = 10
    auto_submit_delay: float = 2.5
    tick_interval: float = 1.0
    verify_tls: bool = True
    debug: bool = False
    log_dir: Path = DEFAULT_LOG_DIR

    @classmethod
    def load_file(cls, path: Path) -> dict:
        """Read the ``[pulse]`` table of the TOML config, empty if the file is absent."""
        if not path.exists():
            return {}
        with open(path, "rb") as fh:
            data = tomllib.load(fh)
        return dict(data.get("pulse", {}))

    @classmethod
    def init_from_args(cls, args) -> "Config":
        config_path = Path(getattr(args, "config", None) or DEFAULT_CONFIG_PATH).expanduser()
        values = cls.load_file(config_path)

        cfg = cls()
        if "credentials_path" in values:
            cfg.credentials_path = Path(values["credentials_path"]).expanduser()
        if "namespace" in values:
            cfg.namespace = str(values["namespace"])
        if "timeout" in values:
            cfg.timeout = float(values["timeout"])
        if "auto_submit_delay" in values:
            cfg.auto_submit_delay = float(values["auto_submit_delay"])
        if "tick_interval" in values:
            cfg.tick_interval = float(values["tick_interval"])
        if "verify_tls" in values:
            cfg.verify_tls = bool(values["verify_tls"])
        if "log_dir" in values:
            cfg.log_dir = Path(values["log_dir"]).expanduser()

        # command line wins over the file
        if getattr(args, "credentials", None):
            cfg.credentials_path = Path(args.credentials).expanduser()
        if getattr(args, "timeout", None) is not None:
            cfg.timeout = float(args.timeout)
        if getattr(args, "insecure", False):
            cfg.verify_tls = False
        cfg.debug = bool(getattr(args, "debug", False))
        return cfg


@dataclass
class Credentials:
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def can_submit(self) -> bool:
        return bool(self.endpoint and self.access_token and self.user_id)

    @property
    def can_refresh(self) -> bool:
        return bool(self.endpoint and self.refresh_token)


@dataclass(frozen=True)
class SubmissionRequest:
    title: str
    user_id: str
    created_at: str = field(default_factory=lambda: format_timestamp(datetime.now(timezone.utc)))

    def to_payload(self) -> dict:
        return {"title": self.title, "user_id": self.user_id, "created_at": self.created_at}


@dataclass
class SubmitResult:
    ok: bool
    status_code: Optional[int]
    text: str
    error: Optional[str] = None


def format_timestamp(moment: datetime) -> str:
    """UTC instant as ``YYYY-MM-DDTHH:mm:ss.SSSZ``."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def join_voice_text(current: str, spoken: str) -> str:
    """Append a voice result to the text already typed, separated by one space."""
    if not spoken:
        return current
    if not current:
        return spoken
    return f"{current} {spoken}"
