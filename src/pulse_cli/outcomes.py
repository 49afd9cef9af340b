"""Terminal results of a submission or a token refresh.

Expected failures travel as values so the caller can always re-enable its
trigger and show something; nothing here is raised.
"""
from enum import Enum
from typing import Optional
from dataclasses import dataclass


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    IGNORED = "ignored"
    EMPTY_INPUT = "empty_input"
    MISSING_CREDENTIALS = "missing_credentials"
    ACCESS_DENIED = "access_denied"
    SESSION_EXPIRED = "session_expired"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"


class RefreshKind(str, Enum):
    REFRESHED = "refreshed"
    MISSING_CREDENTIALS = "missing_credentials"
    REFRESH_REJECTED = "refresh_rejected"
    MALFORMED_RESPONSE = "malformed_response"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class RefreshOutcome:
    kind: RefreshKind
    status_code: Optional[int] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is RefreshKind.REFRESHED

    @classmethod
    def refreshed(cls) -> "RefreshOutcome":
        return cls(RefreshKind.REFRESHED)

    @classmethod
    def missing_credentials(cls) -> "RefreshOutcome":
        return cls(RefreshKind.MISSING_CREDENTIALS, message="No refresh token stored.")

    @classmethod
    def rejected(cls, status_code: int, message: Optional[str] = None) -> "RefreshOutcome":
        return cls(RefreshKind.REFRESH_REJECTED, status_code=status_code, message=message)

    @classmethod
    def malformed(cls, message: str) -> "RefreshOutcome":
        return cls(RefreshKind.MALFORMED_RESPONSE, message=message)

    @classmethod
    def network_error(cls, message: str) -> "RefreshOutcome":
        return cls(RefreshKind.NETWORK_ERROR, message=message)


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    status_code: Optional[int] = None
    message: Optional[str] = None
    refresh: Optional[RefreshOutcome] = None
    retried: bool = False

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def success(cls, retried: bool = False) -> "Outcome":
        return cls(OutcomeKind.SUCCESS, retried=retried)

    @classmethod
    def ignored(cls) -> "Outcome":
        return cls(OutcomeKind.IGNORED, message="A submission is already in flight.")

    @classmethod
    def empty_input(cls) -> "Outcome":
        return cls(OutcomeKind.EMPTY_INPUT, message="Enter a task name.")

    @classmethod
    def missing_credentials(cls) -> "Outcome":
        return cls(OutcomeKind.MISSING_CREDENTIALS, message="Credentials missing. Sync login from the main app.")

    @classmethod
    def access_denied(cls, status_code: int, retried: bool = False) -> "Outcome":
        return cls(OutcomeKind.ACCESS_DENIED, status_code=status_code, retried=retried)

    @classmethod
    def session_expired(cls, refresh: RefreshOutcome) -> "Outcome":
        return cls(OutcomeKind.SESSION_EXPIRED, message="Session expired, please log in again.", refresh=refresh)

    @classmethod
    def server_error(cls, status_code: int, message: Optional[str] = None, retried: bool = False) -> "Outcome":
        return cls(OutcomeKind.SERVER_ERROR, status_code=status_code, message=message, retried=retried)

    @classmethod
    def network_error(cls, message: str, retried: bool = False) -> "Outcome":
        return cls(OutcomeKind.NETWORK_ERROR, message=message, retried=retried)
