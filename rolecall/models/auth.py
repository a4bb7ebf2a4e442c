"""Models for credentials and the plex.tv PIN login flow."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class LoginState(str, Enum):
    """States of the PIN login flow."""
    IDLE = "idle"
    PIN_REQUESTED = "pin_requested"
    POLLING = "polling"
    AUTHORIZED = "authorized"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def finished(self) -> bool:
        return self in (LoginState.AUTHORIZED, LoginState.TIMED_OUT, LoginState.FAILED, LoginState.CANCELLED)


class AuthSession(BaseModel):
    """Server address and bearer token used for every media server call."""
    server_ip: str = ""
    token: str = ""
    token_expires_at: Optional[datetime] = None
    username: str = ""

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        if not self.token:
            return False
        if self.token_expires_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        expires = self.token_expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return expires > now

    @property
    def has_login(self) -> bool:
        return bool(self.server_ip) and self.is_valid()

    def clear(self) -> None:
        """Forget the token. The server address is kept."""
        self.token = ""
        self.token_expires_at = None
        self.username = ""


class PinAuthorization(BaseModel):
    """A one-time code from POST /pins, and its status from GET /pins/{id}."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    code: str
    authToken: Optional[str] = None
    expiresAt: Optional[datetime] = None
    clientIdentifier: Optional[str] = None

    @property
    def is_authorized(self) -> bool:
        return bool(self.authToken)


class LoginStatus(BaseModel):
    """Snapshot of a login attempt for the outer surface."""
    state: LoginState = LoginState.IDLE
    auth_url: Optional[str] = None
    pin_id: Optional[int] = None
    attempts: int = 0
    error: Optional[str] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
