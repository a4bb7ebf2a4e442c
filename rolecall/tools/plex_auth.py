"""plex.tv PIN login: request a code, let the user approve it, poll until done."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import quote

import aiohttp

from ..config import RoleCallConfig
from ..errors import AuthTimeoutError, RoleCallError
from ..models.auth import AuthSession, LoginState, LoginStatus, PinAuthorization
from ..settings_store import SettingsStore, save_auth
from ..parsers.common import decode
from .http import check_status, fetch, parse_json

logger = logging.getLogger(__name__)


class PinLogin:
    """One login attempt through the plex.tv PIN flow.

    States move ``idle -> pin_requested -> polling`` and end in
    ``authorized``, ``timed_out``, ``failed`` or ``cancelled``. A failed poll
    request is logged and polling continues; only the attempt budget or
    cancellation ends the loop early.
    """

    def __init__(
        self,
        config: RoleCallConfig,
        auth: AuthSession,
        *,
        store: Optional[SettingsStore] = None,
        session: Optional[aiohttp.ClientSession] = None,
        open_url: Optional[Callable[[str], Any]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.auth = auth
        self._store = store
        self._session = session
        self._owns_session = session is None
        self._open_url = open_url
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._pin_ready: Optional[asyncio.Event] = None
        self.status = LoginStatus()

    @property
    def state(self) -> LoginState:
        return self.status.state

    def _set_state(self, state: LoginState, **changes: Any) -> None:
        self.status = self.status.model_copy(
            update={"state": state, "updated_at": datetime.now(timezone.utc), **changes}
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self):
        self.cancel()
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "X-Plex-Product": self.config.product_name,
            "X-Plex-Client-Identifier": self.config.client_identifier,
        }

    # ------------------------------------------------------------------

    async def request_pin(self) -> PinAuthorization:
        """POST /pins for a new one-time code."""
        session = await self._get_session()
        url = f"{self.config.plex_tv_url}/pins"
        logger.info("Generating PIN...")
        status, body = await fetch(
            session,
            "POST",
            url,
            timeout=self.config.auth_timeout,
            headers=self._headers(),
            data={"strong": "true"},
        )
        check_status(status, body, url, expected=(200, 201))
        pin = decode(PinAuthorization, parse_json(body, "pins"), "pins")
        logger.info(f"PIN generated: {pin.id}")
        return pin

    async def check_pin(self, pin_id: int) -> PinAuthorization:
        """GET /pins/{id} for the current authorization status."""
        session = await self._get_session()
        url = f"{self.config.plex_tv_url}/pins/{pin_id}"
        status, body = await fetch(session, "GET", url, timeout=self.config.auth_timeout, headers=self._headers())
        check_status(status, body, url)
        return decode(PinAuthorization, parse_json(body, "pins"), "pins")

    def auth_url(self, code: str) -> str:
        """URL the user opens to approve ``code``."""
        params = {
            "clientID": self.config.client_identifier,
            "code": code,
            "context[device][product]": self.config.product_name,
        }
        query = "&".join(f"{quote(k, safe='[]')}={quote(v, safe='')}" for k, v in params.items())
        return f"{self.config.plex_auth_url}{query}"

    async def poll(self, pin: PinAuthorization) -> str:
        """Poll until ``pin`` is authorized; return the token."""
        self._set_state(LoginState.POLLING, attempts=0)
        max_attempts = self.config.pin_max_attempts

        for attempt in range(1, max_attempts + 1):
            self._set_state(LoginState.POLLING, attempts=attempt)
            try:
                status = await self.check_pin(pin.id)
            except RoleCallError as e:
                logger.warning(f"Error checking PIN status: {e}")
            else:
                if status.is_authorized:
                    return status.authToken
            if attempt < max_attempts:
                await self._sleep(self.config.pin_poll_interval)

        logger.info(f"PIN {pin.id} not authorized after {max_attempts} attempts")
        raise AuthTimeoutError()

    async def login(self) -> AuthSession:
        """Run the whole flow and store the resulting token."""
        try:
            pin = await self.request_pin()
        except RoleCallError as e:
            self._set_state(LoginState.FAILED, error=e.user_message)
            logger.error(f"OAuth login failed: {e}")
            raise
        except asyncio.CancelledError:
            self._set_state(LoginState.CANCELLED)
            raise

        url = self.auth_url(pin.code)
        self._set_state(LoginState.PIN_REQUESTED, auth_url=url, pin_id=pin.id, error=None)
        if self._pin_ready is not None:
            self._pin_ready.set()
        if self._open_url is not None:
            self._open_url(url)
        else:
            logger.info(f"Open {url} to approve this device")

        try:
            token = await self.poll(pin)
        except AuthTimeoutError as e:
            self._set_state(LoginState.TIMED_OUT, error=e.user_message)
            raise
        except asyncio.CancelledError:
            self._set_state(LoginState.CANCELLED)
            logger.info("PIN login cancelled")
            raise

        self.auth.token = token
        self.auth.token_expires_at = None
        self.auth.username = ""
        if self._store is not None:
            save_auth(self._store, self.auth)
        self._set_state(LoginState.AUTHORIZED, error=None)
        logger.info("Authentication successful!")
        return self.auth

    # ------------------------------------------------------------------

    async def start(self) -> LoginStatus:
        """Request a PIN and keep polling in the background.

        Returns once the authorization URL is known.
        """
        previous = self._task
        if previous is not None and not previous.done():
            previous.cancel()
            await asyncio.wait({previous})

        self.status = LoginStatus()
        self._pin_ready = asyncio.Event()
        self._task = asyncio.ensure_future(self.login())
        self._task.add_done_callback(self._log_outcome)
        waiter = asyncio.ensure_future(self._pin_ready.wait())
        try:
            await asyncio.wait({self._task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
        if self._task.done() and not self._task.cancelled() and self._task.exception() is not None:
            raise self._task.exception()
        return self.status

    def cancel(self) -> None:
        """Stop polling; no status request is issued afterwards."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    @staticmethod
    def _log_outcome(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None and not isinstance(error, RoleCallError):
            logger.error(f"PIN login crashed: {error!r}")
