"""Gate Google API access on the first availability of stored credentials.

At process start the admin may not have logged in with Google yet. The
monitor polls the credential store until a token shows up, loads it into the
calendar client, and then resolves a one-time readiness future that sync
operations await.
"""

import asyncio
import logging
from enum import Enum
from typing import Protocol

from familycal.db.credential_store import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY
from familycal.errors import DecryptionError, NoCredentialsError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 5.0


class MonitorState(str, Enum):
    WAITING = "waiting"
    READY = "ready"
    FAILED = "failed"


class TokenSource(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def get_many(self, keys: list[str]) -> dict[str, str]: ...


class CredentialSink(Protocol):
    def set_credentials(
        self, access_token: str | None, refresh_token: str | None = None
    ) -> None: ...


class CredentialMonitor:
    """Poll for stored Google tokens until they can be loaded once.

    States: WAITING -> READY once tokens were loaded into the client, or
    WAITING -> FAILED on an unexpected error or when the optional overall
    `timeout` elapses. Both end states are final; polling stops when either is
    reached. Later token changes are handled by the client, not here.
    """

    def __init__(
        self,
        store: TokenSource,
        client: CredentialSink,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        timeout: float | None = None,
    ):
        self.store = store
        self.client = client
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.state = MonitorState.WAITING
        self._ready: asyncio.Future[None] | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def ready(self) -> asyncio.Future[None]:
        """Future resolved once credentials are loaded (or failed if the monitor fails)."""
        if self._ready is None:
            self._ready = asyncio.get_running_loop().create_future()
        return self._ready

    def start(self) -> None:
        """Start polling in a background task. Calling it again is a no-op."""
        if self._task is not None:
            return
        # Make sure the future exists on the running loop.
        _ = self.ready
        self._task = asyncio.create_task(self._poll(), name="credential-monitor")
        logger.info(
            f"Started waiting for Google credentials: poll_interval={self.poll_interval}s"
        )

    async def stop(self) -> None:
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def wait_ready(self, timeout: float | None = None) -> None:
        """Wait until credentials are available.

        A caller timeout only fails this caller's wait; the background poll
        keeps running.

        Raises:
            NoCredentialsError: If `timeout` elapses first, or the monitor gave up.
        """
        if self.state is MonitorState.READY:
            return
        if timeout is None:
            await asyncio.shield(self.ready)
            return
        try:
            await asyncio.wait_for(asyncio.shield(self.ready), timeout)
        except asyncio.TimeoutError:
            raise NoCredentialsError(
                "Timed out waiting for Google credentials. "
                "Please sign in with Google from the admin dashboard."
            )

    async def _has_stored_token(self) -> bool:
        refresh_token = await self.store.get(REFRESH_TOKEN_KEY)
        if refresh_token:
            return True
        access_token = await self.store.get(ACCESS_TOKEN_KEY)
        return bool(access_token)

    async def check_once(self) -> bool:
        """Look for tokens and try to load them into the client.

        Returns:
            True if the client now has credentials.
        """
        if not await self._has_stored_token():
            return False

        tokens = await self.store.get_many([ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY])
        access_token = tokens.get(ACCESS_TOKEN_KEY)
        refresh_token = tokens.get(REFRESH_TOKEN_KEY)
        if not access_token and not refresh_token:
            return False

        self.client.set_credentials(access_token, refresh_token)
        return True

    async def _poll(self) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            while True:
                try:
                    if await self.check_once():
                        self._resolve()
                        return
                except (DecryptionError, StorageError) as e:
                    logger.warning(
                        f"Stored Google credentials not usable yet, will retry: "
                        f"exception_type={type(e).__name__}, error={e}"
                    )

                if self.timeout is not None and loop.time() - started >= self.timeout:
                    self._fail(NoCredentialsError("Timed out waiting for Google credentials"))
                    return

                await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(
                f"Error while waiting for Google credentials: "
                f"exception_type={type(e).__name__}, error={e}"
            )
            self._fail(e)

    def _resolve(self) -> None:
        self.state = MonitorState.READY
        if not self.ready.done():
            self.ready.set_result(None)
        logger.info("Google credentials available")

    def _fail(self, error: BaseException) -> None:
        self.state = MonitorState.FAILED
        if not self.ready.done():
            self.ready.set_exception(error)
            # Mark the exception retrieved so it is not reported as unhandled
            # when nobody is waiting.
            self.ready.exception()
        logger.error(f"Gave up waiting for Google credentials: error={error}")
