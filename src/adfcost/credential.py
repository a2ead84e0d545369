import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

import structlog
from azure.core.exceptions import AzureError

from adfcost.errors import AuthenticationError
from adfcost.metrics import JobMetrics
from adfcost.models import Credential

logger = structlog.get_logger()

MANAGEMENT_SCOPE = "https://management.azure.com/.default"

# credentials closer than this to expiry are renewed before use
REFRESH_MARGIN = timedelta(minutes=5)


class TokenSource(Protocol):
    """
    TokenSource is the identity provider. Any azure-identity credential
    (DefaultAzureCredential, AzureCliCredential, ...) satisfies it.
    """

    def get_token(self, *scopes: "str", **kwargs: "object") -> "object": ...


def _utcnow() -> "datetime":
    return datetime.now(timezone.utc)


class CredentialManager:
    """
    CredentialManager owns the bearer credential used against the
    management API. Callers hand back the credential they hold and get
    one that is valid for at least REFRESH_MARGIN. Refresh decisions are
    serialized with a lock so concurrent callers never race on
    "refresh or reuse".
    """

    def __init__(
        self,
        token_source: "TokenSource",
        scope: "str" = MANAGEMENT_SCOPE,
        clock: "Callable[[], datetime]" = _utcnow,
        metrics: "JobMetrics | None" = None,
    ) -> "None":
        self._token_source = token_source
        self._scope = scope
        self._clock = clock
        self._metrics = metrics or JobMetrics()
        self._current: "Credential | None" = None
        self._lock: "asyncio.Lock" = asyncio.Lock()

    async def acquire(self, prior: "Credential | None" = None) -> "Credential":
        """
        returns prior unchanged while it is still fresh, otherwise the
        newest credential known to the manager, performing a new token
        handshake only when that one is stale too.
        """
        async with self._lock:
            now = self._clock()
            if prior is not None and prior.is_fresh(now, REFRESH_MARGIN):
                return prior

            # another caller may already have refreshed
            if self._current is not None and self._current.is_fresh(
                now, REFRESH_MARGIN
            ):
                return self._current

            self._current = await self._handshake()
            return self._current

    async def _handshake(self) -> "Credential":
        logger.debug("credential_refresh", scope=self._scope)
        try:
            # azure-identity credentials are blocking
            token = await asyncio.to_thread(self._token_source.get_token, self._scope)
        except AzureError as exc:
            raise AuthenticationError(
                f"could not obtain a token for {self._scope}: {exc}"
            ) from exc

        self._metrics.inc_credential_refresh()
        expires_at = datetime.fromtimestamp(token.expires_on, tz=timezone.utc)
        logger.info("credential_acquired", expires_at=expires_at.isoformat())
        return Credential(
            auth_header_value=f"Bearer {token.token}",
            expires_at_utc=expires_at,
        )
