from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import pytest
from azure.core.credentials import AccessToken
from prometheus_client import CollectorRegistry

from adfcost.credential import CredentialManager
from adfcost.fetcher import PagedCollectionFetcher
from adfcost.http import RetryingSender
from adfcost.management import FactoryEndpoints
from adfcost.metrics import JobMetrics
from adfcost.pricing import OFFER_KEYS

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """
    a settable clock for credential expiry checks.
    """

    def __init__(self, now: "datetime" = NOW) -> "None":
        self.now = now

    def __call__(self) -> "datetime":
        return self.now

    def advance(self, delta: "timedelta") -> "None":
        self.now += delta


class FakeTokenSource:
    """
    stands in for an azure-identity credential, handing out numbered
    tokens that expire `lifetime` after the clock's current time.
    """

    def __init__(
        self,
        clock: "FakeClock",
        lifetime: "timedelta" = timedelta(hours=1),
    ) -> "None":
        self._clock = clock
        self._lifetime = lifetime
        self.calls = 0

    def get_token(self, *scopes: "str", **kwargs: "object") -> "AccessToken":
        self.calls += 1
        expires = self._clock() + self._lifetime
        return AccessToken(f"token-{self.calls}", int(expires.timestamp()))


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def metrics(registry: "CollectorRegistry") -> "JobMetrics":
    return JobMetrics(registry=registry)


@pytest.fixture()
def clock() -> "FakeClock":
    return FakeClock()


@pytest.fixture()
def token_source(clock: "FakeClock") -> "FakeTokenSource":
    return FakeTokenSource(clock)


@pytest.fixture()
def credentials(
    token_source: "FakeTokenSource",
    clock: "FakeClock",
    metrics: "JobMetrics",
) -> "CredentialManager":
    return CredentialManager(token_source, clock=clock, metrics=metrics)


@pytest.fixture()
def endpoints() -> "FactoryEndpoints":
    return FactoryEndpoints(
        subscription_id="sub-1",
        resource_group="rg-data",
        factory_name="adf-prod",
    )


@pytest.fixture()
def make_sender(metrics: "JobMetrics") -> "Callable[..., RetryingSender]":
    """
    builds senders without backoff delays. Call it inside the test so the
    client is created while respx is active.
    """

    def _make(max_attempts: "int" = 3) -> "RetryingSender":
        return RetryingSender(
            httpx.AsyncClient(timeout=5.0),
            metrics=metrics,
            max_attempts=max_attempts,
            retry_wait=0,
        )

    return _make


@pytest.fixture()
def make_fetcher(
    make_sender: "Callable[..., RetryingSender]",
    credentials: "CredentialManager",
) -> "Callable[..., PagedCollectionFetcher]":
    def _make(max_attempts: "int" = 3) -> "PagedCollectionFetcher":
        return PagedCollectionFetcher(make_sender(max_attempts), credentials)

    return _make


def build_catalog(
    slug: "str" = "us-east",
    display_name: "str" = "East US",
    price: "float" = 1.0,
    overrides: "dict[str, float] | None" = None,
) -> "dict[str, Any]":
    """
    a rate catalog where every offer costs `price` in one region.
    """
    overrides = overrides or {}
    return {
        "regions": [
            {"DisplayName": "West Europe", "slug": "europe-west"},
            {"DisplayName": display_name, "slug": slug},
        ],
        "offers": {
            offer_key: {
                "prices": {
                    slug: {"value": overrides.get(column, price)},
                    "europe-west": {"value": 99.0},
                }
            }
            for column, offer_key in OFFER_KEYS.items()
        },
    }


@pytest.fixture()
def catalog() -> "dict[str, Any]":
    return build_catalog()


def activity_run(
    runtime: "str",
    activity_type: "str | None" = None,
    durations: "list[tuple[str, float, str]] | None" = None,
) -> "dict[str, Any]":
    """
    raw activity run as returned by queryActivityruns.
    """
    output: "dict[str, Any]" = {"effectiveIntegrationRuntime": runtime}
    if activity_type is not None:
        output["billingReference"] = {
            "activityType": activity_type,
            "billableDuration": [
                {"meterType": meter, "duration": duration, "unit": unit}
                for meter, duration, unit in durations or []
            ],
        }
    return {"activityRunId": "act", "output": output}


@pytest.fixture()
def make_catalog() -> "Callable[..., dict[str, Any]]":
    return build_catalog


@pytest.fixture()
def make_activity_run() -> "Callable[..., dict[str, Any]]":
    return activity_run


@pytest.fixture()
def live_token_source() -> "FakeTokenSource":
    """
    token source whose tokens expire relative to the real clock, for
    components built with their default clock.
    """
    return FakeTokenSource(FakeClock(datetime.now(timezone.utc)))
