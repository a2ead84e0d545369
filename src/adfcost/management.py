from dataclasses import dataclass
from urllib.parse import quote

import httpx
import structlog

from adfcost.credential import CredentialManager
from adfcost.errors import FactoryLookupError
from adfcost.http import RetryingSender, json_object
from adfcost.models import Credential

logger = structlog.get_logger()

MANAGEMENT_BASE_URL = "https://management.azure.com"
DATA_FACTORY_API_VERSION = "2018-06-01"


@dataclass(frozen=True)
class FactoryEndpoints:
    """
    builds the management API URLs of a single data factory.
    """

    subscription_id: "str"
    resource_group: "str"
    factory_name: "str"
    base_url: "str" = MANAGEMENT_BASE_URL
    api_version: "str" = DATA_FACTORY_API_VERSION

    @property
    def factory_path(self) -> "str":
        return (
            f"{self.base_url.rstrip('/')}"
            f"/subscriptions/{quote(self.subscription_id)}"
            f"/resourceGroups/{quote(self.resource_group)}"
            f"/providers/Microsoft.DataFactory/factories/{quote(self.factory_name)}"
        )

    def _with_version(self, url: "str") -> "str":
        return f"{url}?api-version={self.api_version}"

    def factory(self) -> "str":
        return self._with_version(self.factory_path)

    def pipeline_runs(self) -> "str":
        return self._with_version(f"{self.factory_path}/queryPipelineRuns")

    def activity_runs(self, run_id: "str") -> "str":
        return self._with_version(
            f"{self.factory_path}/pipelineruns/{quote(run_id)}/queryActivityruns"
        )


class FactoryClient:
    """
    reads factory metadata from the management API.
    """

    def __init__(
        self,
        sender: "RetryingSender",
        credentials: "CredentialManager",
        endpoints: "FactoryEndpoints",
    ) -> "None":
        self._sender = sender
        self._credentials = credentials
        self._endpoints = endpoints

    async def get_location(
        self, credential: "Credential | None"
    ) -> "tuple[str, Credential]":
        """
        returns the factory's deployment location (e.g. 'eastus').
        """
        credential = await self._credentials.acquire(credential)
        url = self._endpoints.factory()
        try:
            resp = await self._sender.send(
                "GET",
                url,
                "factory",
                headers={"Authorization": credential.auth_header_value},
            )
        except httpx.HTTPError as exc:
            raise FactoryLookupError(
                f"factory lookup for {self._endpoints.factory_name} failed: {exc!r}"
            ) from exc

        if not resp.is_success:
            raise FactoryLookupError(
                f"factory lookup for {self._endpoints.factory_name} "
                f"returned HTTP {resp.status_code}"
            )

        try:
            location = json_object(resp).get("location")
        except ValueError as exc:
            raise FactoryLookupError(
                f"factory lookup for {self._endpoints.factory_name} "
                f"returned an unreadable body: {exc!r}"
            ) from exc

        if not location:
            raise FactoryLookupError(
                f"factory {self._endpoints.factory_name} reports no location"
            )

        logger.info(
            "factory_location_resolved",
            factory=self._endpoints.factory_name,
            location=location,
        )
        return location, credential
