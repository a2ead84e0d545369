from typing import Any, Mapping

import httpx
import structlog

from adfcost.categories import AZURE_ACTIVITY_RUNS, SELF_HOSTED_ACTIVITY_RUNS
from adfcost.errors import PriceResolutionError, RegionMismatchError
from adfcost.http import RetryingSender, json_object
from adfcost.models import PriceTable

logger = structlog.get_logger()

PRICING_URL = "https://azure.microsoft.com/api/v3/pricing/data-factory/calculator/"

# orchestration is listed per 1000 executions, reports price per execution
PER_EXECUTION_SCALE = 0.001

# report column -> offer key in the rate catalog
OFFER_KEYS: "dict[str, str]" = {
    AZURE_ACTIVITY_RUNS: "cloud-orchestration-activity-run",
    SELF_HOSTED_ACTIVITY_RUNS: "self-hosted-orchestration-activity-run",
    "AzureIRDataMovement_DIUHour": "cloud-data-movement",
    "AzureIRPipeline_Hour": "cloud-pipeline-activity",
    "AzureIRExternal_Hour": "cloud-external-pipeline-activity",
    "SelfHostedDataMovement_Hour": "self-hosted-data-movement",
    "SelfHostedPipeline_Hour": "self-hosted-pipeline-activity",
    "SelfHostedExternal_Hour": "self-hosted-external-pipeline-activity",
    "ComputeGeneralPurpose_coreHour": "data-flow-general-purpose",
    "ComputeComputedOptimized_coreHour": "data-flow-compute-optimized",
    "ComputeMemoryOptimized_coreHour": "data-flow-memory-optimized",
}

_PER_THOUSAND_COLUMNS = frozenset({AZURE_ACTIVITY_RUNS, SELF_HOSTED_ACTIVITY_RUNS})


def _squash(name: "str") -> "str":
    return name.replace(" ", "").casefold()


def match_region_slug(catalog: "Mapping[str, Any]", region: "str") -> "str":
    """
    returns the slug of the catalog region whose display name, with
    spaces stripped, equals the factory location.
    """
    wanted = _squash(region)
    for entry in catalog.get("regions") or []:
        display_name = entry.get("DisplayName") or entry.get("displayName") or ""
        if display_name and _squash(display_name) == wanted:
            slug = entry.get("slug")
            if not slug:
                raise PriceResolutionError(
                    f"pricing region {display_name!r} has no slug"
                )
            return slug

    raise RegionMismatchError(f"no pricing region matches location {region!r}")


def extract_prices(
    catalog: "Mapping[str, Any]",
    slug: "str",
    offer_keys: "Mapping[str, str]" = OFFER_KEYS,
) -> "dict[str, float]":
    offers = catalog.get("offers") or {}
    prices: "dict[str, float]" = {}

    for column, offer_key in offer_keys.items():
        try:
            value = float(offers[offer_key]["prices"][slug]["value"])
        except (KeyError, TypeError, ValueError) as exc:
            raise PriceResolutionError(
                f"catalog has no price for offer {offer_key!r} in region {slug!r}"
            ) from exc

        if column in _PER_THOUSAND_COLUMNS:
            value *= PER_EXECUTION_SCALE
        prices[column] = value

    return prices


class PriceResolver:
    """
    PriceResolver downloads the public rate catalog and turns it into
    the unit prices of a single region.
    """

    def __init__(
        self,
        sender: "RetryingSender",
        pricing_url: "str" = PRICING_URL,
        offer_keys: "Mapping[str, str] | None" = None,
    ) -> "None":
        self._sender = sender
        self._pricing_url = pricing_url
        self._offer_keys = dict(offer_keys or OFFER_KEYS)

    async def fetch_catalog(self) -> "dict[str, Any]":
        try:
            resp = await self._sender.send("GET", self._pricing_url, "pricing")
        except httpx.HTTPError as exc:
            raise PriceResolutionError(
                f"rate catalog download failed: {exc!r}"
            ) from exc

        if not resp.is_success:
            raise PriceResolutionError(
                f"rate catalog download returned HTTP {resp.status_code}"
            )
        try:
            return json_object(resp)
        except ValueError as exc:
            raise PriceResolutionError(
                f"rate catalog is not a JSON object: {exc!r}"
            ) from exc

    async def resolve(self, region_display_name: "str") -> "PriceTable":
        catalog = await self.fetch_catalog()
        slug = match_region_slug(catalog, region_display_name)
        prices = extract_prices(catalog, slug, self._offer_keys)
        logger.info("prices_resolved", region=region_display_name, slug=slug)
        return PriceTable(region_slug=slug, category_unit_price=prices)
