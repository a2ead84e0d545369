from typing import Any, Callable

import httpx
import pytest
import respx

from adfcost.errors import PriceResolutionError, RegionMismatchError
from adfcost.http import RetryingSender
from adfcost.pricing import (
    OFFER_KEYS,
    PRICING_URL,
    PriceResolver,
    extract_prices,
    match_region_slug,
)


class TestMatchRegionSlug:
    @pytest.mark.parametrize("location", ["EastUS", "eastus", "East US"])
    def test_matches_display_name_without_spaces(
        self, location: "str", catalog: "dict[str, Any]"
    ) -> "None":
        assert match_region_slug(catalog, location) == "us-east"

    def test_unmatched_location_raises(self, catalog: "dict[str, Any]") -> "None":
        with pytest.raises(RegionMismatchError):
            match_region_slug(catalog, "EastUS2")

    def test_region_mismatch_is_a_price_resolution_error(self) -> "None":
        assert issubclass(RegionMismatchError, PriceResolutionError)


class TestExtractPrices:
    def test_orchestration_prices_are_per_execution(
        self, make_catalog: "Callable[..., dict[str, Any]]"
    ) -> "None":
        catalog = make_catalog(
            overrides={"AzureActivityRuns": 0.50, "SelfHostedActivityRuns": 1.50},
            price=0.25,
        )

        prices = extract_prices(catalog, "us-east")

        assert len(prices) == 11
        assert prices["AzureActivityRuns"] == pytest.approx(0.0005)
        assert prices["SelfHostedActivityRuns"] == pytest.approx(0.0015)
        assert prices["AzureIRDataMovement_DIUHour"] == 0.25

    def test_uses_the_selected_region(self, catalog: "dict[str, Any]") -> "None":
        prices = extract_prices(catalog, "europe-west")
        assert prices["AzureIRPipeline_Hour"] == 99.0

    def test_missing_offer_raises(self, catalog: "dict[str, Any]") -> "None":
        del catalog["offers"][OFFER_KEYS["ComputeMemoryOptimized_coreHour"]]
        with pytest.raises(PriceResolutionError):
            extract_prices(catalog, "us-east")


class TestPriceResolver:
    @pytest.mark.asyncio
    @respx.mock
    async def test_resolves_price_table(
        self,
        catalog: "dict[str, Any]",
        make_sender: "Callable[..., RetryingSender]",
    ) -> "None":
        respx.get(PRICING_URL).mock(return_value=httpx.Response(200, json=catalog))

        table = await PriceResolver(make_sender()).resolve("EastUS")

        assert table.region_slug == "us-east"
        assert set(table.category_unit_price) == set(OFFER_KEYS)

    @pytest.mark.asyncio
    @respx.mock
    async def test_unmatched_region_raises(
        self,
        catalog: "dict[str, Any]",
        make_sender: "Callable[..., RetryingSender]",
    ) -> "None":
        respx.get(PRICING_URL).mock(return_value=httpx.Response(200, json=catalog))

        with pytest.raises(RegionMismatchError):
            await PriceResolver(make_sender()).resolve("BrazilSouth")

    @pytest.mark.asyncio
    @respx.mock
    async def test_catalog_download_failure_raises(
        self, make_sender: "Callable[..., RetryingSender]"
    ) -> "None":
        respx.get(PRICING_URL).mock(return_value=httpx.Response(404))

        with pytest.raises(PriceResolutionError):
            await PriceResolver(make_sender()).resolve("EastUS")

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="not json"),
            httpx.Response(200, json=["East US"]),
        ],
    )
    @pytest.mark.asyncio
    @respx.mock
    async def test_unreadable_catalog_raises(
        self,
        response: "httpx.Response",
        make_sender: "Callable[..., RetryingSender]",
    ) -> "None":
        respx.get(PRICING_URL).mock(return_value=response)

        with pytest.raises(PriceResolutionError):
            await PriceResolver(make_sender()).resolve("EastUS")


class TestMatchRegionSlugMalformed:
    def test_region_without_slug_raises(self, catalog: "dict[str, Any]") -> "None":
        catalog["regions"] = [{"DisplayName": "East US"}]
        with pytest.raises(PriceResolutionError):
            match_region_slug(catalog, "EastUS")
