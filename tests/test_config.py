import pytest

from adfcost.cli import parse_args
from adfcost.config import Config
from adfcost.pricing import PRICING_URL


class TestConfigFromEnv:
    def test_defaults(self, monkeypatch: "pytest.MonkeyPatch") -> "None":
        for name in (
            "AZURE_SUBSCRIPTION_ID",
            "ADF_RESOURCE_GROUP",
            "ADF_FACTORY_NAME",
            "ADFCOST_PRICING_URL",
        ):
            monkeypatch.delenv(name, raising=False)
        config = Config.from_env()
        assert config.subscription_id == ""
        assert config.pricing_url == PRICING_URL
        assert config.missing_factory_settings == [
            "subscription id",
            "resource group",
            "factory name",
        ]

    def test_reads_env_vars(self, monkeypatch: "pytest.MonkeyPatch") -> "None":
        monkeypatch.setenv("AZURE_SUBSCRIPTION_ID", "sub-1")
        monkeypatch.setenv("ADF_RESOURCE_GROUP", "rg")
        monkeypatch.setenv("ADF_FACTORY_NAME", "adf")
        monkeypatch.setenv("ADFCOST_PRICING_URL", "https://prices.test/")
        config = Config.from_env()
        assert (config.subscription_id, config.resource_group, config.factory_name) == (
            "sub-1",
            "rg",
            "adf",
        )
        assert config.pricing_url == "https://prices.test/"
        assert config.missing_factory_settings == []


class TestParseArgs:
    @pytest.fixture(autouse=True)
    def _factory_env(self, monkeypatch: "pytest.MonkeyPatch") -> "None":
        monkeypatch.setenv("AZURE_SUBSCRIPTION_ID", "sub-1")
        monkeypatch.setenv("ADF_RESOURCE_GROUP", "rg")
        monkeypatch.setenv("ADF_FACTORY_NAME", "adf")

    def test_defaults_from_env(self) -> "None":
        config = parse_args([])
        assert config.factory_name == "adf"
        assert (config.start_days, config.end_days) == (30, 0)
        assert config.concurrency == 1
        assert config.output == "adf_cost_report.csv"

    def test_flags_override(self) -> "None":
        config = parse_args(
            [
                "--factory-name",
                "other",
                "--start-days",
                "7",
                "--end-days",
                "1",
                "--http.max-retries",
                "5",
                "--metrics.textfile",
                "/tmp/adfcost.prom",
                "--log.level",
                "debug",
            ]
        )
        assert config.factory_name == "other"
        assert (config.start_days, config.end_days) == (7, 1)
        assert config.max_retries == 5
        assert config.metrics_textfile == "/tmp/adfcost.prom"
        assert config.log_level == "debug"

    def test_inverted_offsets_are_rejected(self) -> "None":
        with pytest.raises(SystemExit):
            parse_args(["--start-days", "1", "--end-days", "2"])

    def test_missing_factory_is_rejected(
        self, monkeypatch: "pytest.MonkeyPatch"
    ) -> "None":
        monkeypatch.delenv("ADF_FACTORY_NAME")
        with pytest.raises(SystemExit):
            parse_args([])
