import os
from dataclasses import dataclass

from adfcost.management import MANAGEMENT_BASE_URL
from adfcost.pricing import PRICING_URL


@dataclass
class Config:
    subscription_id: "str" = ""
    resource_group: "str" = ""
    factory_name: "str" = ""

    # window is [now - start_days, now - end_days]
    start_days: "int" = 30
    end_days: "int" = 0

    output: "str" = "adf_cost_report.csv"
    # optional node exporter textfile for job metrics
    metrics_textfile: "str" = ""
    log_level: "str" = "info"

    # parallel activity-run fetches, 1 keeps the traversal sequential
    concurrency: "int" = 1
    # per request, in seconds
    request_timeout: "float" = 30.0
    max_retries: "int" = 3
    # backoff multiplier in seconds
    retry_wait: "float" = 1.0

    management_url: "str" = MANAGEMENT_BASE_URL
    pricing_url: "str" = PRICING_URL

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
            resource_group=os.environ.get("ADF_RESOURCE_GROUP", ""),
            factory_name=os.environ.get("ADF_FACTORY_NAME", ""),
            pricing_url=os.environ.get("ADFCOST_PRICING_URL", "") or PRICING_URL,
        )

    @property
    def missing_factory_settings(self) -> "list[str]":
        names = {
            "subscription id": self.subscription_id,
            "resource group": self.resource_group,
            "factory name": self.factory_name,
        }
        return [name for name, value in names.items() if not value]
