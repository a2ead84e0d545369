import time

import httpx
import structlog

from adfcost.aggregator import UsageAggregator
from adfcost.config import Config
from adfcost.credential import CredentialManager, TokenSource
from adfcost.fetcher import PagedCollectionFetcher
from adfcost.http import RetryingSender
from adfcost.management import FactoryClient, FactoryEndpoints
from adfcost.metrics import JobMetrics
from adfcost.models import DateWindow, UsageRecord
from adfcost.pricing import PriceResolver
from adfcost.report import TOTAL_COST, Report, ReportAssembler
from adfcost.traversal import RunTraversal

logger = structlog.get_logger()


class CostReportJob:
    """
    CostReportJob runs one report end to end: credential, factory
    location, run traversal folded into usage records, regional prices
    and the final report. Any fatal error aborts the job; no partial
    report is produced.
    """

    def __init__(
        self,
        credentials: "CredentialManager",
        factory: "FactoryClient",
        traversal: "RunTraversal",
        prices: "PriceResolver",
        metrics: "JobMetrics",
        aggregator: "UsageAggregator | None" = None,
        assembler: "ReportAssembler | None" = None,
        client: "httpx.AsyncClient | None" = None,
    ) -> "None":
        self._credentials = credentials
        self._factory = factory
        self._traversal = traversal
        self._prices = prices
        self._metrics = metrics
        self._aggregator = aggregator or UsageAggregator()
        self._assembler = assembler or ReportAssembler()
        self._client = client

    @classmethod
    def from_config(
        cls,
        config: "Config",
        token_source: "TokenSource",
        metrics: "JobMetrics | None" = None,
    ) -> "CostReportJob":
        metrics = metrics or JobMetrics()
        client = httpx.AsyncClient(timeout=config.request_timeout)
        sender = RetryingSender(
            client,
            metrics=metrics,
            max_attempts=config.max_retries,
            retry_wait=config.retry_wait,
        )
        credentials = CredentialManager(token_source, metrics=metrics)
        endpoints = FactoryEndpoints(
            subscription_id=config.subscription_id,
            resource_group=config.resource_group,
            factory_name=config.factory_name,
            base_url=config.management_url,
        )
        return cls(
            credentials=credentials,
            factory=FactoryClient(sender, credentials, endpoints),
            traversal=RunTraversal(
                PagedCollectionFetcher(sender, credentials),
                endpoints,
                concurrency=config.concurrency,
            ),
            prices=PriceResolver(sender, pricing_url=config.pricing_url),
            metrics=metrics,
            client=client,
        )

    async def close(self) -> "None":
        """
        closes the underlying HTTP client.
        """
        if self._client is not None:
            await self._client.aclose()

    async def run(self, window: "DateWindow") -> "Report":
        started = time.monotonic()
        logger.info(
            "job_start",
            after=window.after.isoformat(),
            before=window.before.isoformat(),
        )

        credential = await self._credentials.acquire(None)
        location, credential = await self._factory.get_location(credential)

        usage_records: "list[UsageRecord]" = []
        async for run, activities in self._traversal.iter_runs(window, credential):
            usage_records.append(self._aggregator.aggregate(run, activities))

        price_table = await self._prices.resolve(location)
        report = self._assembler.assemble(usage_records, price_table)

        self._metrics.set_last_success(time.time())
        logger.info(
            "job_done",
            pipeline_runs=len(report.rows),
            total_cost=report.calculated_costs[TOTAL_COST],
            duration_seconds=round(time.monotonic() - started, 1),
        )
        return report
