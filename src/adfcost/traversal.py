import asyncio
from typing import AsyncIterator

import structlog

from adfcost.fetcher import PagedCollectionFetcher
from adfcost.management import FactoryEndpoints
from adfcost.models import ActivityRunRecord, Credential, DateWindow, PipelineRunRecord

logger = structlog.get_logger()

RunWithActivities = tuple[PipelineRunRecord, list[ActivityRunRecord]]

# log traversal progress every N runs
_PROGRESS_EVERY = 100


class RunTraversal:
    """
    RunTraversal lists every pipeline run of the window and then, for
    each run in discovery order, every activity run it contains.

    With concurrency > 1 the activity fetches of consecutive runs are
    issued in batches of that size. Results are still yielded in
    discovery order, and all batches share the serialized
    CredentialManager behind the fetcher. A failed fetch cancels the
    rest of its batch and is raised as is.
    """

    def __init__(
        self,
        fetcher: "PagedCollectionFetcher",
        endpoints: "FactoryEndpoints",
        concurrency: "int" = 1,
    ) -> "None":
        self._fetcher = fetcher
        self._endpoints = endpoints
        self._concurrency = max(1, concurrency)

    async def list_pipeline_runs(
        self,
        window: "DateWindow",
        credential: "Credential | None",
    ) -> "tuple[list[PipelineRunRecord], Credential]":
        runs, credential = await self._fetcher.fetch_all(
            self._endpoints.pipeline_runs(),
            window.as_filter(),
            credential,
            parse=PipelineRunRecord.from_api,
            endpoint="pipeline_runs",
        )
        logger.info(
            "pipeline_runs_fetched",
            count=len(runs),
            after=window.after.isoformat(),
            before=window.before.isoformat(),
        )
        return runs, credential

    async def list_activity_runs(
        self,
        run: "PipelineRunRecord",
        window: "DateWindow",
        credential: "Credential | None",
    ) -> "tuple[list[ActivityRunRecord], Credential]":
        return await self._fetcher.fetch_all(
            self._endpoints.activity_runs(run.run_id),
            window.as_filter(),
            credential,
            parse=ActivityRunRecord.from_api,
            endpoint="activity_runs",
        )

    async def iter_runs(
        self,
        window: "DateWindow",
        credential_seed: "Credential | None" = None,
    ) -> "AsyncIterator[RunWithActivities]":
        """
        yields (run, activity runs) pairs in discovery order, so callers
        can fold each run and drop its activity runs right away.
        """
        runs, credential = await self.list_pipeline_runs(window, credential_seed)

        for offset in range(0, len(runs), self._concurrency):
            batch = runs[offset : offset + self._concurrency]
            # the first failure cancels the rest of the batch
            try:
                async with asyncio.TaskGroup() as group:
                    tasks = [
                        group.create_task(
                            self.list_activity_runs(run, window, credential)
                        )
                        for run in batch
                    ]
            except BaseExceptionGroup as failed:
                raise failed.exceptions[0]

            for run, task in zip(batch, tasks):
                activities, credential = task.result()
                yield run, activities

            done = offset + len(batch)
            if done % _PROGRESS_EVERY < len(batch) or done == len(runs):
                logger.info("traversal_progress", done=done, total=len(runs))

    async def traverse(
        self,
        window: "DateWindow",
        credential_seed: "Credential | None" = None,
    ) -> "list[RunWithActivities]":
        return [item async for item in self.iter_runs(window, credential_seed)]
