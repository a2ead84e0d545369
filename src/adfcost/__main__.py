import asyncio

import structlog
from azure.identity import DefaultAzureCredential

from adfcost.cli import parse_args
from adfcost.errors import CostReportError
from adfcost.job import CostReportJob
from adfcost.logging import setup_logging
from adfcost.metrics import JobMetrics
from adfcost.models import DateWindow
from adfcost.writer import write_csv

logger = structlog.get_logger()


def main() -> "None":
    config = parse_args()
    setup_logging(config.log_level, factory=config.factory_name)

    metrics = JobMetrics()
    window = DateWindow.from_day_offsets(config.start_days, config.end_days)
    job = CostReportJob.from_config(config, DefaultAzureCredential(), metrics)

    async def _run() -> "None":
        try:
            report = await job.run(window)
        finally:
            await job.close()
        write_csv(report, config.output)

    try:
        asyncio.run(_run())
    except CostReportError as exc:
        logger.error("job_failed", error_type=type(exc).__name__, error=str(exc))
        raise SystemExit(f"adfcost: {exc}") from exc
    finally:
        if config.metrics_textfile:
            metrics.write_textfile(config.metrics_textfile)
            logger.info("metrics_written", path=config.metrics_textfile)


if __name__ == "__main__":
    main()
