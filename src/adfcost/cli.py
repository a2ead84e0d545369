import argparse

from adfcost.config import Config


def parse_args(argv: "list[str] | None" = None) -> "Config":
    config = Config.from_env()

    parser = argparse.ArgumentParser(
        prog="adfcost",
        description="Data Factory pipeline run usage and cost report",
    )
    parser.add_argument(
        "--subscription-id",
        dest="subscription_id",
        default=config.subscription_id,
        help="Azure subscription id (default: $AZURE_SUBSCRIPTION_ID)",
    )
    parser.add_argument(
        "--resource-group",
        dest="resource_group",
        default=config.resource_group,
        help="Resource group of the factory (default: $ADF_RESOURCE_GROUP)",
    )
    parser.add_argument(
        "--factory-name",
        dest="factory_name",
        default=config.factory_name,
        help="Data factory name (default: $ADF_FACTORY_NAME)",
    )
    parser.add_argument(
        "--start-days",
        dest="start_days",
        type=int,
        default=config.start_days,
        help="Window start, in days before now (default: 30)",
    )
    parser.add_argument(
        "--end-days",
        dest="end_days",
        type=int,
        default=config.end_days,
        help="Window end, in days before now (default: 0)",
    )
    parser.add_argument(
        "--output",
        dest="output",
        default=config.output,
        help="CSV report path (default: adf_cost_report.csv)",
    )
    parser.add_argument(
        "--concurrency",
        dest="concurrency",
        type=int,
        default=config.concurrency,
        help="Parallel activity-run fetches (default: 1)",
    )
    parser.add_argument(
        "--http.timeout",
        dest="request_timeout",
        type=float,
        default=config.request_timeout,
        help="Per-request timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--http.max-retries",
        dest="max_retries",
        type=int,
        default=config.max_retries,
        help="Attempts per request for transient failures (default: 3)",
    )
    parser.add_argument(
        "--metrics.textfile",
        dest="metrics_textfile",
        default="",
        help="Write job metrics to this Prometheus textfile",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default=config.log_level,
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )

    args = parser.parse_args(argv)
    for name, value in vars(args).items():
        setattr(config, name, value)

    if config.start_days < 0 or config.end_days < 0:
        parser.error("--start-days and --end-days must not be negative")
    if config.start_days < config.end_days:
        parser.error("--start-days must be greater than or equal to --end-days")
    if config.missing_factory_settings:
        parser.error("missing " + ", ".join(config.missing_factory_settings))
    return config
