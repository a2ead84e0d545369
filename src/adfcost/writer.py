import csv

import structlog

from adfcost.report import Report

logger = structlog.get_logger()


def write_csv(report: "Report", path: "str") -> "None":
    """
    writes the report table as comma-delimited text. Null cells are
    written empty.
    """
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=list(report.columns))
        writer.writeheader()
        for row in report.table():
            writer.writerow({k: "" if v is None else v for k, v in row.items()})

    logger.info("report_written", path=path, rows=len(report.rows) + 2)
