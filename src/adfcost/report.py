from dataclasses import dataclass, field
from typing import Any, Iterable

from adfcost.categories import (
    AZURE_ACTIVITY_RUNS,
    COST_COLUMNS,
    COUNT_COLUMNS,
    DURATION_COLUMNS,
    SELF_HOSTED_ACTIVITY_RUNS,
    TOTAL_ACTIVITY_RUNS,
)
from adfcost.models import PriceTable, UsageRecord

TOTAL_USAGE_LABEL = "Total Usage"
CALCULATED_COSTS_LABEL = "Calculated Costs"
TOTAL_COST = "Total Cost"

RUN_COLUMNS: "tuple[str, ...]" = ("PipelineName", "RunId", "RunStart")
USAGE_COLUMNS: "tuple[str, ...]" = (*COUNT_COLUMNS, *DURATION_COLUMNS)


def usage_value(record: "UsageRecord", column: "str") -> "float | int | None":
    """
    returns a usage column of a record, None for unobserved durations.
    """
    if column == TOTAL_ACTIVITY_RUNS:
        return record.total_activity_runs
    if column == AZURE_ACTIVITY_RUNS:
        return record.azure_activity_runs
    if column == SELF_HOSTED_ACTIVITY_RUNS:
        return record.self_hosted_activity_runs
    if column in DURATION_COLUMNS:
        return record.durations.get(column)
    raise KeyError(column)


def _sum_observed(values: "Iterable[float | int | None]") -> "float | int | None":
    observed = [v for v in values if v is not None]
    if not observed:
        return None
    return sum(observed)


@dataclass
class Report:
    """
    Report holds the per-run usage rows followed by the two summary
    rows. Column names and their order are stable.
    """

    rows: "list[UsageRecord]"
    total_usage: "dict[str, float | int | None]"
    calculated_costs: "dict[str, float | None]"
    price_table: "PriceTable | None" = None
    columns: "tuple[str, ...]" = field(
        default=(*RUN_COLUMNS, *USAGE_COLUMNS, TOTAL_COST), init=False
    )

    def table(self) -> "list[dict[str, Any]]":
        table: "list[dict[str, Any]]" = []
        for record in self.rows:
            row: "dict[str, Any]" = dict.fromkeys(self.columns)
            row["PipelineName"] = record.pipeline_name
            row["RunId"] = record.run_id
            row["RunStart"] = (
                record.run_start.isoformat() if record.run_start else None
            )
            for column in USAGE_COLUMNS:
                row[column] = usage_value(record, column)
            table.append(row)

        totals: "dict[str, Any]" = dict.fromkeys(self.columns)
        totals["PipelineName"] = TOTAL_USAGE_LABEL
        totals.update(self.total_usage)
        table.append(totals)

        costs: "dict[str, Any]" = dict.fromkeys(self.columns)
        costs["PipelineName"] = CALCULATED_COSTS_LABEL
        costs.update(self.calculated_costs)
        table.append(costs)
        return table


class ReportAssembler:
    def assemble(
        self,
        usage_records: "Iterable[UsageRecord]",
        price_table: "PriceTable",
    ) -> "Report":
        """
        sums every usage column across runs (nulls count as zero, a
        column no run observed stays null) and prices the eleven
        cost-bearing totals.
        """
        rows = list(usage_records)
        total_usage: "dict[str, float | int | None]" = {
            column: sum(usage_value(r, column) for r in rows)
            for column in COUNT_COLUMNS
        }
        for column in DURATION_COLUMNS:
            total_usage[column] = _sum_observed(usage_value(r, column) for r in rows)

        calculated_costs: "dict[str, float | None]" = {}
        for column in COST_COLUMNS:
            total = total_usage[column]
            if total is None:
                calculated_costs[column] = None
                continue
            calculated_costs[column] = total * price_table.category_unit_price[column]

        calculated_costs[TOTAL_COST] = sum(
            cost for cost in calculated_costs.values() if cost is not None
        )
        return Report(
            rows=rows,
            total_usage=total_usage,
            calculated_costs=calculated_costs,
            price_table=price_table,
        )
