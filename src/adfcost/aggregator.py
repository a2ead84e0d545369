from collections import defaultdict
from typing import Iterable

import structlog

from adfcost.categories import CELL_COLUMNS, ActivityType, MeterType
from adfcost.models import ActivityRunRecord, PipelineRunRecord, UsageRecord

logger = structlog.get_logger()

# unit suffix -> factor converting to hours
_UNIT_FACTORS: "tuple[tuple[str, float], ...]" = (
    ("hours", 1.0),
    ("hour", 1.0),
    ("minutes", 1.0 / 60),
    ("minute", 1.0 / 60),
    ("seconds", 1.0 / 3600),
    ("second", 1.0 / 3600),
)


def to_hours(duration: "float", unit: "str") -> "float":
    """
    normalizes a billable duration to hours. Units are matched on their
    suffix, so 'DIUHours' and 'coreHours' are hours too. Unknown units
    are returned unconverted.
    """
    lowered = unit.strip().lower()
    for suffix, factor in _UNIT_FACTORS:
        if lowered.endswith(suffix):
            return duration * factor

    logger.warning("unknown_duration_unit", unit=unit, duration=duration)
    return duration


class UsageAggregator:
    """
    UsageAggregator reduces the activity runs of one pipeline run into a
    UsageRecord.

    Billable durations are grouped by meter type, then activity type,
    and each of the nine known cells becomes one duration column. Cells
    that never occur leave their column unset (null), which is not the
    same as a zero total.
    """

    def aggregate(
        self,
        run: "PipelineRunRecord",
        activity_records: "Iterable[ActivityRunRecord]",
    ) -> "UsageRecord":
        usage = UsageRecord(
            pipeline_name=run.pipeline_name,
            run_id=run.run_id,
            run_start=run.run_start,
        )
        cells: "dict[MeterType, dict[ActivityType, float]]" = defaultdict(
            lambda: defaultdict(float)
        )

        for activity in activity_records:
            usage.total_activity_runs += 1
            if activity.is_self_hosted:
                usage.self_hosted_activity_runs += 1
            else:
                usage.azure_activity_runs += 1

            billing = activity.billing_reference
            if billing is None:
                continue

            for entry in billing.billable_duration:
                try:
                    meter = MeterType(entry.meter_type)
                    activity_type = ActivityType(billing.activity_type)
                except ValueError:
                    logger.warning(
                        "unmapped_billing_cell",
                        run_id=run.run_id,
                        meter_type=entry.meter_type,
                        activity_type=billing.activity_type,
                    )
                    continue

                cells[meter][activity_type] += to_hours(entry.duration, entry.unit)

        for meter, by_activity in cells.items():
            for activity_type, hours in by_activity.items():
                column = CELL_COLUMNS.get((meter, activity_type))
                if column is None:
                    logger.warning(
                        "unmapped_billing_cell",
                        run_id=run.run_id,
                        meter_type=meter.value,
                        activity_type=activity_type.value,
                    )
                    continue
                usage.durations[column] = hours

        return usage
