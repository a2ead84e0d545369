import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

# activity runs executed on this runtime are billed as self-hosted
SELF_HOSTED_RUNTIME = "SelfHostedRuntime"

_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_timestamp(value: "str") -> "datetime":
    """
    parses the ISO-8601 timestamps returned by the management API.
    They may carry up to 7 fractional digits and a trailing 'Z', which
    datetime.fromisoformat does not accept on every interpreter.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, 1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True, slots=True)
class DateWindow:
    """
    DateWindow is the lastUpdated filter applied to every run query.
    """

    after: "datetime"
    before: "datetime"

    def __post_init__(self) -> "None":
        if self.after > self.before:
            raise ValueError(
                f"window start {self.after.isoformat()} is after "
                f"window end {self.before.isoformat()}"
            )

    @classmethod
    def from_day_offsets(
        cls,
        start_days: "int",
        end_days: "int",
        now: "datetime | None" = None,
    ) -> "DateWindow":
        """
        builds the window [now - start_days, now - end_days] in UTC.
        """
        now = now or datetime.now(timezone.utc)
        return cls(
            after=now - timedelta(days=start_days),
            before=now - timedelta(days=end_days),
        )

    def as_filter(self) -> "dict[str, str]":
        return {
            "lastUpdatedAfter": self.after.isoformat(),
            "lastUpdatedBefore": self.before.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class Credential:
    """
    Credential holds a ready-to-send Authorization header value and
    the moment it stops being valid.
    """

    auth_header_value: "str"
    expires_at_utc: "datetime"

    def is_fresh(self, now: "datetime", margin: "timedelta") -> "bool":
        return self.expires_at_utc - now >= margin


@dataclass(frozen=True, slots=True)
class PipelineRunRecord:
    run_id: "str"
    pipeline_name: "str"
    run_start: "datetime | None"

    @classmethod
    def from_api(cls, item: "Mapping[str, Any]") -> "PipelineRunRecord":
        run_start = item.get("runStart")
        return cls(
            run_id=item["runId"],
            pipeline_name=item.get("pipelineName") or "unknown",
            run_start=parse_timestamp(run_start) if run_start else None,
        )


@dataclass(frozen=True, slots=True)
class BillableDuration:
    meter_type: "str"
    duration: "float"
    unit: "str"


@dataclass(frozen=True, slots=True)
class BillingReference:
    activity_type: "str"
    billable_duration: "tuple[BillableDuration, ...]" = ()

    @classmethod
    def from_api(cls, item: "Mapping[str, Any]") -> "BillingReference":
        return cls(
            activity_type=item.get("activityType") or "",
            billable_duration=tuple(
                BillableDuration(
                    meter_type=entry.get("meterType") or "",
                    duration=float(entry.get("duration") or 0.0),
                    unit=entry.get("unit") or "",
                )
                for entry in item.get("billableDuration") or []
            ),
        )


@dataclass(frozen=True, slots=True)
class ActivityRunRecord:
    """
    ActivityRunRecord keeps only the billing-relevant part of an
    activity run. billing_reference is None for activity runs that never
    reported one (queued, cancelled or failed before start).
    """

    effective_integration_runtime: "str"
    billing_reference: "BillingReference | None"

    @property
    def is_self_hosted(self) -> "bool":
        return self.effective_integration_runtime == SELF_HOSTED_RUNTIME

    @classmethod
    def from_api(cls, item: "Mapping[str, Any]") -> "ActivityRunRecord":
        output = item.get("output") or {}
        billing = output.get("billingReference")
        return cls(
            effective_integration_runtime=output.get("effectiveIntegrationRuntime")
            or "",
            billing_reference=BillingReference.from_api(billing) if billing else None,
        )


@dataclass(slots=True)
class UsageRecord:
    """
    UsageRecord is the fixed-shape usage of a single pipeline run.
    Duration columns are in hours and stay None when the run never
    reported the matching (meter type, activity type) pair.
    """

    pipeline_name: "str"
    run_id: "str"
    run_start: "datetime | None"
    total_activity_runs: "int" = 0
    azure_activity_runs: "int" = 0
    self_hosted_activity_runs: "int" = 0
    # column name -> total hours, only observed columns are present
    durations: "dict[str, float]" = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PriceTable:
    region_slug: "str"
    # column name -> unit price (per execution or per hour)
    category_unit_price: "Mapping[str, float]"
