from enum import Enum
from typing import TypeVar

EnumT = TypeVar("EnumT", bound=Enum)


class MeterType(str, Enum):
    AZURE_IR = "AzureIR"
    SELF_HOSTED_IR = "SelfHostedIR"
    GENERAL_PURPOSE = "GeneralPurpose"
    COMPUTED_OPTIMIZED = "ComputedOptimized"
    MEMORY_OPTIMIZED = "MemoryOptimized"

    @classmethod
    def _missing_(cls, value: "object") -> "MeterType | None":
        return _lookup_casefold(cls, value)


class ActivityType(str, Enum):
    DATA_MOVEMENT = "DataMovement"
    PIPELINE_ACTIVITY = "PipelineActivity"
    EXTERNAL_ACTIVITY = "ExternalActivity"
    EXECUTE_DATA_FLOW = "executedataflow"

    @classmethod
    def _missing_(cls, value: "object") -> "ActivityType | None":
        return _lookup_casefold(cls, value)


def _lookup_casefold(
    enum_cls: "type[EnumT]", value: "object"
) -> "EnumT | None":
    if not isinstance(value, str):
        return None
    for member in enum_cls:
        if member.value.casefold() == value.casefold():
            return member
    return None


TOTAL_ACTIVITY_RUNS = "TotalActivityRuns"
AZURE_ACTIVITY_RUNS = "AzureActivityRuns"
SELF_HOSTED_ACTIVITY_RUNS = "SelfHostedActivityRuns"

COUNT_COLUMNS: "tuple[str, ...]" = (
    TOTAL_ACTIVITY_RUNS,
    AZURE_ACTIVITY_RUNS,
    SELF_HOSTED_ACTIVITY_RUNS,
)

# each duration column is sourced from exactly one (meter type, activity
# type) cell of the billing references, in report order. The two
# ActivityRuns count columns come from the activity runs themselves and
# are priced per execution.
DURATION_COLUMNS: "dict[str, tuple[MeterType, ActivityType]]" = {
    "AzureIRDataMovement_DIUHour": (MeterType.AZURE_IR, ActivityType.DATA_MOVEMENT),
    "AzureIRPipeline_Hour": (MeterType.AZURE_IR, ActivityType.PIPELINE_ACTIVITY),
    "AzureIRExternal_Hour": (MeterType.AZURE_IR, ActivityType.EXTERNAL_ACTIVITY),
    "SelfHostedDataMovement_Hour": (
        MeterType.SELF_HOSTED_IR,
        ActivityType.DATA_MOVEMENT,
    ),
    "SelfHostedPipeline_Hour": (
        MeterType.SELF_HOSTED_IR,
        ActivityType.PIPELINE_ACTIVITY,
    ),
    "SelfHostedExternal_Hour": (
        MeterType.SELF_HOSTED_IR,
        ActivityType.EXTERNAL_ACTIVITY,
    ),
    "ComputeGeneralPurpose_coreHour": (
        MeterType.GENERAL_PURPOSE,
        ActivityType.EXECUTE_DATA_FLOW,
    ),
    "ComputeComputedOptimized_coreHour": (
        MeterType.COMPUTED_OPTIMIZED,
        ActivityType.EXECUTE_DATA_FLOW,
    ),
    "ComputeMemoryOptimized_coreHour": (
        MeterType.MEMORY_OPTIMIZED,
        ActivityType.EXECUTE_DATA_FLOW,
    ),
}

CELL_COLUMNS: "dict[tuple[MeterType, ActivityType], str]" = {
    cell: column for column, cell in DURATION_COLUMNS.items()
}

# the eleven columns that carry a unit price
COST_COLUMNS: "tuple[str, ...]" = (
    AZURE_ACTIVITY_RUNS,
    SELF_HOSTED_ACTIVITY_RUNS,
    *DURATION_COLUMNS,
)
