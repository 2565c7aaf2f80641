"""Date and time arithmetic for assistants."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta
from pydantic import Field

from toolhub.tools.base import BuiltinTool, ToolParams

DEFAULT_DISPLAY_FORMAT = "%b %d, %Y, %I:%M:%S %p"

_UNIT_SECONDS = {
    "minutes": 60,
    "hours": 3600,
    "days": 86400,
    "weeks": 604800,
}


class DateOperation(str, Enum):
    NOW = "now"
    FORMAT = "format"
    DIFF = "diff"
    ADD = "add"


class TimeUnit(str, Enum):
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


class DateTimeParams(ToolParams):
    operation: DateOperation = Field(
        ...,
        description=(
            "Operation: 'now' = current time, 'format' = format a date, "
            "'diff' = difference between two dates, 'add' = add time to a date"
        ),
    )
    date: Optional[str] = Field(None, description="ISO 8601 date string (e.g. '2024-03-15T10:30:00Z')")
    format: Optional[str] = Field(
        None,
        description="strftime format string (e.g. '%Y-%m-%d', '%A %d %B %Y'). Default: ISO 8601",
    )
    amount: Optional[float] = Field(None, description="Amount of time to add (can be negative to subtract)")
    unit: Optional[TimeUnit] = Field(None, description="Time unit for diff/add operations")
    date2: Optional[str] = Field(None, description="Second ISO 8601 date for 'diff' operation")


def parse_iso(value: str) -> datetime:
    """Parse an ISO 8601 string; naive values are taken as UTC."""
    parsed = isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso_utc(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def timestamp_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def render(value: datetime, fmt: Optional[str]) -> str:
    if fmt:
        return value.strftime(fmt)
    return value.isoformat(timespec="seconds")


def difference(start: datetime, end: datetime, unit: TimeUnit) -> int:
    """Whole units from start to end, truncated toward zero."""
    if unit in (TimeUnit.MONTHS, TimeUnit.YEARS):
        delta = relativedelta(end, start)
        if unit == TimeUnit.YEARS:
            return delta.years
        return delta.years * 12 + delta.months

    seconds = (end - start).total_seconds()
    return int(seconds / _UNIT_SECONDS[unit.value])


def shift(value: datetime, amount: float, unit: TimeUnit) -> datetime:
    if unit == TimeUnit.YEARS:
        return value + relativedelta(years=int(amount))
    if unit == TimeUnit.MONTHS:
        return value + relativedelta(months=int(amount))
    return value + timedelta(seconds=amount * _UNIT_SECONDS[unit.value])


async def run_date_operation(params: DateTimeParams, context) -> dict:
    try:
        if params.operation == DateOperation.NOW:
            now = datetime.now(timezone.utc)
            return {
                "success": True,
                "result": render(now, params.format),
                "timestamp": timestamp_ms(now),
                "iso": to_iso_utc(now),
            }

        if params.operation == DateOperation.FORMAT:
            if not params.date:
                return {"success": False, "error": "'date' parameter is required for format operation"}
            date = parse_iso(params.date)
            return {
                "success": True,
                "result": date.strftime(params.format or DEFAULT_DISPLAY_FORMAT),
                "timestamp": timestamp_ms(date),
            }

        if params.operation == DateOperation.DIFF:
            if not params.date or not params.date2:
                return {"success": False, "error": "'date' and 'date2' are required for diff operation"}
            unit = params.unit or TimeUnit.DAYS
            value = difference(parse_iso(params.date), parse_iso(params.date2), unit)
            return {
                "success": True,
                "result": f"{value} {unit.value}",
                "difference": value,
                "unit": unit.value,
            }

        # DateOperation.ADD
        if not params.date:
            return {"success": False, "error": "'date' parameter is required for add operation"}
        if params.amount is None:
            return {"success": False, "error": "'amount' parameter is required for add operation"}
        unit = params.unit or TimeUnit.DAYS
        shifted = shift(parse_iso(params.date), params.amount, unit)
        return {
            "success": True,
            "result": render(shifted, params.format),
            "timestamp": timestamp_ms(shifted),
            "iso": to_iso_utc(shifted),
        }
    except (ValueError, OverflowError) as e:
        return {"success": False, "error": str(e) or "Date operation failed"}


date_time_tool = BuiltinTool(
    name="date_time",
    display_name="Date & Time",
    description=(
        "Get current date/time, format dates, calculate differences between dates, or "
        "add/subtract time. Useful for scheduling, time calculations, and date formatting."
    ),
    parameters=DateTimeParams,
    handler=run_date_operation,
)
