"""
Prüfung von Import-Dateien, bevor sie den Speicher erreichen.
"""
import json
from datetime import date
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field, ValidationError, model_validator

from domain import (
    DayRecord, DayStatus, DayType, DEFAULT_CALENDAR_YEAR, DEFAULT_START_TIME,
    RequestStatus, SchedulePeriod, ScheduleType, UserConfig, WEEKDAYS,
)
from logic import day_type_for_date
from migrate import upgrade_legacy_payload

MAX_IMPORT_FILE_SIZE = 5 * 1024 * 1024
MAX_REPORTED_ERRORS = 3

DATE_PATTERN = r'^\d{4}-\d{2}-\d{2}$'
TIME_PATTERN = r'^\d{2}:\d{2}$'

DateStr = Annotated[str, Field(pattern=DATE_PATTERN)]


class ImportRejected(ValueError):
    pass


# --- Schema ---

class DayTypeEntry(BaseModel):
    day_type: DayType = Field(alias="dayType")


class WeeklyConfigSchema(BaseModel):
    monday: DayTypeEntry
    tuesday: DayTypeEntry
    wednesday: DayTypeEntry
    thursday: DayTypeEntry
    friday: DayTypeEntry


class SchedulePeriodSchema(BaseModel):
    id: str = Field(max_length=100)
    start_date: str = Field(alias="startDate", pattern=DATE_PATTERN)
    end_date: str = Field(alias="endDate", pattern=DATE_PATTERN)
    schedule_type: ScheduleType = Field(alias="scheduleType")


class UserConfigSchema(BaseModel):
    calendar_year: int = Field(DEFAULT_CALENDAR_YEAR, alias="calendarYear", ge=1900, le=2999)
    default_start_time: str = Field(DEFAULT_START_TIME, alias="defaultStartTime", pattern=TIME_PATTERN)
    weekly_config: WeeklyConfigSchema = Field(alias="weeklyConfig")
    schedule_periods: list[SchedulePeriodSchema] = Field(alias="schedulePeriods", max_length=100)
    total_vacation_days: int = Field(alias="totalVacationDays", ge=0, le=365)
    used_vacation_days: int = Field(alias="usedVacationDays", ge=0, le=365)
    total_ap_hours: float = Field(alias="totalAPHours", ge=0, le=500)
    used_ap_hours: float = Field(alias="usedAPHours", ge=0, le=500)
    flexibility_hours: float = Field(alias="flexibilityHours", ge=0, le=25)
    used_flex_hours: float = Field(0.0, alias="usedFlexHours", ge=0, le=25)
    holidays: list[DateStr] = Field(max_length=100)

    @model_validator(mode="after")
    def check_holiday_format(self):
        for h in self.holidays:
            date.fromisoformat(h)
        return self

    @model_validator(mode="after")
    def check_pools(self):
        if self.used_vacation_days > self.total_vacation_days:
            raise ValueError("usedVacationDays übersteigt totalVacationDays")
        if self.used_ap_hours > self.total_ap_hours:
            raise ValueError("usedAPHours übersteigt totalAPHours")
        if self.used_flex_hours > self.flexibility_hours:
            raise ValueError("usedFlexHours übersteigt flexibilityHours")
        return self


class DaySchema(BaseModel):
    date: str = Field(pattern=DATE_PATTERN)
    theoretical_hours: float | None = Field(None, alias="theoreticalHours", ge=0, le=24)
    start_time: str | None = Field(None, alias="startTime", pattern=TIME_PATTERN)
    end_time: str | None = Field(None, alias="endTime", pattern=TIME_PATTERN)
    start_time2: str | None = Field(None, alias="startTime2", pattern=TIME_PATTERN)
    end_time2: str | None = Field(None, alias="endTime2", pattern=TIME_PATTERN)
    day_type: DayType | None = Field(None, alias="dayType")
    day_status: DayStatus = Field(alias="dayStatus")
    request_status: RequestStatus | None = Field(None, alias="requestStatus")
    ap_hours: float | None = Field(None, alias="apHours", ge=0, le=24)
    flex_hours: float | None = Field(None, alias="flexHours", ge=0, le=24)
    other_hours: float | None = Field(None, alias="otherHours", ge=0, le=24)
    notes: str | None = Field(None, max_length=1000)
    other_comment: str | None = Field(None, alias="otherComment", max_length=255)

    @model_validator(mode="after")
    def check_date(self):
        date.fromisoformat(self.date)
        return self


class ExportDocumentSchema(BaseModel):
    config: UserConfigSchema
    days_data: dict[str, DaySchema] = Field(alias="daysData")
    export_date: str = Field(alias="exportDate")
    version: str = Field(max_length=20)

    @model_validator(mode="after")
    def check_day_keys(self):
        for key, day in self.days_data.items():
            if key != day.date:
                raise ValueError(f"Schlüssel {key} passt nicht zum Datum {day.date}")
        return self


# --- Fehlermeldung ---

def summarize_errors(exc):
    """
    Kurze, lesbare Zusammenfassung der ersten (max. 3) fehlerhaften Felder.
    """
    issues = []
    for err in exc.errors()[:MAX_REPORTED_ERRORS]:
        path = ".".join(str(p) for p in err["loc"])
        issues.append(f"{path}: {err['msg']}" if path else err["msg"])
    return "Ungültige Daten: " + "; ".join(issues)


# --- Umwandlung in die Domäne ---

def _plain(value):
    return value.value if isinstance(value, Enum) else value


def config_from_schema(schema):
    return UserConfig(
        calendar_year=schema.calendar_year,
        default_start_time=schema.default_start_time,
        weekly_config={day: getattr(schema.weekly_config, day).day_type for day in WEEKDAYS},
        schedule_periods=tuple(
            SchedulePeriod(
                id=p.id,
                start_date=date.fromisoformat(p.start_date),
                end_date=date.fromisoformat(p.end_date),
                schedule_type=p.schedule_type,
            )
            for p in schema.schedule_periods
        ),
        holidays=tuple(schema.holidays),
        total_vacation_days=schema.total_vacation_days,
        used_vacation_days=schema.used_vacation_days,
        total_ap_hours=schema.total_ap_hours,
        used_ap_hours=schema.used_ap_hours,
        flexibility_hours=schema.flexibility_hours,
        used_flex_hours=schema.used_flex_hours,
    )


def record_from_schema(schema, config):
    data = {k: _plain(v) for k, v in schema.model_dump(by_alias=True).items()}
    # dayType fehlt im kanonischen Export, wenn er aus dem Wochenmuster folgt
    return DayRecord.from_dict(data, default_day_type=day_type_for_date(schema.date, config))


def parse_import(raw):
    """
    Prüft eine Import-Datei (bytes oder str) und liefert (UserConfig, Tage).
    Wirft ImportRejected, ohne etwas zu speichern.
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    if len(raw) > MAX_IMPORT_FILE_SIZE:
        raise ImportRejected(f"Datei zu groß (max. {MAX_IMPORT_FILE_SIZE // (1024 * 1024)} MB)")

    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ImportRejected(f"Keine gültige JSON-Datei: {e}") from e
    if not isinstance(payload, dict):
        raise ImportRejected("Datenformat nicht erkannt")

    try:
        document = ExportDocumentSchema.model_validate(upgrade_legacy_payload(payload))
        for p in document.config.schedule_periods:
            date.fromisoformat(p.start_date)
            date.fromisoformat(p.end_date)
    except ValidationError as e:
        raise ImportRejected(summarize_errors(e)) from e
    except ValueError as e:
        raise ImportRejected(f"Ungültige Daten: {e}") from e

    config = config_from_schema(document.config)
    days = {key: record_from_schema(day, config) for key, day in document.days_data.items()}
    return config, days
