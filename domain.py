"""
Fachliches Datenmodell: Tagesdatensätze, Konfiguration und Konstanten.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

import holidays

logger = logging.getLogger("horari.domain")

MAX_FLEXIBILITY_HOURS = 25.0
MIN_WEEKLY_SURPLUS_FOR_FLEXIBILITY = 0.5  # 30 Minuten
MAX_DAILY_WORK_HOURS = 9.5

DEFAULT_CALENDAR_YEAR = 2026
DEFAULT_START_TIME = "07:30"

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday")


class DayType(str, Enum):
    PRESENCIAL = "presencial"
    TELETREBALL = "teletreball"


class DayStatus(str, Enum):
    LABORAL = "laboral"
    FESTIU = "festiu"
    VACANCES = "vacances"
    ASSUMPTE_PROPI = "assumpte_propi"
    FLEXIBILITAT = "flexibilitat"
    ALTRES = "altres"


class RequestStatus(str, Enum):
    PENDENT = "pendent"
    APROVAT = "aprovat"


class ScheduleType(str, Enum):
    HIVERN = "hivern"
    ESTIU = "estiu"


# Soll-Stunden pro Tag je Dienstplan-Typ
SCHEDULE_HOURS = {
    ScheduleType.HIVERN: 7.5,
    ScheduleType.ESTIU: 7.0,
}

DEFAULT_WEEKLY_CONFIG = {
    "monday": DayType.PRESENCIAL,
    "tuesday": DayType.PRESENCIAL,
    "wednesday": DayType.PRESENCIAL,
    "thursday": DayType.TELETREBALL,
    "friday": DayType.TELETREBALL,
}

# (Start MM-DD, Ende MM-DD, Typ) - wird auf das Kalenderjahr projiziert
_DEFAULT_PERIOD_LAYOUT = (
    ("01-01", "01-10", ScheduleType.ESTIU),
    ("01-11", "03-29", ScheduleType.HIVERN),
    ("03-30", "04-06", ScheduleType.ESTIU),
    ("04-07", "05-31", ScheduleType.HIVERN),
    ("06-01", "09-30", ScheduleType.ESTIU),
    ("10-01", "12-14", ScheduleType.HIVERN),
    ("12-15", "12-31", ScheduleType.ESTIU),
)


# --- Tagesarten (Tagged Union) ---

class DayKind:
    """
    Basis aller Tagesarten. Jede Variante kennt ihren Status und trägt nur
    die Felder, die für sie Sinn ergeben.
    """
    status = None
    request_status = None
    hours = 0.0
    comment = None


@dataclass(frozen=True)
class Laboral(DayKind):
    status = DayStatus.LABORAL


@dataclass(frozen=True)
class Festiu(DayKind):
    status = DayStatus.FESTIU


@dataclass(frozen=True)
class Vacances(DayKind):
    status = DayStatus.VACANCES
    request_status: RequestStatus | None = RequestStatus.PENDENT


@dataclass(frozen=True)
class AssumptePropi(DayKind):
    status = DayStatus.ASSUMPTE_PROPI
    hours: float = 0.0
    request_status: RequestStatus | None = RequestStatus.PENDENT


@dataclass(frozen=True)
class Flexibilitat(DayKind):
    status = DayStatus.FLEXIBILITAT
    hours: float = 0.0
    request_status: RequestStatus | None = RequestStatus.PENDENT


@dataclass(frozen=True)
class Altres(DayKind):
    status = DayStatus.ALTRES
    hours: float = 0.0
    comment: str | None = None
    request_status: RequestStatus | None = RequestStatus.PENDENT


def _to_hours(value):
    if value is None: return 0.0
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return 0.0


def _to_request_status(value):
    if value is None or value == "": return None
    try:
        return RequestStatus(value)
    except ValueError:
        logger.warning(f"Unbekannter Antragsstatus '{value}' ignoriert")
        return None


def make_kind(day_status, request_status=None, ap_hours=None, flex_hours=None,
              other_hours=None, other_comment=None):
    """
    Baut aus den flachen Feldern (Speicher/Export) die passende Tagesart.
    Stunden-Felder, die nicht zum Status passen, werden verworfen.
    """
    try:
        status = DayStatus(day_status) if day_status else DayStatus.LABORAL
    except ValueError:
        logger.warning(f"Unbekannter Tagesstatus '{day_status}', verwende 'laboral'")
        status = DayStatus.LABORAL

    # Abwesenheiten ohne Antragsstatus gelten als beantragt
    req = _to_request_status(request_status) or RequestStatus.PENDENT
    if status == DayStatus.VACANCES:
        return Vacances(request_status=req)
    if status == DayStatus.ASSUMPTE_PROPI:
        return AssumptePropi(hours=_to_hours(ap_hours), request_status=req)
    if status == DayStatus.FLEXIBILITAT:
        return Flexibilitat(hours=_to_hours(flex_hours), request_status=req)
    if status == DayStatus.ALTRES:
        return Altres(hours=_to_hours(other_hours), comment=other_comment or None, request_status=req)
    if status == DayStatus.FESTIU:
        return Festiu()
    return Laboral()


# --- Tagesdatensatz ---

@dataclass(frozen=True)
class DayRecord:
    """
    Ein Eintrag pro Kalendertag (Schlüssel 'YYYY-MM-DD').
    Bis zu zwei Schichten (Split-Shift), Zeiten im Format 'HH:MM'.
    """
    date: str
    kind: DayKind = field(default_factory=Laboral)
    day_type: DayType = DayType.PRESENCIAL
    start_time: str | None = None
    end_time: str | None = None
    start_time2: str | None = None
    end_time2: str | None = None
    notes: str | None = None

    def __post_init__(self):
        # Urlaubstage haben nie Arbeitszeiten
        if isinstance(self.kind, Vacances):
            for name in ("start_time", "end_time", "start_time2", "end_time2"):
                object.__setattr__(self, name, None)

    @property
    def day(self):
        return date.fromisoformat(self.date)

    @property
    def day_status(self):
        return self.kind.status

    @property
    def request_status(self):
        return self.kind.request_status

    @property
    def ap_hours(self):
        return self.kind.hours if isinstance(self.kind, AssumptePropi) else None

    @property
    def flex_hours(self):
        return self.kind.hours if isinstance(self.kind, Flexibilitat) else None

    @property
    def other_hours(self):
        return self.kind.hours if isinstance(self.kind, Altres) else None

    @property
    def other_comment(self):
        return self.kind.comment if isinstance(self.kind, Altres) else None

    @property
    def is_approved_vacation(self):
        return isinstance(self.kind, Vacances) and self.kind.request_status == RequestStatus.APROVAT

    def to_dict(self):
        return {
            "date": self.date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "startTime2": self.start_time2,
            "endTime2": self.end_time2,
            "dayType": self.day_type.value,
            "dayStatus": self.day_status.value,
            "requestStatus": self.request_status.value if self.request_status else None,
            "apHours": self.ap_hours,
            "flexHours": self.flex_hours,
            "otherHours": self.other_hours,
            "notes": self.notes,
            "otherComment": self.other_comment,
        }

    @classmethod
    def from_dict(cls, data, default_day_type=DayType.PRESENCIAL):
        kind = make_kind(
            data.get("dayStatus"),
            request_status=data.get("requestStatus"),
            ap_hours=data.get("apHours"),
            flex_hours=data.get("flexHours"),
            other_hours=data.get("otherHours"),
            other_comment=data.get("otherComment"),
        )
        try:
            day_type = DayType(data["dayType"]) if data.get("dayType") else DayType(default_day_type)
        except ValueError:
            day_type = DayType(default_day_type)
        return cls(
            date=data["date"],
            kind=kind,
            day_type=day_type,
            start_time=data.get("startTime") or None,
            end_time=data.get("endTime") or None,
            start_time2=data.get("startTime2") or None,
            end_time2=data.get("endTime2") or None,
            notes=data.get("notes") or None,
        )


# --- Konfiguration ---

@dataclass(frozen=True)
class SchedulePeriod:
    id: str
    start_date: date
    end_date: date
    schedule_type: ScheduleType

    def contains(self, d):
        return self.start_date <= d <= self.end_date

    def to_dict(self):
        return {
            "id": self.id,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "scheduleType": self.schedule_type.value,
        }


@dataclass
class UserConfig:
    """
    Benutzerkonfiguration (Singleton) inkl. der drei Kontingente:
    Urlaub (Tage), AP (Stunden) und Flexibilität (Stunden).
    """
    calendar_year: int = DEFAULT_CALENDAR_YEAR
    default_start_time: str = DEFAULT_START_TIME
    weekly_config: dict = field(default_factory=lambda: dict(DEFAULT_WEEKLY_CONFIG))
    schedule_periods: tuple = ()
    holidays: tuple = ()
    total_vacation_days: int = 25
    used_vacation_days: int = 0
    total_ap_hours: float = 90.0
    used_ap_hours: float = 0.0
    flexibility_hours: float = 0.0
    used_flex_hours: float = 0.0

    def __post_init__(self):
        self.holidays = tuple(sorted(set(self.holidays)))

    def to_dict(self):
        return {
            "calendarYear": self.calendar_year,
            "defaultStartTime": self.default_start_time,
            "weeklyConfig": {k: {"dayType": DayType(v).value} for k, v in self.weekly_config.items()},
            "schedulePeriods": [p.to_dict() for p in self.schedule_periods],
            "holidays": list(self.holidays),
            "totalVacationDays": self.total_vacation_days,
            "usedVacationDays": self.used_vacation_days,
            "totalAPHours": self.total_ap_hours,
            "usedAPHours": self.used_ap_hours,
            "flexibilityHours": self.flexibility_hours,
            "usedFlexHours": self.used_flex_hours,
        }


@dataclass(frozen=True)
class WeeklySummary:
    week_number: int
    start_date: str
    end_date: str
    theoretical_hours: float
    worked_hours: float
    difference: float
    flexibility_gained: float


# --- Standardwerte ---

def default_schedule_periods(year):
    periods = []
    for i, (start, end, schedule_type) in enumerate(_DEFAULT_PERIOD_LAYOUT, start=1):
        periods.append(SchedulePeriod(
            id=f"default-{i}",
            start_date=date.fromisoformat(f"{year}-{start}"),
            end_date=date.fromisoformat(f"{year}-{end}"),
            schedule_type=schedule_type,
        ))
    return tuple(periods)


def default_holidays(year):
    """
    Feiertage Katalonien für das Jahr plus der Barcelona-Stadtfeiertag (La Mercè).
    """
    cat_holidays = holidays.ES(subdiv="CT", years=year)
    cat_holidays[date(year, 9, 24)] = "La Mercè"
    return tuple(sorted(str(d) for d in cat_holidays.keys() if d.year == year))


def default_config(year=DEFAULT_CALENDAR_YEAR):
    return UserConfig(
        calendar_year=year,
        schedule_periods=default_schedule_periods(year),
        holidays=default_holidays(year),
    )
