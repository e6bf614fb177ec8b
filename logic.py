from datetime import date, timedelta

from domain import (
    DayRecord, DayType, Festiu, Laboral, MAX_DAILY_WORK_HOURS, SCHEDULE_HOURS,
    ScheduleType, Vacances, WEEKDAYS,
)


def to_date(value):
    if isinstance(value, date): return value
    return date.fromisoformat(str(value))


def normalize_time_str(t_str):
    """
    Bereinigt Benutzereingaben und macht daraus ein sauberes 'HH:MM' Format.
    """
    if not t_str: return None
    t_str = str(t_str).strip().replace('.', ':')

    try:
        h, m = 0, 0
        if ':' in t_str:
            parts = t_str.split(':')
            h, m = int(parts[0]), int(parts[1])
        elif len(t_str) == 4:
            h, m = int(t_str[:2]), int(t_str[2:])
        elif len(t_str) == 3:
            h, m = int(t_str[:1]), int(t_str[1:])
        elif len(t_str) <= 2:
            h, m = int(t_str), 0
        else:
            return None

        if h > 23 or m > 59 or h < 0 or m < 0: return None
        return f"{h:02d}:{m:02d}"
    except ValueError:
        return None


def parse_time_to_hours(t_str):
    h, m = t_str.split(':')
    return int(h) + int(m) / 60.0


def format_hours_to_time(hours):
    total_minutes = int(round(hours * 60))
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


# --- Kalender-Mathematik ---

def is_weekend(d):
    return to_date(d).weekday() >= 5


def is_holiday(d, holidays):
    return to_date(d).isoformat() in holidays


def weekday_key(d):
    """'monday'..'friday' oder None für das Wochenende."""
    weekday = to_date(d).weekday()
    return WEEKDAYS[weekday] if weekday < 5 else None


def sorted_periods(periods):
    return sorted(periods, key=lambda p: p.start_date)


def schedule_type_for_date(d, periods):
    d = to_date(d)
    for period in sorted_periods(periods):
        if period.contains(d):
            return period.schedule_type
    return None


def theoretical_hours_for_date(d, config):
    """
    Soll-Stunden eines Tages. Wochenende = 0. Nicht abgedeckte Tage
    (Lücke in den Dienstplan-Perioden) bekommen die Winter-Stunden.
    """
    if weekday_key(d) is None:
        return 0.0
    schedule_type = schedule_type_for_date(d, config.schedule_periods)
    if schedule_type is None:
        return SCHEDULE_HOURS[ScheduleType.HIVERN]
    return SCHEDULE_HOURS[schedule_type]


def day_type_for_date(d, config):
    key = weekday_key(d)
    if key is None:
        return DayType.PRESENCIAL
    return DayType(config.weekly_config.get(key, DayType.PRESENCIAL))


def get_day_info(d, config):
    """
    Liefert Feiertags- und Soll-Stunden-Infos für einen Tag.
    """
    d = to_date(d)
    weekend = is_weekend(d)
    holiday = is_holiday(d, config.holidays)
    return {
        "is_workday": not weekend and not holiday,
        "is_weekend": weekend,
        "is_holiday": holiday,
        "target": theoretical_hours_for_date(d, config),
        "schedule_type": schedule_type_for_date(d, config.schedule_periods),
        "day_type": day_type_for_date(d, config),
    }


# --- Stunden eines Tagesdatensatzes ---

def shift_hours(start_str, end_str):
    """
    Dauer einer Schicht in Stunden. Kein Über-Mitternacht-Fall:
    Ende vor Start ergibt 0.
    """
    start_str = normalize_time_str(start_str)
    end_str = normalize_time_str(end_str)
    if not start_str or not end_str:
        return 0.0
    return max(0.0, parse_time_to_hours(end_str) - parse_time_to_hours(start_str))


def day_worked_hours(record):
    if record is None: return 0.0
    return shift_hours(record.start_time, record.end_time) + shift_hours(record.start_time2, record.end_time2)


def extra_hours_for_status(record):
    if record is None: return 0.0
    return record.kind.hours


def cap_daily_hours(hours):
    return min(max(0.0, hours), MAX_DAILY_WORK_HOURS)


def total_effective_hours(record):
    """
    Gearbeitete Stunden + AP/FX/Sonstige-Stunden, gedeckelt auf 9,5h.
    Urlaub zählt hier 0 (wird in der Wochenbilanz ausgeklammert).
    """
    if record is None: return 0.0
    if isinstance(record.kind, Vacances):
        return 0.0
    return cap_daily_hours(day_worked_hours(record) + extra_hours_for_status(record))


def day_difference(record, d, config):
    """
    Tagessaldo für die Anzeige: Urlaub gilt als voll erfüllt.
    """
    theoretical = theoretical_hours_for_date(d, config)
    if record is not None and isinstance(record.kind, Vacances):
        return 0.0
    return total_effective_hours(record) - theoretical


def is_empty_record(record):
    """Tage ohne relevante Abweichung werden nicht gespeichert."""
    if not isinstance(record.kind, (Laboral, Festiu)):
        return False
    shifts = (record.start_time, record.end_time, record.start_time2, record.end_time2)
    return not any(shifts) and not record.notes


# --- Neuer Eintrag ---

def default_shift(d, config):
    """
    Standard-Schicht für einen neuen Eintrag: Start laut Einstellungen,
    Ende = Start + Soll-Stunden.
    """
    target = theoretical_hours_for_date(d, config)
    start = normalize_time_str(config.default_start_time)
    if target <= 0 or not start:
        return None, None
    end_minutes = min(parse_time_to_hours(start) * 60 + target * 60, 23 * 60 + 59)
    return start, format_hours_to_time(end_minutes / 60.0)


def new_day_record(d, config):
    d = to_date(d)
    day_type = day_type_for_date(d, config)
    if is_holiday(d, config.holidays):
        return DayRecord(date=d.isoformat(), kind=Festiu(), day_type=day_type)
    start, end = default_shift(d, config)
    return DayRecord(date=d.isoformat(), kind=Laboral(), day_type=day_type, start_time=start, end_time=end)


# --- Dienstplan-Perioden (nur Hinweise, blockiert nichts) ---

def coverage_gaps(periods, year):
    """
    Anzahl der Tage im Kalenderjahr, die von keiner Periode abgedeckt sind.
    """
    missing = 0
    curr = date(year, 1, 1)
    last = date(year, 12, 31)
    while curr <= last:
        if not any(p.contains(curr) for p in periods):
            missing += 1
        curr += timedelta(days=1)
    return missing


def period_overlaps(periods):
    ordered = sorted_periods(periods)
    overlaps = []
    for i, a in enumerate(ordered):
        for b in ordered[i + 1:]:
            if b.start_date > a.end_date:
                break
            overlaps.append((a.id, b.id))
    return overlaps


# --- Anzeige ---

def format_hours_display(hours):
    total_minutes = int(round(abs(hours) * 60))
    sign = "-" if hours < 0 else "+"
    return f"{sign}{total_minutes // 60}h {total_minutes % 60}min"


def format_hours_minutes(hours):
    total_minutes = int(round(abs(hours) * 60))
    return f"{total_minutes // 60}h {total_minutes % 60}min"


def normalize_hours_difference(hours):
    rounded = round(hours * 60) / 60.0
    return 0.0 if abs(rounded) < 1 / 60.0 else rounded
