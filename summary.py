"""
Wochenbilanz (Soll vs. Ist) und Übersicht der Kontingente.
"""
from datetime import timedelta

from domain import (
    MAX_FLEXIBILITY_HOURS, MIN_WEEKLY_SURPLUS_FOR_FLEXIBILITY, RequestStatus,
    Vacances, WeeklySummary,
)
from logic import is_holiday, is_weekend, theoretical_hours_for_date, to_date, total_effective_hours


def week_start_for(d):
    """Montag der Woche, in der das Datum liegt."""
    d = to_date(d)
    return d - timedelta(days=d.weekday())


def weekly_summary(week_start, days, config):
    """
    Summiert Soll- und Ist-Stunden über 7 Tage ab dem Montag `week_start`.
    Wochenenden, Feiertage und Urlaubstage zählen auf keiner Seite.
    """
    week_start = to_date(week_start)
    week_end = week_start + timedelta(days=6)

    theoretical_hours = 0.0
    worked_hours = 0.0
    for offset in range(7):
        curr = week_start + timedelta(days=offset)
        if is_weekend(curr) or is_holiday(curr, config.holidays):
            continue
        record = days.get(curr.isoformat())
        if record is not None and isinstance(record.kind, Vacances):
            continue
        theoretical_hours += theoretical_hours_for_date(curr, config)
        worked_hours += total_effective_hours(record)

    difference = worked_hours - theoretical_hours
    flexibility_gained = 0.0
    if difference >= MIN_WEEKLY_SURPLUS_FOR_FLEXIBILITY:
        headroom = max(0.0, MAX_FLEXIBILITY_HOURS - config.flexibility_hours)
        flexibility_gained = min(difference, headroom)

    return WeeklySummary(
        week_number=week_start.isocalendar()[1],
        start_date=week_start.isoformat(),
        end_date=week_end.isoformat(),
        theoretical_hours=theoretical_hours,
        worked_hours=worked_hours,
        difference=difference,
        flexibility_gained=flexibility_gained,
    )


def eligible_surplus(summary):
    if summary.difference >= MIN_WEEKLY_SURPLUS_FOR_FLEXIBILITY:
        return summary.difference
    return 0.0


def _percent(part, total):
    if not total: return 0.0
    return part / total * 100.0


def status_summary(config, days):
    """
    Stand der drei Kontingente für die Kopfzeile.
    Beantragte Urlaubstage zählen unabhängig vom Genehmigungsstatus.
    """
    vacation_days = [r for r in days.values() if isinstance(r.kind, Vacances)]
    requested = len(vacation_days)
    pending = len([r for r in vacation_days if r.request_status == RequestStatus.PENDENT])

    return {
        "requested_vacation_days": requested,
        "pending_vacation_days": pending,
        "approved_vacation_days": config.used_vacation_days,
        "remaining_vacation_days": max(0, config.total_vacation_days - requested),
        "vacation_progress": _percent(requested, config.total_vacation_days),
        "used_ap_hours": config.used_ap_hours,
        "remaining_ap_hours": max(0.0, config.total_ap_hours - config.used_ap_hours),
        "ap_progress": _percent(config.used_ap_hours, config.total_ap_hours),
        "flexibility_hours": config.flexibility_hours,
        "available_flex_hours": max(0.0, config.flexibility_hours - config.used_flex_hours),
        "flex_progress": _percent(config.flexibility_hours, MAX_FLEXIBILITY_HOURS),
    }
