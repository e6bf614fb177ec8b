"""
Abgleich der Kontingente (Urlaub, AP, Flexibilität) bei jeder Änderung eines Tages.

Jede Änderung wird als Übergang `previous -> next` behandelt: der Beitrag des
alten Datensatzes wird zurückgenommen, der des neuen angewendet. So spiegeln
die Kontingente immer nur den aktuellen Stand wider, egal wie oft ein Tag
bearbeitet wurde.
"""
import logging
from dataclasses import replace

from domain import (
    AssumptePropi, DayRecord, Flexibilitat, MAX_FLEXIBILITY_HOURS, Vacances,
)
from logic import theoretical_hours_for_date
from summary import eligible_surplus, week_start_for, weekly_summary

logger = logging.getLogger("horari.balance")


class RequestLimitExceeded(ValueError):
    pass


def _clamp(value, low, high):
    return min(max(value, low), high)


def _ap_hours(record):
    if record is not None and isinstance(record.kind, AssumptePropi):
        return record.kind.hours
    return 0.0


def _flex_hours(record):
    if record is not None and isinstance(record.kind, Flexibilitat):
        return record.kind.hours
    return 0.0


def _approved_vacation(record):
    return record is not None and record.is_approved_vacation


# --- Einzelne Durchläufe ---

def _vacation_pass(previous, next_record, config):
    used = config.used_vacation_days
    was, now = _approved_vacation(previous), _approved_vacation(next_record)
    if now and not was:
        used = min(used + 1, config.total_vacation_days)
    if was and not now:
        used = max(used - 1, 0)
    return used


def _ap_pass(previous, next_record, config):
    delta = _ap_hours(next_record) - _ap_hours(previous)
    return _clamp(config.used_ap_hours + delta, 0.0, config.total_ap_hours)


def _flex_consumption_pass(previous, next_record, config):
    delta = _flex_hours(next_record) - _flex_hours(previous)
    return _clamp(config.used_flex_hours + delta, 0.0, config.flexibility_hours)


def _flex_accrual_pass(previous, next_record, config, days):
    """
    Berechnet die Wochenbilanz der betroffenen Woche einmal mit dem alten und
    einmal mit dem neuen Tagesstand und übernimmt die Differenz der
    anrechenbaren Überstunden ins Flex-Guthaben. Andere Wochen bleiben unberührt.
    """
    key = next_record.date
    old_days = dict(days)
    if previous is None:
        old_days.pop(key, None)
    else:
        old_days[key] = previous
    new_days = dict(old_days)
    new_days[key] = next_record

    week_start = week_start_for(key)
    old_surplus = eligible_surplus(weekly_summary(week_start, old_days, config))
    new_surplus = eligible_surplus(weekly_summary(week_start, new_days, config))
    return _clamp(config.flexibility_hours + new_surplus - old_surplus, 0.0, MAX_FLEXIBILITY_HOURS)


def reconcile(previous, next_record, config, days=None):
    """
    Liefert die neue Konfiguration nach dem Übergang `previous -> next_record`.
    Reine Funktion: `config` und `days` werden nicht verändert.

    `days` ist der Tagesstand vor der Änderung (Datum -> DayRecord); er wird
    nur für die Wochenbilanz benötigt.
    """
    days = days or {}

    used_vacation_days = _vacation_pass(previous, next_record, config)
    used_ap_hours = _ap_pass(previous, next_record, config)
    used_flex_hours = _flex_consumption_pass(previous, next_record, config)
    flexibility_hours = _flex_accrual_pass(previous, next_record, config, days)

    # Verbrauch darf das (evtl. gesunkene) Guthaben nicht übersteigen
    if used_flex_hours > flexibility_hours:
        used_flex_hours = flexibility_hours

    return replace(
        config,
        used_vacation_days=used_vacation_days,
        used_ap_hours=used_ap_hours,
        used_flex_hours=used_flex_hours,
        flexibility_hours=flexibility_hours,
    )


def commit_day_edit(store, previous, next_record, config, days=None):
    """
    Abgleich + Speichern: der Tag wird immer geschrieben, die Konfiguration
    nur, wenn sich etwas geändert hat.
    """
    new_config = reconcile(previous, next_record, config, days)
    store.save_day_record(next_record)
    if new_config != config:
        store.save(new_config)
        logger.info(
            f"Kontingente nach Änderung {next_record.date}: "
            f"Urlaub {new_config.used_vacation_days}/{new_config.total_vacation_days}, "
            f"AP {new_config.used_ap_hours:.2f}/{new_config.total_ap_hours:.2f}, "
            f"FX {new_config.used_flex_hours:.2f}/{new_config.flexibility_hours:.2f}"
        )
    return new_config


# --- Anfrage-Prüfung (vor dem Abgleich) ---

def requested_vacation_days(days):
    return len([r for r in days.values() if isinstance(r.kind, Vacances)])


def available_ap_hours(config, previous=None):
    return max(0.0, config.total_ap_hours - config.used_ap_hours + _ap_hours(previous))


def available_flex_hours(config, previous=None):
    return min(MAX_FLEXIBILITY_HOURS, max(0.0, config.flexibility_hours - config.used_flex_hours + _flex_hours(previous)))


def check_day_request(previous, next_record, config, days):
    """
    Prüft Urlaubs- und AP-Anträge gegen die verfügbaren Kontingente und
    deckelt FX-Stunden auf das Verfügbare. Gibt den (ggf. angepassten)
    Datensatz zurück.
    """
    kind = next_record.kind
    was_vacation = previous is not None and isinstance(previous.kind, Vacances)

    if isinstance(kind, Vacances) and not was_vacation:
        if requested_vacation_days(days) >= config.total_vacation_days:
            raise RequestLimitExceeded("Das Urlaubskontingent ist bereits vollständig beantragt.")

    if isinstance(kind, AssumptePropi):
        available = available_ap_hours(config, previous)
        if kind.hours > available + 1e-9:
            raise RequestLimitExceeded(
                f"Nicht genügend AP-Stunden verfügbar ({available:.2f}h übrig)."
            )

    if isinstance(kind, Flexibilitat):
        limit = min(theoretical_hours_for_date(next_record.date, config), available_flex_hours(config, previous))
        if kind.hours > limit:
            logger.info(f"FX-Stunden für {next_record.date} auf {limit:.2f}h gedeckelt")
            return replace(next_record, kind=replace(kind, hours=limit))

    return next_record


def empty_record_for(record):
    """Leerer Standard-Tag (laboral, ohne Zeiten) für das Zurücksetzen."""
    return DayRecord(date=record.date, day_type=record.day_type)
