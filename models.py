from sqlalchemy import Column, Float, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class Settings(Base):
    """
    Zentrale Konfiguration (genau eine Zeile) inkl. Kontingente.
    """
    __tablename__ = "settings"
    id = Column(Integer, primary_key=True)
    calendar_year = Column(Integer, default=2026)
    default_start_time = Column(String(5), default="07:30")
    # Wochenmuster Mo-Fr als Komma-separierter String (z.B. "presencial,presencial,presencial,teletreball,teletreball")
    weekly_pattern = Column(String(80), nullable=True)

    total_vacation_days = Column(Integer, default=25)
    used_vacation_days = Column(Integer, default=0)
    total_ap_hours = Column(Float, default=90.0)
    used_ap_hours = Column(Float, default=0.0)
    # Angesammeltes Flex-Guthaben (max. 25h) und davon verbraucht
    flexibility_hours = Column(Float, default=0.0)
    used_flex_hours = Column(Float, default=0.0)

class SchedulePeriodEntry(Base):
    """
    Dienstplan-Periode (Winter 7,5h / Sommer 7h). Grenzen inklusive.
    """
    __tablename__ = "schedule_period"
    id = Column(String(100), primary_key=True)
    start_date = Column(String(10), nullable=False) # Format: YYYY-MM-DD
    end_date = Column(String(10), nullable=False)   # Format: YYYY-MM-DD
    schedule_type = Column(String(10), nullable=False)

class Holiday(Base):
    __tablename__ = "holiday"
    date = Column(String(10), primary_key=True) # Format: YYYY-MM-DD

class DayEntry(Base):
    """
    Ein Eintrag pro Tag. Nur Tage mit relevanter Abweichung werden gespeichert.
    """
    __tablename__ = "day_entry"
    date = Column(String(10), primary_key=True) # Format: YYYY-MM-DD

    # Typen:
    # 'laboral'        = Arbeitstag
    # 'festiu'         = Feiertag
    # 'vacances'       = Urlaub
    # 'assumpte_propi' = Persönliche Angelegenheit (AP, Stunden)
    # 'flexibilitat'   = Gleitzeitabbau (FX, Stunden)
    # 'altres'         = Sonstiges (Stunden + Kommentar)
    day_status = Column(String(20), default="laboral")
    request_status = Column(String(10), nullable=True) # 'pendent' | 'aprovat'
    day_type = Column(String(20), nullable=True)       # 'presencial' | 'teletreball'

    start_time = Column(String(5), nullable=True)  # Format: HH:MM
    end_time = Column(String(5), nullable=True)
    start_time2 = Column(String(5), nullable=True) # Zweite Schicht (Split-Shift)
    end_time2 = Column(String(5), nullable=True)

    ap_hours = Column(Float, nullable=True)
    flex_hours = Column(Float, nullable=True)
    other_hours = Column(Float, nullable=True)

    notes = Column(String(1000), nullable=True)
    other_comment = Column(String(255), nullable=True)
