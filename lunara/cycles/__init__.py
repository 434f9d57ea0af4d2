"""Menstrual cycle helpers for Lunara.

Modules:
    phase: calendar-based phase classification (pure, no I/O)
"""

from lunara.cycles.phase import CyclePhase, classify_phase, days_since_start

__all__ = [
    "CyclePhase",
    "classify_phase",
    "days_since_start",
]
