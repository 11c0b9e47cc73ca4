"""Appointment and hotel stay status machines."""

from petshop_engine.scheduling.status import (
    APPOINTMENT_TRANSITIONS,
    STAY_TRANSITIONS,
    SchedulingService,
    can_transition_appointment,
    can_transition_stay,
)

__all__ = [
    "APPOINTMENT_TRANSITIONS",
    "STAY_TRANSITIONS",
    "SchedulingService",
    "can_transition_appointment",
    "can_transition_stay",
]
