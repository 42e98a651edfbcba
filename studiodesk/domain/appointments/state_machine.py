"""Appointment status transitions"""

from ...models_appointments import AppointmentStatus

TERMINAL_STATUSES = frozenset(
    {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.EXPIRED,
    }
)

# Booked -> Booked is a reschedule
TRANSITIONS: dict[AppointmentStatus, frozenset] = {
    AppointmentStatus.DRAFT: frozenset({AppointmentStatus.INVITE_SENT}),
    AppointmentStatus.INVITE_SENT: frozenset(
        {AppointmentStatus.BOOKED, AppointmentStatus.CANCELLED, AppointmentStatus.EXPIRED}
    ),
    AppointmentStatus.BOOKED: frozenset(
        {
            AppointmentStatus.BOOKED,
            AppointmentStatus.COMPLETED,
            AppointmentStatus.NO_SHOW,
            AppointmentStatus.CANCELLED,
        }
    ),
}


class InvalidTransitionError(ValueError):
    def __init__(self, current: AppointmentStatus, target: AppointmentStatus):
        self.current = current
        self.target = target
        if current in TERMINAL_STATUSES:
            message = f"Appointment is already {current.value} and cannot be changed"
        else:
            message = f"Cannot move appointment from {current.value} to {target.value}"
        super().__init__(message)


def can_transition(current, target) -> bool:
    current, target = AppointmentStatus(current), AppointmentStatus(target)
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current, target) -> AppointmentStatus:
    """Return the target status or raise InvalidTransitionError"""
    if not can_transition(current, target):
        raise InvalidTransitionError(AppointmentStatus(current), AppointmentStatus(target))
    return AppointmentStatus(target)


def is_terminal(status) -> bool:
    return AppointmentStatus(status) in TERMINAL_STATUSES
