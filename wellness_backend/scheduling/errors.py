"""Exceptions raised by the booking engine."""


class SchedulingError(Exception):
    """Base class for booking-engine failures a caller can act on."""


class SlotNoLongerAvailable(SchedulingError):
    """The chosen slot was taken or blocked after it was offered."""

    def __init__(self, slot_date, slot_time: str, message: str | None = None):
        self.slot_date = slot_date
        self.slot_time = slot_time
        super().__init__(message or f'Slot {slot_date} {slot_time} is no longer available.')


class InvalidStatusTransition(SchedulingError):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f'Cannot move an appointment from {current} to {requested}.')


class NotAppointmentParticipant(SchedulingError):
    pass


class AppointmentNotFound(SchedulingError):
    def __init__(self, appointment_id: int):
        self.appointment_id = appointment_id
        super().__init__('Appointment not found.')
