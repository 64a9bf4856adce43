class BookingGatewayError(RuntimeError):
    """Raised when the scheduling backend fails (network errors, non-2xx responses, bad bodies)."""
    pass


class AppointmentNotFoundError(LookupError):
    """Raised when an appointment ID is no longer present in the loaded set."""

    def __init__(self, appointment_id: str) -> None:
        super().__init__(f"Appointment {appointment_id} not found")
        self.appointment_id = appointment_id


class InvalidEventDataError(ValueError):
    """Raised when a gesture or form carries missing or inconsistent start/end times."""
    pass


class InvalidAppointmentError(ValueError):
    """Raised when an operation needs a persisted booking ID and the appointment has none."""
    pass
