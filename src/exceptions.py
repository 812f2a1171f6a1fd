"""Error types raised by the ride store and surfaced by the GUI."""


class RideBookingError(Exception):
    """Base class for ride booking failures.

    ``message_key`` names the localized label the GUI shows for the failure.
    """

    message_key = "Error.Unexpected"


class RideMustBeLaterThanTodayError(RideBookingError):
    """Raised when a ride is created for today or a past date."""

    message_key = "CreateRideGUI.ErrorRideMustBeLaterThanToday"


class RideAlreadyExistsError(RideBookingError):
    """Raised when the driver already offers a ride on that route and date."""

    message_key = "DataAccess.RideAlreadyExist"


class DriverNotFoundError(RideBookingError):
    """Raised when no driver is registered under the given email."""

    message_key = "DataAccess.DriverNotFound"


class DriverAlreadyExistsError(RideBookingError):
    """Raised when a driver email is registered twice."""

    message_key = "DataAccess.DriverAlreadyExist"


class StoreConnectionError(RideBookingError):
    """Raised when the backing store cannot be opened, closed or reached."""

    message_key = "DataAccess.ConnectionFailed"
