"""Domain errors raised by the dashboard services.

Each error carries the HTTP status it is rendered with; the handler in
``app.main`` turns them into the standard error envelope.
"""

from fastapi import status


class DashboardError(Exception):
    """Base class for dashboard request failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Dashboard request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingAssignmentError(DashboardError):
    """A designation requires a location assignment that is not set."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Coordinator is missing a required location assignment"


class InvalidLocationPathError(DashboardError):
    """A requested location path is malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid location path"


class ForbiddenError(DashboardError):
    """The viewer's designation grants no access to the requested view."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFoundError(DashboardError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found"


class DataAccessError(DashboardError):
    """A read against the member store failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error while fetching dashboard data"
