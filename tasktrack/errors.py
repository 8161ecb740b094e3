from fastapi import HTTPException, status


class TaskTrackError(HTTPException):
    """Base for errors reported to the client as ``{"error": message}``."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message


class ValidationError(TaskTrackError):
    """Missing, oversized or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(TaskTrackError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(TaskTrackError):
    """Request contradicts the current state (e.g. closed and waiting at once)."""

    status_code = status.HTTP_400_BAD_REQUEST
