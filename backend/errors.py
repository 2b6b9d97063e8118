class DispositionError(Exception):
    """Base class for every error raised while building or editing a disposition."""

    status_code = 400


class InvalidRequestError(DispositionError):
    status_code = 400


class NotFoundError(DispositionError):
    status_code = 404


class LayoutLimitError(DispositionError):
    status_code = 409


class SeatLockedError(DispositionError):
    status_code = 409
