"""
Store errors

Every failure the services raise carries the HTTP status it maps to and a
human readable message. The API renders them as ``{"message": ...}``.
"""


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFound(StoreError):
    """A document looked up by id does not exist."""

    status_code = 404


class InvalidArgument(StoreError):
    """Malformed id, payload or enumerated value."""

    status_code = 400


class AlreadyReviewed(StoreError):
    """The user already left a review on this product."""

    status_code = 400

    def __init__(self, message: str = "Product already reviewed"):
        super().__init__(message)


class Conflict(StoreError):
    """A conditional write kept losing against concurrent writers."""

    status_code = 409


class Unavailable(StoreError):
    """The document store cannot be reached."""

    status_code = 503

    def __init__(self, message: str = "Database unavailable"):
        super().__init__(message)
