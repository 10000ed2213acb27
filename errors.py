from fastapi import status


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.__class__.__name__


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class BadInput(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(detail)


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, detail: str = "Only administrators can do this"):
        super().__init__(detail)


class StoreError(AppError):
    """The underlying store call failed."""


class CorruptRecord(AppError):
    """A stored item could not be decoded into a domain entity."""
