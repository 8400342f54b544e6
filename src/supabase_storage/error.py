"""
Exception classes for the Supabase Storage client
"""

from typing import Optional


class StorageException(Exception):
    """
    Base exception for all storage client errors.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code


class TransportException(StorageException):
    """Thrown when no response was obtained (connection, DNS, TLS or timeout failure)."""

    def __init__(self, message: str):
        super().__init__(message)


class ApiException(StorageException):
    """
    Thrown when the service answers with a non-2xx status.

    ``status`` is the ``statusCode`` of the error envelope, or the HTTP
    status when the body was not an envelope. ``status_code`` is always the
    HTTP status of the response. ``body`` keeps the undecoded response
    body, since ``message`` is decoded text and loses invalid UTF-8 bytes.
    """

    def __init__(
        self,
        message: str,
        status: str,
        status_code: int,
        error: Optional[str] = None,
        body: bytes = b"",
    ):
        super().__init__(message, status_code=status_code, error_code=error)
        self.status = status
        self.error = error
        self.body = body

    def __str__(self) -> str:
        return f"Operation failed with status {self.status}: {self.message}"


class SerializationException(StorageException):
    """Thrown when a body could not be encoded or decoded into the expected shape."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code)
