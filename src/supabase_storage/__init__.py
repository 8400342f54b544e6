"""
Supabase Storage Python client - async client for the Supabase Storage API
"""

__version__ = "0.1.0"

from .client import StorageClient
from .config import StorageConfig
from .models import (
    Bucket,
    FileObject,
    UploadResult,
    SignedUrl,
    SignedUploadUrl,
    FileOptions,
    DownloadOptions,
    TransformOptions,
    FileSearchOptions,
    SortBy,
    MimeType,
)
from .error import (
    StorageException,
    TransportException,
    ApiException,
    SerializationException,
)

__all__ = [
    "StorageClient",
    "StorageConfig",
    "Bucket",
    "FileObject",
    "UploadResult",
    "SignedUrl",
    "SignedUploadUrl",
    "FileOptions",
    "DownloadOptions",
    "TransformOptions",
    "FileSearchOptions",
    "SortBy",
    "MimeType",
    "StorageException",
    "TransportException",
    "ApiException",
    "SerializationException",
]
