"""
HTTP utilities for the Supabase Storage client
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Dict, Mapping, Optional, Tuple, Union

import httpx

from .config import StorageConfig
from .error import SerializationException, TransportException

logger = logging.getLogger(__name__)

FileContent = Union[bytes, BinaryIO]


class RequestKind(Enum):
    """How the body of a request is encoded."""
    EMPTY = "empty"
    JSON = "json"
    MULTIPART = "multipart"


@dataclass(frozen=True)
class StorageRequest:
    """
    Description of a single storage API call.

    Build instances through :meth:`empty`, :meth:`json` or :meth:`multipart`
    so the body always matches the request kind.
    """
    method: str
    path: str
    kind: RequestKind
    content: Optional[bytes] = None
    files: Optional[Dict[str, Tuple[str, FileContent, str]]] = None
    form: Optional[Dict[str, str]] = None
    params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def empty(
        cls,
        method: str,
        path: str,
        params: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "StorageRequest":
        return cls(
            method=method,
            path=path,
            kind=RequestKind.EMPTY,
            params=dict(params or {}),
            headers=dict(headers or {}),
        )

    @classmethod
    def json(
        cls,
        method: str,
        path: str,
        payload: Any,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "StorageRequest":
        """Encode ``payload`` as a JSON body. Unencodable values raise SerializationException."""
        try:
            content = json.dumps(payload).encode("utf-8")
        except (TypeError, ValueError) as ex:
            raise SerializationException(f"Failed to encode request body: {ex}") from ex

        request_headers = {"Content-Type": "application/json"}
        request_headers.update(headers or {})
        return cls(
            method=method,
            path=path,
            kind=RequestKind.JSON,
            content=content,
            headers=request_headers,
        )

    @classmethod
    def multipart(
        cls,
        method: str,
        path: str,
        filename: str,
        data: FileContent,
        content_type: str,
        form: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "StorageRequest":
        return cls(
            method=method,
            path=path,
            kind=RequestKind.MULTIPART,
            files={"file": (filename, data, content_type)},
            form=dict(form or {}),
            params=dict(params or {}),
            headers=dict(headers or {}),
        )


class HttpClient:
    """
    HTTP client wrapper with connection pooling.

    Requests are sent exactly once; failures are reported to the caller
    without retrying.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        options: Dict[str, Any] = {
            "limits": httpx.Limits(max_connections=100, max_keepalive_connections=100),
        }
        if timeout is not None:
            options["timeout"] = timeout
        if transport is not None:
            options["transport"] = transport
        self._client = httpx.AsyncClient(**options)

    def build(self, config: StorageConfig, request: StorageRequest) -> httpx.Request:
        headers = config.request_headers()
        headers.update(request.headers)

        kwargs: Dict[str, Any] = {}
        if request.kind is RequestKind.JSON:
            kwargs["content"] = request.content
        elif request.kind is RequestKind.MULTIPART:
            kwargs["files"] = request.files
            if request.form:
                kwargs["data"] = request.form

        return self._client.build_request(
            request.method,
            f"{config.url}{request.path}",
            params=request.params or None,
            headers=headers,
            **kwargs,
        )

    async def send(self, config: StorageConfig, request: StorageRequest) -> httpx.Response:
        """Execute ``request`` and return the raw response."""
        http_request = self.build(config, request)
        logger.debug(
            "[SupabaseStorage][Request] method=%s path=%s kind=%s",
            request.method,
            request.path,
            request.kind.value,
        )
        try:
            return await self._client.send(http_request)
        except httpx.RequestError as ex:
            logger.warning(
                "[SupabaseStorage][Transport] method=%s path=%s error=%s",
                request.method,
                request.path,
                ex,
            )
            raise TransportException(f"Failed to send request: {ex}") from ex

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
