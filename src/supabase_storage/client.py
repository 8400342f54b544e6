"""
StorageClient - async client for the Supabase Storage API
"""

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from urllib.parse import parse_qs, quote, urlencode, urlparse

import httpx

from ._http import FileContent, HttpClient, StorageRequest
from ._response import map_response
from .config import StorageConfig
from .error import SerializationException
from .models import (
    Bucket,
    DownloadOptions,
    FileObject,
    FileOptions,
    FileSearchOptions,
    MimeType,
    SignedUploadUrl,
    SignedUrl,
    TransformOptions,
    UploadResult,
    signed_url_expiry,
)


def _require(value: Any, name: str) -> None:
    if value is None or value == "" or value == []:
        raise ValueError(f"{name} is required.")


def _clean_path(path: str) -> str:
    """Strip leading/trailing slashes and collapse repeated ones."""
    return re.sub(r"/+", "/", path.strip("/"))


def _require_path(path: str, name: str) -> str:
    """Normalize an object key and require it to be non-empty afterwards."""
    _require(path, name)
    cleaned = _clean_path(path)
    _require(cleaned, name)
    return cleaned


def _require_paths(paths: Sequence[str], name: str) -> List[str]:
    if isinstance(paths, (str, bytes)):
        raise TypeError(f"{name} must be a sequence of paths, not a single {type(paths).__name__}.")
    cleaned = [_require_path(path, name) for path in paths]
    _require(cleaned, name)
    return cleaned


def _object_path(bucket_id: str, path: str) -> str:
    return f"{quote(bucket_id, safe='')}/{quote(_clean_path(path), safe='/')}"


def _message(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise TypeError(f"expected a JSON object, got {type(payload).__name__}")
    message = payload["message"]
    if not isinstance(message, str):
        raise TypeError("field 'message' expected str")
    return message


def _download_query(download: Optional[Union[bool, str]]) -> Dict[str, str]:
    if download is None or download is False:
        return {}
    return {"download": "" if download is True else download}


class StorageClient:
    """
    Async client for the Supabase Storage API.

    Example:
        async with StorageClient(
            url="https://abc.supabase.co/storage/v1",
            api_key="service-role-key",
        ) as client:
            bucket = await client.create_bucket("avatars", public=True)

            with open("me.png", "rb") as f:
                await client.upload_file(
                    "avatars",
                    "users/me.png",
                    f,
                    FileOptions(content_type=MimeType.PNG),
                )
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize StorageClient.

        Args:
            url: Storage endpoint (e.g. "https://abc.supabase.co/storage/v1")
            api_key: Key sent as the bearer credential and the ``apikey`` header
            headers: Extra headers sent with every request
            timeout: Request timeout in seconds, httpx's default when omitted
            transport: Custom httpx transport (proxies, testing)
        """
        self.config = StorageConfig(url=url, api_key=api_key, headers=headers or {})
        self._http = HttpClient(timeout=timeout, transport=transport)
        self._logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: StorageConfig, **kwargs) -> "StorageClient":
        return cls(config.url, config.api_key, headers=config.headers, **kwargs)

    @classmethod
    def from_env(cls, **kwargs) -> "StorageClient":
        """Create a client from ``SUPABASE_URL`` and ``SUPABASE_API_KEY``."""
        return cls.from_config(StorageConfig.from_env(), **kwargs)

    async def _execute(self, request: StorageRequest, parser=None):
        response = await self._http.send(self.config, request)
        return map_response(response, parser)

    # Bucket operations

    async def create_bucket(
        self,
        name: str,
        id: Optional[str] = None,
        public: bool = False,
        allowed_mime_types: Optional[Sequence[Union[str, MimeType]]] = None,
        file_size_limit: Optional[int] = None,
    ) -> Bucket:
        """Create a bucket. The id defaults to the name."""
        _require(name, "name")
        payload = {
            "id": id or name,
            "name": name,
            "public": public,
            "allowed_mime_types": [str(m) for m in allowed_mime_types] if allowed_mime_types is not None else None,
            "file_size_limit": file_size_limit,
        }
        request = StorageRequest.json("POST", "/bucket", payload)

        def parse(data: Any) -> Bucket:
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
            return Bucket.from_dict({**payload, **data})

        return await self._execute(request, parse)

    async def get_bucket(self, id: str) -> Bucket:
        """Retrieve a bucket by id."""
        _require(id, "id")
        request = StorageRequest.empty("GET", f"/bucket/{quote(id, safe='')}")
        return await self._execute(request, Bucket.from_dict)

    async def list_buckets(self) -> List[Bucket]:
        """List all buckets."""
        request = StorageRequest.empty("GET", "/bucket")

        def parse(data: Any) -> List[Bucket]:
            if not isinstance(data, list):
                raise TypeError(f"expected a JSON array, got {type(data).__name__}")
            return [Bucket.from_dict(item) for item in data]

        return await self._execute(request, parse)

    async def update_bucket(
        self,
        id: str,
        public: bool,
        allowed_mime_types: Optional[Sequence[Union[str, MimeType]]] = None,
        file_size_limit: Optional[int] = None,
    ) -> str:
        """Update a bucket's visibility and upload restrictions."""
        _require(id, "id")
        payload = {
            "id": id,
            "name": id,
            "public": public,
            "allowed_mime_types": [str(m) for m in allowed_mime_types] if allowed_mime_types is not None else None,
            "file_size_limit": file_size_limit,
        }
        request = StorageRequest.json("PUT", f"/bucket/{quote(id, safe='')}", payload)
        return await self._execute(request, _message)

    async def delete_bucket(self, id: str) -> str:
        """Delete a bucket. The bucket must be empty."""
        _require(id, "id")
        request = StorageRequest.empty("DELETE", f"/bucket/{quote(id, safe='')}")
        return await self._execute(request, _message)

    async def empty_bucket(self, id: str) -> str:
        """Remove every object in a bucket."""
        _require(id, "id")
        request = StorageRequest.empty("POST", f"/bucket/{quote(id, safe='')}/empty")
        return await self._execute(request, _message)

    # File operations

    def _upload_request(
        self,
        method: str,
        path: str,
        object_path: str,
        data: FileContent,
        options: Optional[FileOptions],
        params: Optional[Mapping[str, str]] = None,
    ) -> StorageRequest:
        options = options or FileOptions()
        form = {"cacheControl": options.cache_control}
        if options.metadata:
            try:
                form["metadata"] = json.dumps(options.metadata)
            except (TypeError, ValueError) as ex:
                raise SerializationException(f"Failed to encode file metadata: {ex}") from ex

        return StorageRequest.multipart(
            method,
            path,
            filename=object_path.rsplit("/", 1)[-1],
            data=data,
            content_type=str(options.content_type),
            form=form,
            params=params,
            headers={"x-upsert": str(options.upsert).lower()},
        )

    async def upload_file(
        self,
        bucket_id: str,
        path: str,
        data: FileContent,
        options: Optional[FileOptions] = None,
    ) -> UploadResult:
        """Upload a new file. Fails if the path exists unless ``options.upsert`` is set."""
        _require(bucket_id, "bucket_id")
        _require_path(path, "path")
        object_path = _clean_path(path)
        request = self._upload_request(
            "POST", f"/object/{_object_path(bucket_id, path)}", object_path, data, options
        )
        return await self._execute(request, lambda d: UploadResult.from_dict(d, object_path))

    async def update_file(
        self,
        bucket_id: str,
        path: str,
        data: FileContent,
        options: Optional[FileOptions] = None,
    ) -> UploadResult:
        """Replace an existing file."""
        _require(bucket_id, "bucket_id")
        _require_path(path, "path")
        object_path = _clean_path(path)
        request = self._upload_request(
            "PUT", f"/object/{_object_path(bucket_id, path)}", object_path, data, options
        )
        return await self._execute(request, lambda d: UploadResult.from_dict(d, object_path))

    async def download_file(
        self,
        bucket_id: str,
        path: str,
        options: Optional[DownloadOptions] = None,
    ) -> bytes:
        """Download a file. A transform renders the image server-side first."""
        _require(bucket_id, "bucket_id")
        _require_path(path, "path")
        options = options or DownloadOptions()
        params = _download_query(options.download)
        if options.transform is not None:
            params.update(options.transform.to_params())
            route = f"/render/image/authenticated/{_object_path(bucket_id, path)}"
        else:
            route = f"/object/{_object_path(bucket_id, path)}"

        request = StorageRequest.empty("GET", route, params=params)
        return await self._execute(request)

    async def list_files(
        self,
        bucket_id: str,
        path: str = "",
        options: Optional[FileSearchOptions] = None,
    ) -> List[FileObject]:
        """List files and folders under ``path``."""
        _require(bucket_id, "bucket_id")
        options = options or FileSearchOptions()
        payload: Dict[str, Any] = {
            "prefix": _clean_path(path),
            "limit": options.limit,
            "offset": options.offset,
            "sortBy": {"column": options.sort_by.column, "order": options.sort_by.order},
        }
        if options.search:
            payload["search"] = options.search

        request = StorageRequest.json("POST", f"/object/list/{quote(bucket_id, safe='')}", payload)
        return await self._execute(request, FileObject.list_from)

    async def move_file(
        self,
        bucket_id: str,
        from_path: str,
        to_path: str,
        to_bucket: Optional[str] = None,
    ) -> str:
        """Move or rename a file, optionally into another bucket."""
        _require(bucket_id, "bucket_id")
        source_key = _require_path(from_path, "from_path")
        destination_key = _require_path(to_path, "to_path")
        payload = {
            "bucketId": bucket_id,
            "sourceKey": source_key,
            "destinationKey": destination_key,
        }
        if to_bucket:
            payload["destinationBucket"] = to_bucket

        request = StorageRequest.json("POST", "/object/move", payload)
        return await self._execute(request, _message)

    async def copy_file(
        self,
        bucket_id: str,
        from_path: str,
        to_path: str,
        to_bucket: Optional[str] = None,
        copy_metadata: bool = True,
    ) -> str:
        """Copy a file, optionally into another bucket. Returns the new key."""
        _require(bucket_id, "bucket_id")
        source_key = _require_path(from_path, "from_path")
        destination_key = _require_path(to_path, "to_path")
        payload: Dict[str, Any] = {
            "bucketId": bucket_id,
            "sourceKey": source_key,
            "destinationKey": destination_key,
            "copyMetadata": copy_metadata,
        }
        if to_bucket:
            payload["destinationBucket"] = to_bucket

        def parse(data: Any) -> str:
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
            key = data["Key"]
            if not isinstance(key, str):
                raise TypeError("field 'Key' expected str")
            return key

        request = StorageRequest.json("POST", "/object/copy", payload)
        return await self._execute(request, parse)

    async def delete_files(self, bucket_id: str, paths: Sequence[str]) -> List[FileObject]:
        """Delete several files. Returns the objects the server removed."""
        _require(bucket_id, "bucket_id")
        prefixes = _require_paths(paths, "paths")
        request = StorageRequest.json(
            "DELETE", f"/object/{quote(bucket_id, safe='')}", {"prefixes": prefixes}
        )
        return await self._execute(request, FileObject.list_from)

    async def delete_file(self, bucket_id: str, path: str) -> List[FileObject]:
        """Delete a single file."""
        _require_path(path, "path")
        return await self.delete_files(bucket_id, [path])

    # Signed URLs

    def _absolute(self, signed_path: str, download: Optional[Union[bool, str]] = None) -> str:
        url = f"{self.config.url}{signed_path}"
        query = _download_query(download)
        if query:
            url += ("&" if "?" in url else "?") + urlencode(query)
        return url

    async def create_signed_url(
        self,
        bucket_id: str,
        path: str,
        expires_in: int,
        download: Optional[Union[bool, str]] = None,
        transform: Optional[TransformOptions] = None,
    ) -> SignedUrl:
        """Create a time-limited download URL for one file."""
        _require(bucket_id, "bucket_id")
        _require_path(path, "path")
        _require(expires_in, "expires_in")
        payload: Dict[str, Any] = {"expiresIn": expires_in}
        if transform is not None:
            payload["transform"] = transform.to_dict()

        def parse(data: Any) -> SignedUrl:
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
            signed_path = data["signedURL"]
            if not isinstance(signed_path, str):
                raise TypeError("field 'signedURL' expected str")
            return SignedUrl(
                signed_url=self._absolute(signed_path, download),
                expires_in=expires_in,
                expires_at=signed_url_expiry(expires_in),
                path=_clean_path(path),
            )

        request = StorageRequest.json("POST", f"/object/sign/{_object_path(bucket_id, path)}", payload)
        result = await self._execute(request, parse)
        self._logger.info(
            "[SupabaseStorage][SignedUrl] bucket=%s object=%s expirySeconds=%s",
            bucket_id,
            result.path,
            expires_in,
        )
        return result

    async def create_signed_urls(
        self,
        bucket_id: str,
        paths: Sequence[str],
        expires_in: int,
        download: Optional[Union[bool, str]] = None,
    ) -> List[SignedUrl]:
        """Create time-limited download URLs for several files in one call."""
        _require(bucket_id, "bucket_id")
        object_paths = _require_paths(paths, "paths")
        _require(expires_in, "expires_in")
        payload = {"expiresIn": expires_in, "paths": object_paths}

        def parse(data: Any) -> List[SignedUrl]:
            if not isinstance(data, list):
                raise TypeError(f"expected a JSON array, got {type(data).__name__}")
            expires_at = signed_url_expiry(expires_in)
            results = []
            for item in data:
                if not isinstance(item, dict):
                    raise TypeError(f"expected a JSON object, got {type(item).__name__}")
                signed_path = item.get("signedURL")
                if signed_path is not None and not isinstance(signed_path, str):
                    raise TypeError("field 'signedURL' expected str")
                results.append(
                    SignedUrl(
                        signed_url=self._absolute(signed_path, download) if signed_path else None,
                        expires_in=expires_in,
                        expires_at=expires_at,
                        path=item.get("path"),
                        error=item.get("error"),
                    )
                )
            return results

        request = StorageRequest.json("POST", f"/object/sign/{quote(bucket_id, safe='')}", payload)
        results = await self._execute(request, parse)
        self._logger.info(
            "[SupabaseStorage][SignedUrl] bucket=%s objects=%s expirySeconds=%s",
            bucket_id,
            len(results),
            expires_in,
        )
        return results

    async def create_signed_upload_url(
        self,
        bucket_id: str,
        path: str,
        upsert: bool = False,
    ) -> SignedUploadUrl:
        """
        Ask the server for a one-time upload URL.

        The upload itself is a separate call to :meth:`upload_to_signed_url`.
        """
        _require(bucket_id, "bucket_id")
        _require_path(path, "path")
        headers = {"x-upsert": "true"} if upsert else None
        request = StorageRequest.empty(
            "POST", f"/object/upload/sign/{_object_path(bucket_id, path)}", headers=headers
        )

        def parse(data: Any) -> SignedUploadUrl:
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
            signed_path = data["url"]
            if not isinstance(signed_path, str):
                raise TypeError("field 'url' expected str")
            tokens = parse_qs(urlparse(signed_path).query).get("token")
            if not tokens:
                raise ValueError("signed upload url carries no token")
            return SignedUploadUrl(
                path=_clean_path(path),
                signed_url=self._absolute(signed_path),
                token=tokens[0],
            )

        result = await self._execute(request, parse)
        self._logger.info(
            "[SupabaseStorage][SignedUploadUrl] bucket=%s object=%s upsert=%s",
            bucket_id,
            result.path,
            upsert,
        )
        return result

    async def upload_to_signed_url(
        self,
        bucket_id: str,
        path: str,
        token: str,
        data: FileContent,
        options: Optional[FileOptions] = None,
    ) -> UploadResult:
        """Upload a file with a token from :meth:`create_signed_upload_url`."""
        _require(bucket_id, "bucket_id")
        _require_path(path, "path")
        _require(token, "token")
        object_path = _clean_path(path)
        request = self._upload_request(
            "PUT",
            f"/object/upload/sign/{_object_path(bucket_id, path)}",
            object_path,
            data,
            options,
            params={"token": token},
        )
        return await self._execute(request, lambda d: UploadResult.from_dict(d, object_path))

    def get_public_url(
        self,
        bucket_id: str,
        path: str,
        options: Optional[DownloadOptions] = None,
    ) -> str:
        """Build the URL of a file in a public bucket. No request is made."""
        _require(bucket_id, "bucket_id")
        _require_path(path, "path")
        options = options or DownloadOptions()
        query = _download_query(options.download)
        if options.transform is not None:
            query.update(options.transform.to_params())
            route = "render/image/public"
        else:
            route = "object/public"

        url = f"{self.config.url}/{route}/{_object_path(bucket_id, path)}"
        if query:
            url += f"?{urlencode(query)}"
        return url

    async def close(self) -> None:
        """Close the client and cleanup resources."""
        await self._http.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
