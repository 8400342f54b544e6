"""
Data models for the Supabase Storage client
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, UTC
from enum import Enum
from typing import Any, Dict, List, Optional, Union


def _expect_dict(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise TypeError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _expect_list(data: Any) -> List[Any]:
    if not isinstance(data, list):
        raise TypeError(f"expected a JSON array, got {type(data).__name__}")
    return data


def _required(data: Dict[str, Any], key: str, kind: type) -> Any:
    if key not in data:
        raise KeyError(f"missing field '{key}'")
    value = data[key]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise TypeError(f"field '{key}' expected {kind.__name__}, got {type(value).__name__}")
    return value


def _optional(data: Dict[str, Any], key: str, kind: type) -> Any:
    if data.get(key) is None:
        return None
    return _required(data, key, kind)


def _timestamp(data: Dict[str, Any], key: str) -> Optional[datetime]:
    value = _optional(data, key, str)
    return datetime.fromisoformat(value) if value is not None else None


class MimeType(str, Enum):
    """Common MIME types accepted by bucket restrictions and uploads."""
    AAC = "audio/aac"
    ABIWORD = "application/x-abiword"
    APNG = "image/apng"
    ARCHIVE = "application/x-freearc"
    AVIF = "image/avif"
    AVI = "video/x-msvideo"
    AMAZON_KINDLE = "application/vnd.amazon.ebook"
    BINARY_DATA = "application/octet-stream"
    BMP = "image/bmp"
    BZIP = "application/x-bzip"
    BZIP2 = "application/x-bzip2"
    CD_AUDIO = "application/x-cdf"
    CSHELL_SCRIPT = "application/x-csh"
    CSS = "text/css"
    CSV = "text/csv"
    DOC = "application/msword"
    DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    EOT = "application/vnd.ms-fontobject"
    EPUB = "application/epub+zip"
    GZIP = "application/gzip"
    GIF = "image/gif"
    HTML = "text/html"
    ICON = "image/vnd.microsoft.icon"
    ICALENDAR = "text/calendar"
    JAR = "application/java-archive"
    JPEG = "image/jpeg"
    JAVASCRIPT = "text/javascript"
    JSON = "application/json"
    JSONLD = "application/ld+json"
    MIDI = "audio/midi"
    MP3 = "audio/mpeg"
    MP4 = "video/mp4"
    MPEG = "video/mpeg"
    APPLE_INSTALLER = "application/vnd.apple.installer+xml"
    ODP = "application/vnd.oasis.opendocument.presentation"
    ODS = "application/vnd.oasis.opendocument.spreadsheet"
    ODT = "application/vnd.oasis.opendocument.text"
    OGG_AUDIO = "audio/ogg"
    OGG_VIDEO = "video/ogg"
    OGG = "application/ogg"
    OTF = "font/otf"
    PNG = "image/png"
    PDF = "application/pdf"
    PHP = "application/x-httpd-php"
    PPT = "application/vnd.ms-powerpoint"
    PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
    RAR = "application/vnd.rar"
    RTF = "application/rtf"
    SHELL_SCRIPT = "application/x-sh"
    SVG = "image/svg+xml"
    TAR = "application/x-tar"
    TIFF = "image/tiff"
    MPEG_TRANSPORT_STREAM = "video/mp2t"
    TTF = "font/ttf"
    PLAIN_TEXT = "text/plain"
    VISIO = "application/vnd.visio"
    WAV = "audio/wav"
    WEBM_AUDIO = "audio/webm"
    WEBM_VIDEO = "video/webm"
    WEBP = "image/webp"
    WOFF = "font/woff"
    WOFF2 = "font/woff2"
    XHTML = "application/xhtml+xml"
    XLS = "application/vnd.ms-excel"
    XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    XML = "application/xml"
    XUL = "application/vnd.mozilla.xul+xml"
    ZIP = "application/zip"
    THREE_GPP = "video/3gpp"
    THREE_GPP2 = "video/3gpp2"
    SEVEN_ZIP = "application/x-7z-compressed"

    def __str__(self) -> str:
        return self.value


@dataclass
class Bucket:
    """Represents a storage bucket."""
    id: str
    name: str
    public: bool
    owner: Optional[str] = None
    file_size_limit: Optional[int] = None
    allowed_mime_types: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Bucket":
        data = _expect_dict(data)
        mime_types = _optional(data, "allowed_mime_types", list)
        if mime_types is not None and not all(isinstance(m, str) for m in mime_types):
            raise TypeError("field 'allowed_mime_types' expected a list of strings")
        return cls(
            id=_required(data, "id", str),
            name=_required(data, "name", str),
            public=_required(data, "public", bool),
            owner=_optional(data, "owner", str),
            file_size_limit=_optional(data, "file_size_limit", int),
            allowed_mime_types=mime_types,
            created_at=_timestamp(data, "created_at"),
            updated_at=_timestamp(data, "updated_at"),
        )


@dataclass
class FileObject:
    """Represents a file (or folder placeholder) inside a bucket."""
    name: str
    id: Optional[str] = None
    bucket_id: Optional[str] = None
    owner: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def size(self) -> Optional[int]:
        return (self.metadata or {}).get("size")

    @property
    def mimetype(self) -> Optional[str]:
        return (self.metadata or {}).get("mimetype")

    @classmethod
    def from_dict(cls, data: Any) -> "FileObject":
        data = _expect_dict(data)
        return cls(
            name=_required(data, "name", str),
            id=_optional(data, "id", str),
            bucket_id=_optional(data, "bucket_id", str),
            owner=_optional(data, "owner", str),
            created_at=_timestamp(data, "created_at"),
            updated_at=_timestamp(data, "updated_at"),
            last_accessed_at=_timestamp(data, "last_accessed_at"),
            metadata=_optional(data, "metadata", dict),
        )

    @classmethod
    def list_from(cls, data: Any) -> List["FileObject"]:
        return [cls.from_dict(item) for item in _expect_list(data)]


@dataclass
class UploadResult:
    """Represents the result of an upload or update."""
    path: str
    full_path: str
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, path: str) -> "UploadResult":
        data = _expect_dict(data)
        return cls(
            path=path,
            full_path=_required(data, "Key", str),
            id=_optional(data, "Id", str),
        )


@dataclass
class SignedUrl:
    """Represents a signed download URL."""
    signed_url: Optional[str]
    expires_in: int
    expires_at: datetime
    path: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SignedUploadUrl:
    """Represents a signed upload URL and the token it carries."""
    path: str
    signed_url: str
    token: str


@dataclass
class TransformOptions:
    """Image transformation applied on download or public URLs."""
    width: Optional[int] = None
    height: Optional[int] = None
    resize: Optional[str] = None
    quality: Optional[int] = None
    format: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        values = {
            "width": self.width,
            "height": self.height,
            "resize": self.resize,
            "quality": self.quality,
            "format": self.format,
        }
        return {k: v for k, v in values.items() if v is not None}

    def to_params(self) -> Dict[str, str]:
        return {k: str(v) for k, v in self.to_dict().items()}


@dataclass
class DownloadOptions:
    """
    Options for downloads and public URLs.

    ``download`` set to ``True`` asks the server to send the file as an
    attachment; a string also sets the attachment filename.
    """
    transform: Optional[TransformOptions] = None
    download: Optional[Union[bool, str]] = None


@dataclass
class FileOptions:
    """Options for uploads."""
    cache_control: str = "3600"
    content_type: Union[str, MimeType] = MimeType.BINARY_DATA
    upsert: bool = False
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class SortBy:
    column: str = "name"
    order: str = "asc"


@dataclass
class FileSearchOptions:
    """Options for listing files in a bucket."""
    limit: int = 100
    offset: int = 0
    sort_by: SortBy = field(default_factory=SortBy)
    search: Optional[str] = None


def signed_url_expiry(expires_in: int) -> datetime:
    """Local estimate of when a URL signed now for ``expires_in`` seconds expires."""
    return datetime.now(UTC) + timedelta(seconds=int(expires_in))
