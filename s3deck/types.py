#!/usr/bin/env python3
"""
Record types exchanged between the S3 backend and the UI layer
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional

from .errors import S3DeckError, ErrorKind


DEFAULT_ENDPOINT = "s3.amazonaws.com"
DEFAULT_REGION = "us-east-1"
DIRECTORY_CONTENT_TYPE = "application/x-directory"

# SigV4 presigned URLs are valid for at most one week
MAX_PRESIGN_EXPIRY = 7 * 24 * 60 * 60

PRESIGN_METHODS = {
    'GET': 'get_object',
    'PUT': 'put_object',
    'DELETE': 'delete_object',
}


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _require(data: Dict[str, Any], name: str) -> Any:
    if name not in data:
        raise S3DeckError(f"Missing required field '{name}'", ErrorKind.INVALID_INPUT)
    return data[name]


def _expiry(value: Any) -> int:
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        raise S3DeckError(f"Invalid expiry: {value!r}", ErrorKind.INVALID_INPUT)
    if seconds <= 0:
        raise S3DeckError("Expiry must be a positive number of seconds", ErrorKind.INVALID_INPUT)
    if seconds > MAX_PRESIGN_EXPIRY:
        raise S3DeckError(f"Expiry must not exceed {MAX_PRESIGN_EXPIRY} seconds (one week)",
                          ErrorKind.INVALID_INPUT)
    return seconds


@dataclass(frozen=True)
class ConnectionConfig:
    """Connection parameters for an S3-compatible provider"""
    endpoint: str
    access_key: str
    secret_key: str
    region: str = DEFAULT_REGION
    bucket: Optional[str] = None
    use_ssl: bool = True
    path_style: bool = False
    connect_timeout: Optional[float] = None
    read_timeout: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConnectionConfig':
        """Build a config from the UI payload shape"""
        return cls(
            endpoint=data.get('endpoint', '') or '',
            access_key=_require(data, 'access_key'),
            secret_key=_require(data, 'secret_key'),
            region=data.get('region') or DEFAULT_REGION,
            bucket=data.get('bucket') or None,
            use_ssl=bool(data.get('use_ssl', True)),
            path_style=bool(data.get('path_style', False)),
            connect_timeout=data.get('connect_timeout'),
            read_timeout=data.get('read_timeout'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'endpoint': self.endpoint,
            'access_key': self.access_key,
            'secret_key': self.secret_key,
            'region': self.region,
            'bucket': self.bucket,
            'use_ssl': self.use_ssl,
            'path_style': self.path_style,
            'connect_timeout': self.connect_timeout,
            'read_timeout': self.read_timeout,
        }

    @property
    def masked_access_key(self) -> str:
        key = self.access_key
        return f"{key[:8]}...{key[-4:] if len(key) > 12 else '***'}"


@dataclass
class BucketRecord:
    name: str
    creation_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'creation_date': _isoformat(self.creation_date)}


@dataclass
class ObjectRecord:
    """A listed object, or a common prefix shown as a directory"""
    key: str
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    storage_class: Optional[str] = None
    is_dir: bool = False
    content_type: Optional[str] = None

    @classmethod
    def directory(cls, prefix: str) -> 'ObjectRecord':
        return cls(key=prefix, is_dir=True, content_type=DIRECTORY_CONTENT_TYPE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'size': self.size,
            'last_modified': _isoformat(self.last_modified),
            'etag': self.etag,
            'storage_class': self.storage_class,
            'is_dir': self.is_dir,
            'content_type': self.content_type,
        }


@dataclass
class ObjectMetadata:
    key: str
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'size': self.size,
            'last_modified': _isoformat(self.last_modified),
            'etag': self.etag,
            'content_type': self.content_type,
            'metadata': dict(self.metadata),
        }


@dataclass(frozen=True)
class CopyRequest:
    source_bucket: str
    source_key: str
    dest_bucket: str
    dest_key: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        return cls(
            source_bucket=_require(data, 'source_bucket'),
            source_key=_require(data, 'source_key'),
            dest_bucket=_require(data, 'dest_bucket'),
            dest_key=_require(data, 'dest_key'),
        )

    @property
    def copy_source(self) -> str:
        """Source locator in the "bucket/key" form the copy call expects"""
        return f"{self.source_bucket}/{self.source_key}"


@dataclass(frozen=True)
class MoveRequest(CopyRequest):
    """Copy followed by deletion of the source. Not atomic."""

    def as_copy(self) -> CopyRequest:
        return CopyRequest(self.source_bucket, self.source_key, self.dest_bucket, self.dest_key)


@dataclass(frozen=True)
class PresignRequest:
    bucket: str
    key: str
    expires_in: int = 3600
    method: str = 'GET'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PresignRequest':
        return cls(
            bucket=_require(data, 'bucket'),
            key=_require(data, 'key'),
            expires_in=_expiry(data.get('expires_in', 3600)),
            method=data.get('method', 'GET'),
        )

    @property
    def client_method(self) -> str:
        """SDK operation name for the requested HTTP method"""
        try:
            return PRESIGN_METHODS[self.method.upper()]
        except KeyError:
            raise S3DeckError(f"Unsupported HTTP method: {self.method}", ErrorKind.INVALID_INPUT)

    def validate(self) -> None:
        """Raise INVALID_INPUT for an unsupported method or an out-of-range expiry"""
        _expiry(self.expires_in)
        if self.method.upper() not in PRESIGN_METHODS:
            raise S3DeckError(f"Unsupported HTTP method: {self.method}", ErrorKind.INVALID_INPUT)


@dataclass
class FileUploadProgress:
    # Part of the exported type model; no transfer currently reports progress.
    file_name: str
    bytes_uploaded: int
    total_bytes: int
    percentage: float

    @classmethod
    def from_counts(cls, file_name: str, bytes_uploaded: int, total_bytes: int) -> 'FileUploadProgress':
        percentage = (bytes_uploaded / total_bytes * 100.0) if total_bytes else 100.0
        return cls(file_name, bytes_uploaded, total_bytes, percentage)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'file_name': self.file_name,
            'bytes_uploaded': self.bytes_uploaded,
            'total_bytes': self.total_bytes,
            'percentage': self.percentage,
        }
