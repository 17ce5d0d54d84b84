#!/usr/bin/env python3
"""
S3 backend operations module
Builds clients from connection settings and performs one provider call per operation
"""

import mimetypes
import threading
from contextlib import contextmanager
from typing import List, Dict, Any, Optional, Callable, TypeVar

import boto3
import botocore.session
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .errors import S3DeckError, ErrorKind, translate_error
from .types import (
    ConnectionConfig,
    BucketRecord,
    ObjectRecord,
    ObjectMetadata,
    CopyRequest,
    MoveRequest,
    PresignRequest,
    DEFAULT_ENDPOINT,
    DEFAULT_REGION,
)

T = TypeVar('T')

PATH_SEPARATOR = '/'


def resolve_endpoint_url(config: ConnectionConfig) -> Optional[str]:
    """Endpoint URL override for the client, or None for the provider default"""
    endpoint = config.endpoint.strip()
    if not endpoint or endpoint == DEFAULT_ENDPOINT:
        return None
    if '://' in endpoint:
        return endpoint
    scheme = 'https' if config.use_ssl else 'http'
    return f"{scheme}://{endpoint}"


def build_client(config: ConnectionConfig, verbose: bool = False):
    """Create an S3 client bound to the endpoint, region and addressing style in config"""
    endpoint_url = resolve_endpoint_url(config)

    if verbose:
        print(f"[VERBOSE] Creating boto3 session with access key: {config.masked_access_key}")
        print(f"[VERBOSE] Creating S3 client with endpoint: {endpoint_url or DEFAULT_ENDPOINT}, region: {config.region}")
        print(f"[VERBOSE] Using signature version: s3v4, addressing style: {'path' if config.path_style else 'auto'}")

    client_config = {
        'signature_version': 's3v4',
        # AWS_ENDPOINT_URL and endpoint_url in ~/.aws/config must not redirect requests
        'ignore_configured_endpoint_urls': True,
        's3': {'addressing_style': 'path' if config.path_style else 'auto'},
    }
    if config.connect_timeout is not None:
        client_config['connect_timeout'] = config.connect_timeout
    if config.read_timeout is not None:
        client_config['read_timeout'] = config.read_timeout

    try:
        # Credentials are always the configured pair, even when empty, so the
        # environment and shared credential files are never consulted
        core_session = botocore.session.Session()
        core_session.set_credentials(config.access_key, config.secret_key)
        session = boto3.Session(botocore_session=core_session, region_name=config.region)
        client = session.client(
            's3',
            endpoint_url=endpoint_url,
            config=Config(**client_config),
        )
    except (BotoCoreError, ValueError) as e:
        if verbose:
            print(f"[VERBOSE] Client construction failed: {type(e).__name__}: {str(e)}")
        raise S3DeckError(f"Failed to create S3 client: {translate_error(e)}", ErrorKind.CONFIGURATION) from e

    if verbose:
        print(f"[VERBOSE] S3 client created successfully")

    return client


class FileProcessor:
    """Maps provider listing responses to records"""

    @staticmethod
    def guess_content_type(key: str) -> Optional[str]:
        """Content type inferred from the key's file extension"""
        content_type, _ = mimetypes.guess_type(key, strict=False)
        return content_type

    @staticmethod
    def is_directory_placeholder(obj: Dict[str, Any]) -> bool:
        return obj.get('Key', '').endswith(PATH_SEPARATOR) and obj.get('Size') == 0

    @staticmethod
    def merge_listing(response: Dict[str, Any]) -> List[ObjectRecord]:
        """Directories from common prefixes first, then objects in provider order"""
        records = []

        for common_prefix in response.get('CommonPrefixes', []):
            prefix = common_prefix.get('Prefix')
            if prefix is not None:
                records.append(ObjectRecord.directory(prefix))

        for obj in response.get('Contents', []):
            # Zero-byte "folder/" objects would duplicate the common prefix entries
            if FileProcessor.is_directory_placeholder(obj):
                continue

            key = obj.get('Key', '')
            records.append(ObjectRecord(
                key=key,
                size=obj.get('Size', 0),
                last_modified=obj.get('LastModified'),
                etag=obj.get('ETag'),
                storage_class=obj.get('StorageClass'),
                is_dir=False,
                content_type=FileProcessor.guess_content_type(key),
            ))

        return records


class S3Manager:
    """Operation facade over a single S3 client"""

    def __init__(self, config: ConnectionConfig, client=None, verbose: bool = False):
        self.config = config
        self.verbose = verbose
        self.client = client if client is not None else build_client(config, verbose)

    @contextmanager
    def _provider_call(self, operation: str, bucket: Optional[str] = None, key: Optional[str] = None):
        if self.verbose:
            target = f"{bucket}/{key}" if key else (bucket or '')
            print(f"[VERBOSE] {operation} {target}".rstrip())
        try:
            yield
        except S3DeckError:
            raise
        except (BotoCoreError, ClientError, OSError) as e:
            if self.verbose:
                if isinstance(e, ClientError):
                    print(f"[VERBOSE] ClientError - Code: {e.response.get('Error', {}).get('Code')}")
                    print(f"[VERBOSE] Full error response: {e.response}")
                else:
                    print(f"[VERBOSE] {operation} failed: {type(e).__name__}: {str(e)}")
            raise translate_error(e, bucket, key) from e

    def test_connection(self) -> bool:
        with self._provider_call('list_buckets'):
            self.client.list_buckets()
        return True

    def list_buckets(self) -> List[BucketRecord]:
        with self._provider_call('list_buckets'):
            response = self.client.list_buckets()

        return [
            BucketRecord(name=bucket.get('Name') or '', creation_date=bucket.get('CreationDate'))
            for bucket in response.get('Buckets', [])
        ]

    def list_objects(self, bucket: str, prefix: Optional[str] = None) -> List[ObjectRecord]:
        """One level of the bucket under prefix. Only the first page of results is read."""
        params = {'Bucket': bucket, 'Delimiter': PATH_SEPARATOR}
        if prefix:
            params['Prefix'] = prefix

        with self._provider_call('list_objects_v2', bucket):
            response = self.client.list_objects_v2(**params)

        records = FileProcessor.merge_listing(response)

        if self.verbose:
            print(f"[VERBOSE] Listed {len(records)} entries"
                  f"{' (truncated, more pages available)' if response.get('IsTruncated') else ''}")

        return records

    def upload_file(self, bucket: str, key: str, local_path: str) -> None:
        with self._provider_call('put_object', bucket, key):
            with open(local_path, 'rb') as body:
                self.client.put_object(Bucket=bucket, Key=key, Body=body)

    def upload_data(self, bucket: str, key: str, data: bytes) -> None:
        with self._provider_call('put_object', bucket, key):
            self.client.put_object(Bucket=bucket, Key=key, Body=bytes(data))

    def download_file(self, bucket: str, key: str, local_path: str) -> None:
        """Stream an object into local_path. A failed transfer may leave a partial file."""
        with self._provider_call('get_object', bucket, key):
            response = self.client.get_object(Bucket=bucket, Key=key)
            with open(local_path, 'wb') as f:
                for chunk in response['Body'].iter_chunks():
                    f.write(chunk)

    def download_data(self, bucket: str, key: str) -> bytes:
        with self._provider_call('get_object', bucket, key):
            response = self.client.get_object(Bucket=bucket, Key=key)
            return response['Body'].read()

    def delete_object(self, bucket: str, key: str) -> None:
        with self._provider_call('delete_object', bucket, key):
            self.client.delete_object(Bucket=bucket, Key=key)

    def create_bucket(self, bucket: str) -> None:
        params = {'Bucket': bucket}
        # us-east-1 rejects an explicit location constraint
        if self.config.region != DEFAULT_REGION:
            params['CreateBucketConfiguration'] = {'LocationConstraint': self.config.region}

        with self._provider_call('create_bucket', bucket):
            self.client.create_bucket(**params)

    def delete_bucket(self, bucket: str) -> None:
        with self._provider_call('delete_bucket', bucket):
            self.client.delete_bucket(Bucket=bucket)

    def get_object_metadata(self, bucket: str, key: str) -> ObjectMetadata:
        with self._provider_call('head_object', bucket, key):
            response = self.client.head_object(Bucket=bucket, Key=key)

        return ObjectMetadata(
            key=key,
            size=response.get('ContentLength', 0),
            last_modified=response.get('LastModified'),
            etag=response.get('ETag'),
            content_type=response.get('ContentType'),
            metadata=dict(response.get('Metadata', {})),
        )

    def copy_object(self, request: CopyRequest) -> None:
        with self._provider_call('copy_object', request.dest_bucket, request.dest_key):
            self.client.copy_object(
                Bucket=request.dest_bucket,
                Key=request.dest_key,
                CopySource=request.copy_source,
            )

    def move_object(self, request: MoveRequest) -> None:
        """Copy then delete the source. If the delete fails both copies remain."""
        self.copy_object(request.as_copy())
        self.delete_object(request.source_bucket, request.source_key)

    def get_presigned_url(self, request: PresignRequest) -> str:
        request.validate()
        client_method = request.client_method

        with self._provider_call(f'presign {client_method}', request.bucket, request.key):
            return self.client.generate_presigned_url(
                ClientMethod=client_method,
                Params={'Bucket': request.bucket, 'Key': request.key},
                ExpiresIn=request.expires_in,
            )


class ClientSlot:
    """Lock-guarded holder for one shared client, owned by the caller"""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self._lock = threading.Lock()
        self._client = None

    @property
    def is_initialized(self) -> bool:
        with self._lock:
            return self._client is not None

    def initialize(self, config: ConnectionConfig) -> None:
        """Build a client from config and store it, replacing any previous one"""
        with self._lock:
            self._client = build_client(config, self.verbose)

    def with_client(self, func: Callable[..., T]) -> T:
        """Call func with the stored client while holding the lock"""
        with self._lock:
            if self._client is None:
                raise S3DeckError("S3 client not initialized", ErrorKind.CONFIGURATION)
            return func(self._client)

    def clear(self) -> None:
        with self._lock:
            self._client = None
