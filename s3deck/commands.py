#!/usr/bin/env python3
"""
Command surface consumed by the UI layer

Every command receives a ConnectionConfig, builds its own S3Manager, performs
one operation and returns plain records. Failures are raised as S3DeckError;
invoke() turns them into the {"ok": False, "error": ...} payload the UI shows.
"""

import base64
import inspect
from typing import List, Dict, Any, Optional, Callable

from .errors import S3DeckError, ErrorKind
from .s3_operations import S3Manager
from .types import (
    ConnectionConfig,
    BucketRecord,
    ObjectRecord,
    ObjectMetadata,
    CopyRequest,
    MoveRequest,
    PresignRequest,
)

COMMANDS: Dict[str, Callable] = {}
REQUEST_TYPES: Dict[str, type] = {}


def command(name: str, request_type: Optional[type] = None, aliases=()):
    """Register a function under a command name for invoke()"""
    def register(func):
        for command_name in (name,) + tuple(aliases):
            COMMANDS[command_name] = func
            if request_type is not None:
                REQUEST_TYPES[command_name] = request_type
        return func
    return register


@command('connect', aliases=('connect_to_s3',))
def connect(config: ConnectionConfig, verbose: bool = False) -> bool:
    return S3Manager(config, verbose=verbose).test_connection()


@command('test_connection')
def test_connection(config: ConnectionConfig, verbose: bool = False) -> bool:
    return S3Manager(config, verbose=verbose).test_connection()


@command('list_buckets')
def list_buckets(config: ConnectionConfig, verbose: bool = False) -> List[BucketRecord]:
    return S3Manager(config, verbose=verbose).list_buckets()


@command('list_objects')
def list_objects(config: ConnectionConfig, bucket: str, prefix: Optional[str] = None,
                 verbose: bool = False) -> List[ObjectRecord]:
    return S3Manager(config, verbose=verbose).list_objects(bucket, prefix)


@command('upload_file')
def upload_file(config: ConnectionConfig, bucket: str, key: str, file_path: str,
                verbose: bool = False) -> None:
    S3Manager(config, verbose=verbose).upload_file(bucket, key, file_path)


@command('upload_data')
def upload_data(config: ConnectionConfig, bucket: str, key: str, data: bytes,
                verbose: bool = False) -> None:
    S3Manager(config, verbose=verbose).upload_data(bucket, key, data)


@command('download_file')
def download_file(config: ConnectionConfig, bucket: str, key: str, file_path: str,
                  verbose: bool = False) -> None:
    S3Manager(config, verbose=verbose).download_file(bucket, key, file_path)


@command('download_data')
def download_data(config: ConnectionConfig, bucket: str, key: str, verbose: bool = False) -> bytes:
    return S3Manager(config, verbose=verbose).download_data(bucket, key)


@command('delete_object')
def delete_object(config: ConnectionConfig, bucket: str, key: str, verbose: bool = False) -> None:
    S3Manager(config, verbose=verbose).delete_object(bucket, key)


@command('create_bucket')
def create_bucket(config: ConnectionConfig, bucket: str, verbose: bool = False) -> None:
    S3Manager(config, verbose=verbose).create_bucket(bucket)


@command('delete_bucket')
def delete_bucket(config: ConnectionConfig, bucket: str, verbose: bool = False) -> None:
    S3Manager(config, verbose=verbose).delete_bucket(bucket)


@command('get_object_metadata')
def get_object_metadata(config: ConnectionConfig, bucket: str, key: str,
                        verbose: bool = False) -> ObjectMetadata:
    return S3Manager(config, verbose=verbose).get_object_metadata(bucket, key)


@command('copy_object', request_type=CopyRequest)
def copy_object(config: ConnectionConfig, request: CopyRequest, verbose: bool = False) -> None:
    S3Manager(config, verbose=verbose).copy_object(request)


@command('move_object', request_type=MoveRequest)
def move_object(config: ConnectionConfig, request: MoveRequest, verbose: bool = False) -> None:
    S3Manager(config, verbose=verbose).move_object(request)


@command('get_presigned_url', request_type=PresignRequest)
def get_presigned_url(config: ConnectionConfig, request: PresignRequest, verbose: bool = False) -> str:
    # Reject bad requests before a client is built
    request.validate()
    return S3Manager(config, verbose=verbose).get_presigned_url(request)


def to_json(value: Any) -> Any:
    """Convert a command result into JSON-friendly data"""
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode('ascii')
    if isinstance(value, list):
        return [to_json(item) for item in value]
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    return value


def _decode_data(data: Any) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, list):
        try:
            return bytes(data)
        except (TypeError, ValueError):
            raise S3DeckError("Field 'data' must be a list of byte values", ErrorKind.INVALID_INPUT)
    if isinstance(data, str):
        try:
            return base64.b64decode(data, validate=True)
        except ValueError:
            raise S3DeckError("Field 'data' is not valid base64", ErrorKind.INVALID_INPUT)
    raise S3DeckError("Field 'data' must be bytes or a base64 string", ErrorKind.INVALID_INPUT)


def build_arguments(name: str, payload: Dict[str, Any], verbose: bool = False) -> Dict[str, Any]:
    """Turn a UI payload into keyword arguments for the named command"""
    if name not in COMMANDS:
        raise S3DeckError(f"Unknown command: {name}", ErrorKind.INVALID_INPUT)
    if not isinstance(payload.get('config'), dict):
        raise S3DeckError("Missing connection config", ErrorKind.INVALID_INPUT)

    arguments = dict(payload)
    arguments['config'] = ConnectionConfig.from_dict(payload['config'])
    arguments.setdefault('verbose', verbose)

    if name in REQUEST_TYPES:
        request = payload.get('request')
        if not isinstance(request, dict):
            raise S3DeckError("Missing request", ErrorKind.INVALID_INPUT)
        arguments['request'] = REQUEST_TYPES[name].from_dict(request)

    if 'data' in arguments:
        arguments['data'] = _decode_data(arguments['data'])

    try:
        inspect.signature(COMMANDS[name]).bind(**arguments)
    except TypeError as e:
        raise S3DeckError(f"Invalid arguments for {name}: {e}", ErrorKind.INVALID_INPUT)

    return arguments


def invoke(name: str, payload: Dict[str, Any], verbose: bool = False) -> Dict[str, Any]:
    """Run a command by name and wrap its result or error for the UI"""
    try:
        arguments = build_arguments(name, payload, verbose)
        result = COMMANDS[name](**arguments)
    except S3DeckError as e:
        if verbose:
            print(f"[VERBOSE] {name} failed ({e.kind.value}): {str(e)}")
        return {'ok': False, 'error': str(e), 'kind': e.kind.value}

    return {'ok': True, 'data': to_json(result)}
