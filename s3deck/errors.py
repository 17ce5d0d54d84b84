#!/usr/bin/env python3
"""
Error types for S3 backend operations
Every failure reaching the UI is an S3DeckError with a readable message
"""

from enum import Enum
from typing import Optional

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    EndpointConnectionError,
    HTTPClientError,
    IncompleteReadError,
    InvalidRegionError,
    NoCredentialsError,
    ParamValidationError,
    PartialCredentialsError,
    SSLError,
)


class ErrorKind(Enum):
    """Where a failure originated"""
    CONFIGURATION = 'configuration'
    CONNECTIVITY = 'connectivity'
    PROVIDER = 'provider'
    LOCAL_IO = 'local_io'
    INVALID_INPUT = 'invalid_input'


class S3DeckError(Exception):
    """Base exception for all backend failures"""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.PROVIDER, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.code = code

    def __str__(self):
        return self.message


def translate_error(error: Exception, bucket: Optional[str] = None, key: Optional[str] = None) -> S3DeckError:
    """Convert an SDK or OS exception into an S3DeckError"""
    if isinstance(error, S3DeckError):
        return error

    if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
        return S3DeckError("Invalid credentials. Please check your access key and secret key.",
                           ErrorKind.CONFIGURATION)
    if isinstance(error, InvalidRegionError):
        return S3DeckError(f"Invalid region: {error}", ErrorKind.CONFIGURATION)
    if isinstance(error, SSLError):
        return S3DeckError(f"TLS handshake with the endpoint failed: {error}", ErrorKind.CONNECTIVITY)
    if isinstance(error, EndpointConnectionError):
        return S3DeckError("Cannot connect to the endpoint. Please check the URL.", ErrorKind.CONNECTIVITY)
    if isinstance(error, BotoConnectionError):
        return S3DeckError(f"Connection failed: {error}", ErrorKind.CONNECTIVITY)
    if isinstance(error, (HTTPClientError, IncompleteReadError)):
        return S3DeckError(f"Transfer interrupted: {error}", ErrorKind.CONNECTIVITY)
    if isinstance(error, ParamValidationError):
        return S3DeckError(f"Invalid request: {error}", ErrorKind.INVALID_INPUT)
    if isinstance(error, ClientError):
        return _translate_client_error(error, bucket, key)
    if isinstance(error, BotoCoreError):
        return S3DeckError(str(error), ErrorKind.CONFIGURATION)
    if isinstance(error, OSError):
        detail = error.strerror or str(error)
        if error.filename:
            detail = f"{detail}: {error.filename}"
        return S3DeckError(f"Local file error: {detail}", ErrorKind.LOCAL_IO)
    if isinstance(error, ValueError):
        return S3DeckError(f"Invalid configuration: {error}", ErrorKind.CONFIGURATION)

    return S3DeckError(f"{type(error).__name__}: {error}", ErrorKind.PROVIDER)


def _translate_client_error(error: ClientError, bucket: Optional[str], key: Optional[str]) -> S3DeckError:
    error_info = error.response.get('Error', {})
    error_code = str(error_info.get('Code', 'Unknown'))
    error_message = error_info.get('Message') or str(error)

    if error_code == 'NoSuchBucket':
        message = f"Bucket '{bucket}' does not exist." if bucket else "Bucket does not exist."
    elif error_code in ('NoSuchKey', '404', 'NotFound'):
        message = f"Object '{key}' not found." if key else "Object not found."
    elif error_code in ('AccessDenied', '403', 'Forbidden'):
        message = "Access denied. Please check your credentials and permissions."
    elif error_code in ('InvalidAccessKeyId', 'SignatureDoesNotMatch'):
        message = "Invalid credentials. Please check your access key and secret key."
    elif error_code in ('BucketAlreadyExists', 'BucketAlreadyOwnedByYou'):
        message = f"Bucket '{bucket}' already exists." if bucket else "Bucket already exists."
    elif error_code == 'IllegalLocationConstraintException':
        message = f"Region mismatch: {error_message}"
    else:
        message = f"S3 error ({error_code}): {error_message}"

    return S3DeckError(message, ErrorKind.PROVIDER, code=error_code)
