#!/usr/bin/env python3
"""
Backend module for S3 Deck
Contains the S3 operations, command surface and connection profiles
Qt worker threads live in s3deck.workers
"""

from .errors import S3DeckError, ErrorKind, translate_error
from .types import (
    ConnectionConfig,
    BucketRecord,
    ObjectRecord,
    ObjectMetadata,
    CopyRequest,
    MoveRequest,
    PresignRequest,
    FileUploadProgress,
)
from .s3_operations import (
    S3Manager,
    ClientSlot,
    FileProcessor,
    build_client,
)
from .commands import COMMANDS, invoke
from .profiles import ConnectionProfile, ProfileStore

__all__ = [
    'S3DeckError',
    'ErrorKind',
    'translate_error',
    'ConnectionConfig',
    'BucketRecord',
    'ObjectRecord',
    'ObjectMetadata',
    'CopyRequest',
    'MoveRequest',
    'PresignRequest',
    'FileUploadProgress',
    'S3Manager',
    'ClientSlot',
    'FileProcessor',
    'build_client',
    'COMMANDS',
    'invoke',
    'ConnectionProfile',
    'ProfileStore',
]
