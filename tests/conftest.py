"""Shared fixtures for S3 Deck tests."""

import io
from datetime import datetime, timezone

import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from s3deck.s3_operations import S3Manager, build_client
from s3deck.types import ConnectionConfig

ACCESS_KEY = "AKIATESTKEY000000001"
SECRET_KEY = "wJalrXUtnFEMIaKkMDENGbPxRfIcxAmPlEkEyZaB"
MODIFIED = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def make_config(**overrides):
    settings = dict(
        endpoint="localhost:9000",
        access_key=ACCESS_KEY,
        secret_key=SECRET_KEY,
        region="us-east-1",
        use_ssl=False,
        path_style=True,
    )
    settings.update(overrides)
    return ConnectionConfig(**settings)


def streaming_body(data: bytes) -> StreamingBody:
    return StreamingBody(io.BytesIO(data), len(data))


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def client(config):
    """A real client that never reaches the network while stubbed"""
    return build_client(config)


@pytest.fixture
def stubber(client):
    with Stubber(client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def manager(config, client, stubber):
    return S3Manager(config, client=client)
