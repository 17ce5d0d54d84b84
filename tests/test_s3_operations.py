"""Tests for the client builder, the S3Manager facade and the client slot."""

import threading
from unittest.mock import patch

import pytest
from botocore.exceptions import IncompleteReadError
from botocore.stub import ANY, Stubber

from s3deck.errors import ErrorKind, S3DeckError
from s3deck.s3_operations import ClientSlot, S3Manager, build_client, resolve_endpoint_url
from s3deck.types import CopyRequest, MoveRequest, PresignRequest

from conftest import ACCESS_KEY, MODIFIED, SECRET_KEY, make_config, streaming_body


class TestResolveEndpointUrl:

    def test_plain_host_with_tls(self):
        assert resolve_endpoint_url(make_config(endpoint="minio.local:9000", use_ssl=True)) == \
            "https://minio.local:9000"

    def test_plain_host_without_tls(self):
        assert resolve_endpoint_url(make_config(endpoint="minio.local:9000", use_ssl=False)) == \
            "http://minio.local:9000"

    def test_default_endpoint_is_not_overridden(self):
        assert resolve_endpoint_url(make_config(endpoint="s3.amazonaws.com")) is None

    def test_empty_endpoint_is_not_overridden(self):
        assert resolve_endpoint_url(make_config(endpoint="")) is None

    def test_endpoint_with_scheme_is_used_as_given(self):
        assert resolve_endpoint_url(make_config(endpoint="https://storage.example.com", use_ssl=False)) == \
            "https://storage.example.com"


class TestBuildClient:

    def test_client_uses_config_region_and_endpoint(self):
        client = build_client(make_config(region="eu-west-1"))

        assert client.meta.region_name == "eu-west-1"
        assert client.meta.endpoint_url == "http://localhost:9000"

    def test_path_style_addressing(self):
        client = build_client(make_config(path_style=True))

        assert client.meta.config.s3["addressing_style"] == "path"

    def test_virtual_hosted_addressing_by_default(self):
        client = build_client(make_config(path_style=False))

        assert client.meta.config.s3["addressing_style"] == "auto"

    def test_timeouts_are_applied_when_set(self):
        client = build_client(make_config(connect_timeout=3, read_timeout=7))

        assert client.meta.config.connect_timeout == 3
        assert client.meta.config.read_timeout == 7

    def test_credentials_come_from_config(self):
        client = build_client(make_config())
        credentials = client._request_signer._credentials

        assert credentials.access_key == ACCESS_KEY
        assert credentials.secret_key == SECRET_KEY

    def test_ambient_credentials_are_ignored(self, monkeypatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIAFROMENVIRONMENT1")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret-from-environment")

        client = build_client(make_config(access_key="", secret_key=""))
        credentials = client._request_signer._credentials

        assert credentials.access_key == ""
        assert credentials.secret_key == ""

    @pytest.mark.parametrize("variable", ["AWS_ENDPOINT_URL", "AWS_ENDPOINT_URL_S3"])
    def test_ambient_endpoint_is_ignored(self, monkeypatch, variable):
        monkeypatch.setenv(variable, "http://elsewhere.example:1234")

        default_client = build_client(make_config(endpoint="s3.amazonaws.com", use_ssl=True))
        custom_client = build_client(make_config())

        assert default_client.meta.endpoint_url == "https://s3.amazonaws.com"
        assert custom_client.meta.endpoint_url == "http://localhost:9000"

    def test_malformed_region_is_a_configuration_error(self):
        with pytest.raises(S3DeckError) as exc_info:
            build_client(make_config(region="not a region!"))

        assert exc_info.value.kind == ErrorKind.CONFIGURATION
        assert str(exc_info.value).startswith("Failed to create S3 client")

    def test_verbose_output_masks_secrets(self, capsys):
        build_client(make_config(), verbose=True)

        output = capsys.readouterr().out
        assert "[VERBOSE] Creating boto3 session with access key: AKIATEST...0001" in output
        assert SECRET_KEY not in output


class TestConnectionAndBuckets:

    def test_test_connection_success(self, manager, stubber):
        stubber.add_response("list_buckets", {"Buckets": []}, {})

        assert manager.test_connection() is True

    def test_test_connection_failure_propagates(self, manager, stubber):
        stubber.add_client_error("list_buckets", service_error_code="InvalidAccessKeyId",
                                 http_status_code=403)

        with pytest.raises(S3DeckError) as exc_info:
            manager.test_connection()

        assert exc_info.value.kind == ErrorKind.PROVIDER
        assert "Invalid credentials" in str(exc_info.value)

    def test_list_buckets_maps_records(self, manager, stubber):
        stubber.add_response("list_buckets", {
            "Buckets": [
                {"Name": "alpha", "CreationDate": MODIFIED},
                {"Name": "beta"},
            ],
        }, {})

        buckets = manager.list_buckets()

        assert [b.name for b in buckets] == ["alpha", "beta"]
        assert buckets[0].creation_date == MODIFIED
        assert buckets[1].creation_date is None

    def test_list_buckets_makes_a_single_request(self, manager, stubber):
        stubber.add_response("list_buckets", {"Buckets": [{"Name": "alpha"}]}, {})

        assert [b.name for b in manager.list_buckets()] == ["alpha"]
        stubber.assert_no_pending_responses()

    def test_list_buckets_defaults_missing_name(self, manager, stubber):
        stubber.add_response("list_buckets", {"Buckets": [{"CreationDate": MODIFIED}]}, {})

        assert manager.list_buckets()[0].name == ""


class TestListObjects:

    def test_request_uses_delimiter_and_prefix(self, manager, stubber):
        stubber.add_response(
            "list_objects_v2",
            {
                "CommonPrefixes": [{"Prefix": "a/sub/"}],
                "Contents": [
                    {"Key": "a/", "Size": 0, "LastModified": MODIFIED, "ETag": '"d41d8"'},
                    {"Key": "a/x.txt", "Size": 17, "LastModified": MODIFIED, "ETag": '"e1"'},
                ],
            },
            {"Bucket": "my-bucket", "Delimiter": "/", "Prefix": "a/"},
        )

        records = manager.list_objects("my-bucket", "a/")

        assert [(r.key, r.is_dir) for r in records] == [("a/sub/", True), ("a/x.txt", False)]

    def test_no_prefix_lists_bucket_root(self, manager, stubber):
        stubber.add_response("list_objects_v2", {"KeyCount": 0},
                             {"Bucket": "my-bucket", "Delimiter": "/"})

        assert manager.list_objects("my-bucket") == []

    def test_only_first_page_is_read(self, manager, stubber):
        stubber.add_response(
            "list_objects_v2",
            {
                "IsTruncated": True,
                "NextContinuationToken": "page-2",
                "Contents": [{"Key": "a.txt", "Size": 1, "LastModified": MODIFIED, "ETag": '"e1"'}],
            },
            {"Bucket": "my-bucket", "Delimiter": "/"},
        )

        records = manager.list_objects("my-bucket")

        assert [r.key for r in records] == ["a.txt"]

    def test_missing_bucket(self, manager, stubber):
        stubber.add_client_error("list_objects_v2", service_error_code="NoSuchBucket",
                                 service_message="The specified bucket does not exist",
                                 http_status_code=404)

        with pytest.raises(S3DeckError) as exc_info:
            manager.list_objects("missing-bucket")

        assert str(exc_info.value) == "Bucket 'missing-bucket' does not exist."
        assert exc_info.value.code == "NoSuchBucket"


class TestTransfers:

    def test_upload_file(self, manager, stubber, tmp_path):
        source = tmp_path / "hello.txt"
        source.write_bytes(b"hello world")
        stubber.add_response("put_object", {"ETag": '"abc"'},
                             {"Bucket": "my-bucket", "Key": "docs/hello.txt", "Body": ANY})

        manager.upload_file("my-bucket", "docs/hello.txt", str(source))

    def test_upload_missing_file_is_local_io_error(self, manager, tmp_path):
        with pytest.raises(S3DeckError) as exc_info:
            manager.upload_file("my-bucket", "k", str(tmp_path / "nope.bin"))

        assert exc_info.value.kind == ErrorKind.LOCAL_IO

    def test_upload_data(self, manager, stubber):
        stubber.add_response("put_object", {"ETag": '"abc"'},
                             {"Bucket": "my-bucket", "Key": "raw.bin", "Body": b"\x00\x01\x02"})

        manager.upload_data("my-bucket", "raw.bin", b"\x00\x01\x02")

    def test_download_file_writes_body(self, manager, stubber, tmp_path):
        payload = b"line one\nline two\n" * 100
        stubber.add_response("get_object", {"Body": streaming_body(payload), "ContentLength": len(payload)},
                             {"Bucket": "my-bucket", "Key": "logs/app.log"})
        destination = tmp_path / "app.log"

        manager.download_file("my-bucket", "logs/app.log", str(destination))

        assert destination.read_bytes() == payload

    def test_download_missing_key_creates_no_file(self, manager, stubber, tmp_path):
        stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
        destination = tmp_path / "missing.txt"

        with pytest.raises(S3DeckError) as exc_info:
            manager.download_file("my-bucket", "missing.txt", str(destination))

        assert str(exc_info.value) == "Object 'missing.txt' not found."
        assert not destination.exists()

    def test_interrupted_download_leaves_partial_file(self, manager, stubber, tmp_path):
        class DroppedBody:
            def read(self, amt=None):
                return b""

            def iter_chunks(self, chunk_size=1024):
                yield b"first chunk"
                raise IncompleteReadError(actual_bytes=11, expected_bytes=64)

        stubber.add_response("get_object", {"Body": DroppedBody(), "ContentLength": 64},
                             {"Bucket": "my-bucket", "Key": "big.bin"})
        destination = tmp_path / "big.bin"

        with pytest.raises(S3DeckError) as exc_info:
            manager.download_file("my-bucket", "big.bin", str(destination))

        assert exc_info.value.kind == ErrorKind.CONNECTIVITY
        assert destination.read_bytes() == b"first chunk"

    def test_download_to_missing_directory_is_local_io_error(self, manager, stubber, tmp_path):
        stubber.add_response("get_object", {"Body": streaming_body(b"x")},
                             {"Bucket": "my-bucket", "Key": "a.txt"})

        with pytest.raises(S3DeckError) as exc_info:
            manager.download_file("my-bucket", "a.txt", str(tmp_path / "no" / "such" / "dir" / "a.txt"))

        assert exc_info.value.kind == ErrorKind.LOCAL_IO

    def test_download_data(self, manager, stubber):
        stubber.add_response("get_object", {"Body": streaming_body(b"payload")},
                             {"Bucket": "my-bucket", "Key": "a.bin"})

        assert manager.download_data("my-bucket", "a.bin") == b"payload"


class TestBucketsAndObjects:

    def test_delete_object(self, manager, stubber):
        stubber.add_response("delete_object", {}, {"Bucket": "my-bucket", "Key": "old.txt"})

        manager.delete_object("my-bucket", "old.txt")

    def test_create_bucket_in_default_region_omits_constraint(self, manager, stubber):
        stubber.add_response("create_bucket", {"Location": "/new-bucket"}, {"Bucket": "new-bucket"})

        manager.create_bucket("new-bucket")

    def test_create_bucket_in_other_region_attaches_constraint(self):
        config = make_config(region="eu-central-1")
        client = build_client(config)
        manager = S3Manager(config, client=client)

        with Stubber(client) as stubber:
            stubber.add_response(
                "create_bucket",
                {"Location": "/new-bucket"},
                {"Bucket": "new-bucket",
                 "CreateBucketConfiguration": {"LocationConstraint": "eu-central-1"}},
            )
            manager.create_bucket("new-bucket")
            stubber.assert_no_pending_responses()

    def test_create_existing_bucket(self, manager, stubber):
        stubber.add_client_error("create_bucket", service_error_code="BucketAlreadyOwnedByYou",
                                 http_status_code=409)

        with pytest.raises(S3DeckError, match="Bucket 'taken-bucket' already exists."):
            manager.create_bucket("taken-bucket")

    def test_delete_bucket(self, manager, stubber):
        stubber.add_response("delete_bucket", {}, {"Bucket": "old-bucket"})

        manager.delete_bucket("old-bucket")

    def test_get_object_metadata(self, manager, stubber):
        stubber.add_response(
            "head_object",
            {
                "ContentLength": 17,
                "LastModified": MODIFIED,
                "ETag": '"e1"',
                "ContentType": "text/plain",
                "Metadata": {"owner": "alice", "project": "apollo"},
            },
            {"Bucket": "my-bucket", "Key": "a/x.txt"},
        )

        metadata = manager.get_object_metadata("my-bucket", "a/x.txt")

        assert metadata.key == "a/x.txt"
        assert metadata.size == 17
        assert metadata.last_modified == MODIFIED
        assert metadata.etag == '"e1"'
        assert metadata.content_type == "text/plain"
        assert metadata.metadata == {"owner": "alice", "project": "apollo"}

    def test_copy_object_uses_bucket_key_source(self, manager, stubber):
        stubber.add_response(
            "copy_object",
            {},
            {"Bucket": "dest-bucket", "Key": "b/copy.txt", "CopySource": "src-bucket/a/orig.txt"},
        )

        manager.copy_object(CopyRequest("src-bucket", "a/orig.txt", "dest-bucket", "b/copy.txt"))


class TestMoveObject:

    def test_move_is_copy_then_delete(self, manager, stubber):
        stubber.add_response("copy_object", {},
                             {"Bucket": "my-bucket", "Key": "new.txt", "CopySource": "my-bucket/old.txt"})
        stubber.add_response("delete_object", {}, {"Bucket": "my-bucket", "Key": "old.txt"})

        manager.move_object(MoveRequest("my-bucket", "old.txt", "my-bucket", "new.txt"))

    def test_failed_copy_skips_delete(self, manager, stubber):
        stubber.add_client_error("copy_object", service_error_code="AccessDenied", http_status_code=403)

        with pytest.raises(S3DeckError, match="Access denied"):
            manager.move_object(MoveRequest("my-bucket", "old.txt", "my-bucket", "new.txt"))

    def test_failed_delete_leaves_both_objects(self, manager, stubber):
        stubber.add_response("copy_object", {},
                             {"Bucket": "my-bucket", "Key": "new.txt", "CopySource": "my-bucket/old.txt"})
        stubber.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)
        stubber.add_response("list_objects_v2", {
            "Contents": [
                {"Key": "new.txt", "Size": 4, "LastModified": MODIFIED, "ETag": '"a"'},
                {"Key": "old.txt", "Size": 4, "LastModified": MODIFIED, "ETag": '"a"'},
            ],
        }, {"Bucket": "my-bucket", "Delimiter": "/"})

        with pytest.raises(S3DeckError):
            manager.move_object(MoveRequest("my-bucket", "old.txt", "my-bucket", "new.txt"))

        keys = [r.key for r in manager.list_objects("my-bucket")]
        assert "old.txt" in keys
        assert "new.txt" in keys


class TestPresignedUrl:

    @pytest.mark.parametrize("method", ["GET", "put", "Delete"])
    def test_supported_methods(self, manager, method):
        url = manager.get_presigned_url(PresignRequest("my-bucket", "a/x.txt", 600, method))

        assert url.startswith("http://localhost:9000/my-bucket/a/x.txt?")
        assert "X-Amz-Expires=600" in url
        assert "X-Amz-Signature=" in url

    def test_unsupported_method_fails_without_signing(self, manager):
        with patch.object(manager.client, "generate_presigned_url") as sign:
            with pytest.raises(S3DeckError) as exc_info:
                manager.get_presigned_url(PresignRequest("my-bucket", "a", 60, "PATCH"))

        assert exc_info.value.kind == ErrorKind.INVALID_INPUT
        assert str(exc_info.value) == "Unsupported HTTP method: PATCH"
        sign.assert_not_called()


class TestClientSlot:

    def test_use_before_initialize_fails(self):
        slot = ClientSlot()

        with pytest.raises(S3DeckError, match="S3 client not initialized"):
            slot.with_client(lambda client: client)

        assert slot.is_initialized is False

    def test_initialize_then_borrow(self):
        slot = ClientSlot()
        slot.initialize(make_config(region="eu-west-2"))

        assert slot.is_initialized is True
        assert slot.with_client(lambda client: client.meta.region_name) == "eu-west-2"

    def test_clear(self):
        slot = ClientSlot()
        slot.initialize(make_config())
        slot.clear()

        assert slot.is_initialized is False

    def test_concurrent_initialize_and_borrow(self):
        slot = ClientSlot()
        slot.initialize(make_config(region="us-east-1"))
        regions = ["us-west-2", "eu-west-1", "ap-south-1"]
        seen = []
        errors = []

        def initialize(region):
            try:
                slot.initialize(make_config(region=region))
            except Exception as e:
                errors.append(e)

        def borrow():
            seen.append(slot.with_client(lambda client: client.meta.region_name))

        threads = [threading.Thread(target=initialize, args=(r,)) for r in regions]
        threads += [threading.Thread(target=borrow) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(seen) == 5
        assert set(seen) <= set(regions) | {"us-east-1"}
