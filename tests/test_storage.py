from unittest import mock

import pytest
import requests
from google.cloud.exceptions import NotFound

from asset_verify.core.errors import StoreNotFound, StoreUnavailable
from asset_verify.core.storage import StorageClient
from asset_verify.core.utils import parse_storage_uri


def local_client(**kwargs):
    return StorageClient(use_gcs=False, use_walrus=False, **kwargs)


def test_parse_storage_uri():
    assert parse_storage_uri("gs://bucket/a/b.png") == ("gs", "bucket/a/b.png")
    assert parse_storage_uri("walrus://cid123") == ("walrus", "cid123")
    assert parse_storage_uri("local:///tmp/x") == ("local", "/tmp/x")
    assert parse_storage_uri("bafybeigdyr") == ("walrus", "bafybeigdyr")


def test_fetch_local_file(tmp_path):
    path = tmp_path / "image.png"
    path.write_bytes(b"stored image")

    assert local_client().fetch_bytes(f"local://{path}") == b"stored image"


def test_fetch_local_relative_to_root(tmp_path):
    (tmp_path / "image").mkdir()
    (tmp_path / "image" / "a.png").write_bytes(b"abc")

    client = local_client(local_root=str(tmp_path))
    assert client.fetch_bytes("local://image/a.png") == b"abc"


def test_fetch_local_missing_file(tmp_path):
    with pytest.raises(StoreNotFound):
        local_client().fetch_bytes(f"local://{tmp_path / 'missing.png'}")


def test_unsupported_scheme():
    with pytest.raises(StoreUnavailable):
        local_client().fetch_bytes("ftp://host/file")


def test_unconfigured_backends_are_unavailable():
    client = local_client()
    with pytest.raises(StoreUnavailable):
        client.fetch_bytes("gs://bucket/file.png")
    with pytest.raises(StoreUnavailable):
        client.fetch_bytes("walrus://cid")


def test_fetch_from_walrus():
    session = mock.Mock()
    session.get.return_value = mock.Mock(status_code=200, content=b"walrus bytes")
    client = StorageClient(use_gcs=False, use_walrus=True, session=session)

    assert client.fetch_bytes("walrus://cid42") == b"walrus bytes"
    assert session.get.call_args[0][0].endswith("/download/cid42")


@pytest.mark.parametrize("status_code,error", [(404, StoreNotFound), (503, StoreUnavailable)])
def test_walrus_error_statuses(status_code, error):
    session = mock.Mock()
    session.get.return_value = mock.Mock(status_code=status_code, content=b"")
    client = StorageClient(use_gcs=False, use_walrus=True, session=session)

    with pytest.raises(error):
        client.fetch_bytes("walrus://cid42")


def test_walrus_connection_error():
    session = mock.Mock()
    session.get.side_effect = requests.exceptions.ConnectionError("refused")
    client = StorageClient(use_gcs=False, use_walrus=True, session=session)

    with pytest.raises(StoreUnavailable):
        client.fetch_bytes("walrus://cid42")


def test_fetch_from_gcs():
    gcs_client = mock.Mock()
    blob = gcs_client.bucket.return_value.blob.return_value
    blob.download_as_bytes.return_value = b"gcs bytes"
    client = StorageClient(use_gcs=True, use_walrus=False, gcs_client=gcs_client)

    assert client.fetch_bytes("gs://assets/image/a.png") == b"gcs bytes"
    gcs_client.bucket.assert_called_with("assets")
    gcs_client.bucket.return_value.blob.assert_called_with("image/a.png")


def test_gcs_missing_blob():
    gcs_client = mock.Mock()
    gcs_client.bucket.return_value.blob.return_value.download_as_bytes.side_effect = NotFound("gone")
    client = StorageClient(use_gcs=True, use_walrus=False, gcs_client=gcs_client)

    with pytest.raises(StoreNotFound):
        client.fetch_bytes("gs://assets/missing.png")
