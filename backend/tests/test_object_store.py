"""Object store tests: local filesystem backend and S3 error mapping."""

import pytest
from botocore.exceptions import ClientError

from hoa_platform.infra.object_store import (
    LocalObjectStore,
    ObjectStoreError,
    S3ObjectStore,
    generate_key,
)


def test_generate_key_sanitizes_filename():
    key = generate_key("bid-documents", "provider-1", "Quote Final.PDF")

    assert key.startswith("bid-documents/provider-1/")
    assert key.endswith("-Quote_Final.PDF")


async def test_local_store_writes_file(tmp_path):
    store = LocalObjectStore(tmp_path, "/uploads/")

    url = await store.put(b"hello", "bid-documents/p1/a.pdf")

    assert url == "/uploads/bid-documents/p1/a.pdf"
    assert (tmp_path / "bid-documents" / "p1" / "a.pdf").read_bytes() == b"hello"


class _RecordingS3:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def put_object(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.calls.append(kwargs)


async def test_s3_store_uploads():
    client = _RecordingS3()
    store = S3ObjectStore("hoa-docs", "me-south-1", client=client)

    url = await store.put(b"pdf", "user-documents/1/x.pdf", "application/pdf")

    assert url == "https://hoa-docs.s3.me-south-1.amazonaws.com/user-documents/1/x.pdf"
    assert client.calls == [
        {"Bucket": "hoa-docs", "Key": "user-documents/1/x.pdf", "Body": b"pdf", "ContentType": "application/pdf"}
    ]


async def test_s3_failure_raises_object_store_error():
    error = ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
    store = S3ObjectStore("hoa-docs", "me-south-1", client=_RecordingS3(error))

    with pytest.raises(ObjectStoreError):
        await store.put(b"pdf", "k")
