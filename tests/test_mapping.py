import httpx
import pytest

from s3stream.mapping import (
    ObjectMetadata,
    StorageClass,
    metadata_from_headers,
    storage_class_from_wire,
    storage_class_to_wire,
)


@pytest.mark.parametrize("storage_class", list(StorageClass))
def test_storage_class_round_trip(storage_class):
    assert storage_class_from_wire(storage_class_to_wire(storage_class)) is storage_class


def test_storage_class_tokens():
    assert storage_class_to_wire(StorageClass.STANDARD) == 'STANDARD'
    assert storage_class_to_wire(StorageClass.STANDARD_INFREQUENT_ACCESS) == 'STANDARD_IA'
    assert storage_class_to_wire(StorageClass.ONE_ZONE_INFREQUENT_ACCESS) == 'ONEZONE_IA'
    assert storage_class_to_wire(StorageClass.INTELLIGENT_TIERING) == 'INTELLIGENT_TIERING'
    assert storage_class_to_wire(StorageClass.ARCHIVE_FLEXIBLE_RETRIEVAL) == 'GLACIER'
    assert storage_class_to_wire(StorageClass.ARCHIVE_INSTANT_RETRIEVAL) == 'GLACIER_IR'
    assert storage_class_to_wire(StorageClass.ARCHIVE_DEEP_ARCHIVE) == 'DEEP_ARCHIVE'
    assert storage_class_to_wire(StorageClass.REDUCED_REDUNDANCY) == 'REDUCED_REDUNDANCY'


@pytest.mark.parametrize("token", ['', 'EXPRESS_ONEZONE', 'standard', 'bogus', None])
def test_unknown_storage_class_is_standard(token):
    assert storage_class_from_wire(token) is StorageClass.STANDARD


def test_metadata_from_headers():
    headers = httpx.Headers({
        'ETag': '"abc"',
        'Content-Length': '1234',
        'Content-Type': 'application/zip',
        'Content-Encoding': 'gzip',
        'x-amz-storage-class': 'GLACIER_IR',
    })
    assert metadata_from_headers(headers) == ObjectMetadata(
        storage_class=StorageClass.ARCHIVE_INSTANT_RETRIEVAL,
        entity_tag='"abc"',
        size_in_bytes=1234,
        content_type='application/zip',
        content_encoding='gzip',
    )


def test_metadata_defaults():
    metadata = metadata_from_headers(httpx.Headers({}))
    assert metadata.storage_class is StorageClass.STANDARD
    assert metadata.entity_tag == ''
    assert metadata.size_in_bytes == 0
    assert metadata.content_type is None
    assert metadata.content_encoding is None


def test_metadata_is_immutable():
    metadata = metadata_from_headers(httpx.Headers({'Content-Length': '1'}))
    with pytest.raises(AttributeError):
        metadata.size_in_bytes = 2
