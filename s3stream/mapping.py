"""Translation between S3 wire attributes and the typed object model."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger


class StorageClass(Enum):
    STANDARD = "standard"
    STANDARD_INFREQUENT_ACCESS = "standard-infrequent-access"
    ONE_ZONE_INFREQUENT_ACCESS = "one-zone-infrequent-access"
    INTELLIGENT_TIERING = "intelligent-tiering"
    ARCHIVE_FLEXIBLE_RETRIEVAL = "archive-flexible-retrieval"
    ARCHIVE_INSTANT_RETRIEVAL = "archive-instant-retrieval"
    ARCHIVE_DEEP_ARCHIVE = "archive-deep-archive"
    # Discouraged: S3 Standard is more cost-effective. Kept for older stores.
    REDUCED_REDUNDANCY = "reduced-redundancy"


STORAGE_CLASS_TOKENS = {
    StorageClass.STANDARD: "STANDARD",
    StorageClass.STANDARD_INFREQUENT_ACCESS: "STANDARD_IA",
    StorageClass.ONE_ZONE_INFREQUENT_ACCESS: "ONEZONE_IA",
    StorageClass.INTELLIGENT_TIERING: "INTELLIGENT_TIERING",
    StorageClass.ARCHIVE_FLEXIBLE_RETRIEVAL: "GLACIER",
    StorageClass.ARCHIVE_INSTANT_RETRIEVAL: "GLACIER_IR",
    StorageClass.ARCHIVE_DEEP_ARCHIVE: "DEEP_ARCHIVE",
    StorageClass.REDUCED_REDUNDANCY: "REDUCED_REDUNDANCY",
}

STORAGE_CLASSES_BY_TOKEN = {token: sc for sc, token in STORAGE_CLASS_TOKENS.items()}

DEPRECATED_STORAGE_CLASSES = frozenset({StorageClass.REDUCED_REDUNDANCY})


@dataclass(frozen=True)
class ObjectMetadata:
    """Attributes of a stored object, as reported by a HEAD request."""
    storage_class: StorageClass
    entity_tag: str
    size_in_bytes: int
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None


def storage_class_to_wire(storage_class: StorageClass) -> str:
    if storage_class in DEPRECATED_STORAGE_CLASSES:
        logger.warning(f"Storage class {storage_class.name} is discouraged, "
                       "the standard storage class is more cost-effective")
    return STORAGE_CLASS_TOKENS.get(storage_class, "STANDARD")


def storage_class_from_wire(token: Optional[str]) -> StorageClass:
    """Decode a storage class token. Unknown or missing tokens are
    read as the standard tier, never as an error."""
    if token is None:
        return StorageClass.STANDARD
    return STORAGE_CLASSES_BY_TOKEN.get(token.strip(), StorageClass.STANDARD)


def metadata_from_headers(headers) -> ObjectMetadata:
    """Build ObjectMetadata from the headers of a HEAD response.

    `headers` is any case-insensitive mapping, such as httpx.Headers.
    """
    content_length = headers.get("content-length")
    try:
        size = int(content_length) if content_length else 0
    except ValueError:
        size = 0

    return ObjectMetadata(
        storage_class=storage_class_from_wire(headers.get("x-amz-storage-class")),
        entity_tag=headers.get("etag") or "",
        size_in_bytes=size,
        content_type=headers.get("content-type"),
        content_encoding=headers.get("content-encoding"),
    )
