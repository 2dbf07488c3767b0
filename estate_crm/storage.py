"""Signed download URLs for contact and property documents."""
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence

from .client import DataService
from .errors import CrmError, DataServiceError
from .models import Functions

LOGGER = logging.getLogger(__name__)

DEFAULT_BUCKETS = ("documents", "contact-docs")
DEFAULT_EXPIRY_SECONDS = 600


def get_contact_file_url(service: DataService, file_id: str) -> str:
    """Signed URL for a contact file, issued by the backend after an access check."""

    return _signed_url_from_function(service, Functions.CONTACT_DOCS_SIGNED_URL, file_id)


def get_property_file_url(service: DataService, file_id: str) -> Optional[str]:
    """Signed URL for a property document, or ``None`` when it cannot be issued."""

    try:
        return _signed_url_from_function(service, Functions.DOCS_SIGNED_URL, file_id)
    except CrmError:
        LOGGER.warning("Could not issue signed URL for property file %s", file_id, exc_info=True)
        return None


def _signed_url_from_function(service: DataService, function: str, file_id: str) -> str:
    data = service.invoke(function, {"id": file_id})
    url = _extract_url(data)
    if not url:
        raise DataServiceError("No signed URL received", code="NO_SIGNED_URL", status=500)
    return url


def _extract_url(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        return data.get("signedUrl") or data.get("signedURL") or data.get("url")
    return None


def path_variants(path: str, buckets: Iterable[str]) -> List[str]:
    """Object keys to try for ``path``: as stored, without a leading slash, without a bucket prefix."""

    variants = [path]
    stripped = path.lstrip("/")
    variants.append(stripped)
    for bucket in buckets:
        prefix = f"{bucket}/"
        if stripped.startswith(prefix):
            variants.append(stripped[len(prefix):])

    unique: List[str] = []
    for variant in variants:
        if variant and variant not in unique:
            unique.append(variant)
    return unique


def create_signed_url_with_fallbacks(
    service: DataService,
    path: str,
    buckets: Sequence[str] = DEFAULT_BUCKETS,
    expires_in: int = DEFAULT_EXPIRY_SECONDS,
) -> str:
    """Try every bucket and path variant in order; raise the last error only if all fail."""

    if not path:
        raise ValueError("A storage path is required")
    if not buckets:
        raise ValueError("At least one storage bucket is required")

    last_error: Optional[DataServiceError] = None
    for bucket in buckets:
        for candidate in path_variants(path, buckets):
            try:
                url = service.create_signed_url(bucket, candidate, expires_in)
            except DataServiceError as exc:
                LOGGER.debug("No object %s in bucket %s: %s", candidate, bucket, exc)
                last_error = exc
                continue
            if url:
                return url
    if last_error is None:
        raise DataServiceError(f"No signed URL issued for {path}", code="NO_SIGNED_URL")
    raise last_error


__all__ = [
    "DEFAULT_BUCKETS",
    "create_signed_url_with_fallbacks",
    "get_contact_file_url",
    "get_property_file_url",
    "path_variants",
]
