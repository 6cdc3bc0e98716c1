"""Duplicate detection policies for incoming images.

The active policy decides whether a candidate collides with a record that is
already in the collection. Candidates are never compared with each other.

Policies:
    FileNamePolicy: exact, case-sensitive file name match (default).
    ContentHashPolicy: file name match, or identical SHA-256 of the content.
        Requires candidate content to be materialized before the check.
"""

from __future__ import annotations

from typing import Iterable, Protocol, Union

from models.image_record import ImageCandidate, ImageRecord

Candidate = Union[ImageCandidate, ImageRecord]


class DuplicatePolicy(Protocol):
    name: str
    needs_content: bool

    def is_duplicate(self, candidate: Candidate, existing: Iterable[ImageRecord]) -> bool:
        ...


class FileNamePolicy:
    """Treat a candidate as a duplicate when any record shares its file name."""

    name = "file-name"
    needs_content = False

    def is_duplicate(self, candidate: Candidate, existing: Iterable[ImageRecord]) -> bool:
        return any(record.file_name == candidate.file_name for record in existing)


class ContentHashPolicy:
    """File name match, or identical content hash when the candidate has content."""

    name = "content-hash"
    needs_content = True

    def is_duplicate(self, candidate: Candidate, existing: Iterable[ImageRecord]) -> bool:
        records = list(existing)
        if FileNamePolicy().is_duplicate(candidate, records):
            return True
        candidate_hash = candidate.content_hash()
        if candidate_hash is None:
            return False
        return any(record.binary_content and record.content_hash() == candidate_hash for record in records)


FILE_NAME_POLICY = FileNamePolicy()
CONTENT_HASH_POLICY = ContentHashPolicy()

_POLICIES = {policy.name: policy for policy in (FILE_NAME_POLICY, CONTENT_HASH_POLICY)}


def policy_from_name(name: str) -> DuplicatePolicy:
    """Return the policy registered under `name` (e.g. "file-name")."""
    try:
        return _POLICIES[name.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown duplicate policy {name!r}; expected one of {sorted(_POLICIES)}"
        ) from None


def is_duplicate(
    candidate: Candidate,
    existing: Iterable[ImageRecord],
    policy: DuplicatePolicy = FILE_NAME_POLICY,
) -> bool:
    """Return True if `candidate` collides with any record in `existing`."""
    return policy.is_duplicate(candidate, existing)
