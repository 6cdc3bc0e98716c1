"""
Tests for duplicate detection policies
"""
import pytest

from services.duplicate_detector import (
    CONTENT_HASH_POLICY,
    FILE_NAME_POLICY,
    is_duplicate,
    policy_from_name,
)
from tests.conftest import make_candidate, make_record


EXISTING = [make_record("a", "cat.png", content=b"cat-bytes")]


def test_same_file_name_is_duplicate():
    assert is_duplicate(make_candidate("b", "cat.png"), EXISTING) is True


def test_file_name_match_is_case_sensitive_and_exact():
    assert is_duplicate(make_candidate("b", "Cat.png"), EXISTING) is False
    assert is_duplicate(make_candidate("b", "cat.png "), EXISTING) is False


def test_empty_collection_has_no_duplicates():
    assert is_duplicate(make_candidate("b", "cat.png"), []) is False


def test_file_name_policy_ignores_content():
    same_bytes = make_record("b", "other.png", content=b"cat-bytes")
    assert is_duplicate(same_bytes, EXISTING, FILE_NAME_POLICY) is False


def test_content_hash_policy_matches_identical_bytes():
    same_bytes = make_record("b", "other.png", content=b"cat-bytes")
    assert is_duplicate(same_bytes, EXISTING, CONTENT_HASH_POLICY) is True


def test_content_hash_policy_still_checks_file_name():
    renamed = make_record("b", "cat.png", content=b"different")
    assert is_duplicate(renamed, EXISTING, CONTENT_HASH_POLICY) is True


def test_content_hash_policy_without_content_falls_back_to_name():
    candidate = make_candidate("b", "new.png")
    assert candidate.binary_content is None
    assert is_duplicate(candidate, EXISTING, CONTENT_HASH_POLICY) is False


def test_policy_from_name():
    assert policy_from_name("file-name") is FILE_NAME_POLICY
    assert policy_from_name(" Content-Hash ") is CONTENT_HASH_POLICY
    with pytest.raises(ValueError):
        policy_from_name("perceptual")
