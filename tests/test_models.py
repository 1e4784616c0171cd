import uuid

import pytest

from terminaut.models import (
    DirectoryEntry,
    LaunchProfile,
    RecentEntry,
    SearchResult,
    TaggedPath,
)


@pytest.mark.parametrize("entry, kind", [
    (DirectoryEntry("src", "/p/src", True), "Folder"),
    (DirectoryEntry("a.tar.GZ", "/p/a.tar.GZ", False), "gz"),
    (DirectoryEntry("Makefile", "/p/Makefile", False), "Document"),
    (DirectoryEntry("v1.2", "/p/v1.2", True), "Folder"),
])
def test_sort_kind(entry, kind):
    assert entry.sort_kind == kind


def test_directory_entry_rejects_non_boolean_flag():
    with pytest.raises(TypeError):
        DirectoryEntry.from_dict({"name": "a", "path": "/a", "is_dir": "yes"})


def test_recent_entry_timestamp_is_utc():
    recent = RecentEntry.from_dict({"path": "/p", "last_opened_utc": 0})

    assert recent.last_opened.year == 1970
    assert recent.last_opened.utcoffset().total_seconds() == 0


def test_tag_identity_ignores_label_case():
    lower = TaggedPath("/p", "work", "#112233")
    upper = TaggedPath("/p", "WORK", "#445566")

    assert lower.key == upper.key
    assert upper.matches("/p", "Work")
    assert not upper.matches("/q", "work")


def test_launch_profile_defaults_windows_and_omits_absent_fields():
    profile_id = uuid.uuid4()

    profile = LaunchProfile.from_dict({"id": str(profile_id), "name": "dev"})

    assert profile.windows == 1
    assert profile.to_dict() == {"id": str(profile_id), "name": "dev", "windows": 1}


def test_launch_profile_keeps_windows_as_given():
    profile = LaunchProfile.from_dict({"id": str(uuid.uuid4()), "name": "x", "windows": 42})

    assert profile.windows == 42


def test_search_result_rejects_string_score():
    with pytest.raises(TypeError):
        SearchResult.from_dict({"path": "/p", "name": "p", "score": "3"})
