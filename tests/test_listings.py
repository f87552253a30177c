import os

import pytest

from rlsindex.listings import DirectoryListing, Listing, ListingKind


def test_directories_first_then_files_by_time(tmp_path):
    (tmp_path / "sub").mkdir()
    old = tmp_path / "b.json"
    new = tmp_path / "a.json"
    old.write_text("{}")
    new.write_text("{}")
    os.utime(old, (1000, 1000))
    os.utime(new, (2000, 2000))

    listing = DirectoryListing.from_path(tmp_path)

    assert [item.name for item in listing.files] == ["sub", "b.json", "a.json"]
    assert listing.files[0].kind.is_directory
    assert listing.files[1].kind.modified == 1000.0
    assert listing.files[2].kind.modified == 2000.0


def test_same_time_sorted_by_name(tmp_path):
    for name in ["c", "a", "b"]:
        f = tmp_path / name
        f.write_text("")
        os.utime(f, (500, 500))
    listing = DirectoryListing.from_path(tmp_path)
    assert [item.name for item in listing.files] == ["a", "b", "c"]


def test_path_components(tmp_path):
    listing = DirectoryListing.from_path(tmp_path)
    assert listing.path == list(tmp_path.parts)
    assert listing.files == []


def test_missing_directory_raises(tmp_path):
    with pytest.raises(OSError):
        DirectoryListing.from_path(tmp_path / "missing")


def test_kind_ordering():
    assert ListingKind.directory() < ListingKind.file(0)
    assert ListingKind.file(1) < ListingKind.file(2)
    assert Listing(ListingKind.directory(), "z") < Listing(ListingKind.file(0), "a")
    assert ListingKind.file(3) == ListingKind.file(3)