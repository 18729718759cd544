"""Tests for photo staging: capacity, type and size screening, preview lifecycle."""

import pytest

from intake.services.attachments import (
    MAX_PHOTO_BYTES,
    AttachmentManager,
    CapacityError,
    FileTooLargeError,
    PreviewRegistry,
    UnsupportedTypeError,
)
from intake.tests.factories import make_photo


def test_add_files_stages_in_order_with_previews():
    manager = AttachmentManager()
    added = manager.add_files([make_photo("a.jpg"), make_photo("b.png", "image/png")])

    assert [a.file.filename for a in manager.attachments] == ["a.jpg", "b.png"]
    assert len(manager.previews) == 2
    for attachment in added:
        assert manager.previews.open(attachment.preview_handle) is attachment.file


def test_seven_files_rejected_when_empty():
    manager = AttachmentManager()
    with pytest.raises(CapacityError) as exc:
        manager.add_files([make_photo(f"{i}.jpg") for i in range(7)])

    assert exc.value.message == "You can upload a maximum of 6 photos"
    assert len(manager) == 0
    assert len(manager.previews) == 0


def test_capacity_counts_already_staged():
    manager = AttachmentManager()
    manager.add_files([make_photo() for _ in range(4)])

    with pytest.raises(CapacityError):
        manager.add_files([make_photo() for _ in range(3)])
    assert len(manager) == 4

    manager.add_files([make_photo(), make_photo()])
    assert len(manager) == 6
    assert manager.is_full
    assert manager.remaining == 0


def test_one_bad_type_rejects_whole_batch():
    manager = AttachmentManager()
    manager.add_files([make_photo("keep.jpg")])

    with pytest.raises(UnsupportedTypeError) as exc:
        manager.add_files([make_photo("ok.png", "image/png"), make_photo("x.gif", "image/gif")])

    assert exc.value.message == "Only JPEG, PNG, and WebP images are allowed"
    assert [a.file.filename for a in manager.attachments] == ["keep.jpg"]
    assert len(manager.previews) == 1


def test_oversized_file_rejects_whole_batch():
    manager = AttachmentManager()
    with pytest.raises(FileTooLargeError) as exc:
        manager.add_files(
            [make_photo("small.webp", "image/webp"), make_photo("big.jpg", size=MAX_PHOTO_BYTES + 1)]
        )

    assert exc.value.message == "Each image must be less than 5MB"
    assert len(manager) == 0


def test_exactly_five_mib_is_accepted():
    manager = AttachmentManager()
    manager.add_files([make_photo(size=MAX_PHOTO_BYTES)])
    assert len(manager) == 1


def test_capacity_checked_before_type():
    manager = AttachmentManager()
    with pytest.raises(CapacityError):
        manager.add_files([make_photo("x.gif", "image/gif") for _ in range(7)])


def test_remove_shifts_and_revokes():
    manager = AttachmentManager()
    manager.add_files([make_photo("a.jpg"), make_photo("b.jpg"), make_photo("c.jpg")])
    handle_b = manager.attachments[1].preview_handle

    removed = manager.remove(1)

    assert removed.filename == "b.jpg"
    assert [a.file.filename for a in manager.attachments] == ["a.jpg", "c.jpg"]
    assert handle_b not in manager.previews
    assert len(manager.previews) == 2


@pytest.mark.parametrize("index", [-1, 3])
def test_remove_out_of_range(index):
    manager = AttachmentManager()
    manager.add_files([make_photo() for _ in range(3)])
    with pytest.raises(IndexError):
        manager.remove(index)
    assert len(manager) == 3


def test_clear_releases_every_preview():
    previews = PreviewRegistry()
    manager = AttachmentManager(previews)
    manager.add_files([make_photo() for _ in range(3)])

    manager.clear()

    assert len(manager) == 0
    assert len(previews) == 0


def test_release_is_idempotent():
    previews = PreviewRegistry()
    handle = previews.acquire(make_photo())
    previews.release(handle)
    previews.release(handle)
    assert previews.open(handle) is None
