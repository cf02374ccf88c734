from pathlib import Path

import pytest

from percy_thumbnail.capture.preview import PreviewSlot, PreviewStore


def test_create_writes_file_with_url(tmp_path: Path):
    handle = PreviewStore(tmp_path / "previews").create(b"image-bytes", ".png")

    assert handle.path.parent == tmp_path / "previews"
    assert handle.path.suffix == ".png"
    assert handle.path.read_bytes() == b"image-bytes"
    assert handle.url == handle.path.as_uri()
    assert handle.url.startswith("file://")


def test_release_deletes_and_only_once(tmp_path: Path):
    handle = PreviewStore(tmp_path).create(b"x")
    handle.release()
    assert handle.released
    assert not handle.path.exists()

    with pytest.raises(RuntimeError):
        handle.release()


def test_slot_replace_releases_previous(tmp_path: Path):
    store = PreviewStore(tmp_path)
    slot = PreviewSlot()
    first, second = store.create(b"1"), store.create(b"2")

    slot.replace(first)
    assert not first.released
    slot.replace(second)
    assert first.released
    assert slot.current is second

    slot.clear()
    assert second.released
    assert slot.current is None
    slot.clear()


def test_slot_detach_keeps_preview(tmp_path: Path):
    slot = PreviewSlot()
    handle = PreviewStore(tmp_path).create(b"1")
    slot.replace(handle)

    assert slot.detach() is handle
    assert slot.current is None
    slot.clear()
    assert not handle.released
    assert handle.path.exists()
