import io
import os
import shutil
import threading
from pathlib import Path

import pytest

from mediabox.errors import InvalidInputError


# --- create_folder ---

def test_create_folder_is_idempotent(store):
    assert store.mutator.create_folder("albums/2024") == "albums/2024"
    assert store.mutator.create_folder("albums/2024") == "albums/2024"

    assert (store.root / "albums" / "2024").is_dir()
    assert store.tree.find("albums/2024") is not None
    assert len(store.index) == 0


def test_create_folder_sanitizes_segments(store):
    created = store.mutator.create_folder('  bad:name?/ok ')

    assert created == "bad_name_/ok"
    assert (store.root / "bad_name_" / "ok").is_dir()


@pytest.mark.parametrize("name", ["", "   ", "..", "a/../..", "thumbnails", "thumbnails/x"])
def test_create_folder_rejects_invalid_names(store, name):
    with pytest.raises(InvalidInputError):
        store.mutator.create_folder(name)


# --- delete_folder ---

def test_delete_folder_removes_nested_records_but_not_siblings(add_file, store):
    inside = add_file("a.jpg", folder="photos")
    nested = add_file("b.mp4", folder="photos/2024/may", mime_type="video/mp4")
    sibling = add_file("c.jpg", folder="photos2")
    root_file = add_file("d.jpg")

    assert store.mutator.delete_folder("photos") is True

    assert store.index.get(inside.id) is None
    assert store.index.get(nested.id) is None
    assert store.index.under("photos") == []
    assert store.index.get(sibling.id) is not None
    assert store.index.get(root_file.id) is not None
    assert not (store.root / "photos").exists()
    assert (store.root / "photos2").is_dir()
    assert [f.path for f in store.tree.build()] == ["photos2"]


def test_delete_folder_drops_pins_of_subtree(add_file, store):
    add_file("a.jpg", folder="photos/private")
    store.pins.set_pin("photos", "1234")
    store.pins.set_pin("photos/private", "5678")
    store.pins.set_pin("photos2", "9999")

    store.mutator.delete_folder("photos")

    assert store.pins.locked_paths() == ["photos2"]


def test_delete_folder_reports_success_when_rmtree_fails(add_file, store, monkeypatch, caplog):
    record = add_file("a.jpg", folder="stuck")

    def fail(path, *args, **kwargs):
        raise OSError("device busy")

    monkeypatch.setattr(shutil, "rmtree", fail)

    assert store.mutator.delete_folder("stuck") is True
    assert store.index.get(record.id) is None
    assert "device busy" in caplog.text
    # The directory is still on disk, so the tree shows it as empty
    assert store.tree.find("stuck").file_count == 0


def test_delete_root_is_refused(store):
    with pytest.raises(InvalidInputError):
        store.mutator.delete_folder("")


# --- delete_all_images ---

def test_delete_all_images_only_touches_direct_images(add_file, store):
    img1 = add_file("a.jpg", folder="x")
    img2 = add_file("b.png", folder="x", mime_type="image/png")
    video = add_file("c.mp4", folder="x", mime_type="video/mp4")
    text = add_file("d.txt", folder="x", mime_type="text/plain")
    nested_img = add_file("e.jpg", folder="x/y")

    assert store.mutator.delete_all_images("x") == 2

    remaining = {r.id for r in store.index.in_folder("x")}
    assert remaining == {video.id, text.id}
    assert store.index.get(nested_img.id) is not None
    assert not Path(img1.path).exists()
    assert not Path(img2.path).exists()


def test_delete_all_images_in_empty_folder(store):
    store.mutator.create_folder("nothing")

    assert store.mutator.delete_all_images("nothing") == 0


# --- rename_folder ---

def test_rename_rewrites_folder_and_nested_records(add_file, store):
    top = add_file("a.jpg", folder="trip")
    nested = add_file("b.jpg", folder="trip/day1")

    assert store.mutator.rename_folder("trip", "vacation") is True

    top_after = store.index.get(top.id)
    nested_after = store.index.get(nested.id)
    assert top_after.folder_path == "vacation"
    assert nested_after.folder_path == "vacation/day1"
    assert top_after.path == str(store.root / "vacation" / top.name)
    assert nested_after.path == str(store.root / "vacation" / "day1" / nested.name)
    assert Path(top_after.path).exists()
    assert Path(nested_after.path).exists()
    assert not (store.root / "trip").exists()


def test_rename_leaves_lookalike_paths_alone(add_file, store):
    target = add_file("a.jpg", folder="trip")
    prefix_sibling = add_file("b.jpg", folder="trip2")
    inner_same_name = add_file("c.jpg", folder="other/trip")
    # Same characters appear in the file name, not as a folder segment
    named_like = add_file("trip.jpg", folder="keep")

    assert store.mutator.rename_folder("trip", "vacation") is True

    assert store.index.get(target.id).folder_path == "vacation"
    for untouched in (prefix_sibling, inner_same_name, named_like):
        after = store.index.get(untouched.id)
        assert after.folder_path == untouched.folder_path
        assert after.path == untouched.path


def test_rename_nested_folder_keeps_parent(add_file, store):
    record = add_file("a.jpg", folder="trip/trip")

    assert store.mutator.rename_folder("trip/trip", "day1") is True

    after = store.index.get(record.id)
    assert after.folder_path == "trip/day1"
    assert after.path == str(store.root / "trip" / "day1" / record.name)


def test_rename_fails_without_mutation_when_destination_exists(add_file, store):
    record = add_file("a.jpg", folder="trip")
    store.mutator.create_folder("vacation")
    store.pins.set_pin("trip", "1234")

    assert store.mutator.rename_folder("trip", "vacation") is False

    after = store.index.get(record.id)
    assert after.folder_path == "trip"
    assert after.path == record.path
    assert (store.root / "trip").is_dir()
    assert store.pins.is_locked("trip")


def test_rename_fails_when_source_missing(add_file, store):
    assert store.mutator.rename_folder("ghost", "spirit") is False
    assert not (store.root / "spirit").exists()


def test_rename_migrates_pins(add_file, store):
    add_file("a.jpg", folder="trip/day1")
    store.pins.set_pin("trip", "1234")
    store.pins.set_pin("trip/day1", "5678")

    store.mutator.rename_folder("trip", "vacation")

    assert store.pins.verify_pin("vacation", "1234")
    assert store.pins.verify_pin("vacation/day1", "5678")
    assert not store.pins.is_locked("trip")
    assert store.tree.find("vacation").has_pin


@pytest.mark.parametrize("new_name", ["", "  ", "..", "."])
def test_rename_rejects_invalid_names(store, new_name):
    store.mutator.create_folder("trip")

    with pytest.raises(InvalidInputError):
        store.mutator.rename_folder("trip", new_name)
    assert (store.root / "trip").is_dir()


def test_rename_sanitizes_new_name(store):
    store.mutator.create_folder("trip")

    assert store.mutator.rename_folder("trip", "a/b") is True
    assert (store.root / "a_b").is_dir()


# --- reserved thumbnail store ---

def test_thumbnail_store_cannot_be_deleted(store):
    with pytest.raises(InvalidInputError):
        store.mutator.delete_folder("thumbnails")

    assert store.thumbnail_dir.is_dir()
    assert store.staging_dir.is_dir()


def test_thumbnail_store_cannot_be_renamed(store):
    with pytest.raises(InvalidInputError):
        store.mutator.rename_folder("thumbnails", "stolen")

    assert store.thumbnail_dir.is_dir()
    assert not (store.root / "stolen").exists()
    assert store.tree.build() == []


def test_images_in_thumbnail_store_cannot_be_deleted(store):
    with pytest.raises(InvalidInputError):
        store.mutator.delete_all_images("thumbnails")


# --- mutual exclusion ---

def _block_rename(monkeypatch):
    """Make os.rename wait inside the mutation lock until released."""
    entered = threading.Event()
    release = threading.Event()
    real_rename = os.rename

    def slow_rename(src, dst):
        entered.set()
        release.wait(5)
        return real_rename(src, dst)

    monkeypatch.setattr(os, "rename", slow_rename)
    return entered, release


def test_delete_waits_for_overlapping_rename(add_file, store, monkeypatch):
    add_file("a.jpg", folder="trip/day1")
    add_file("b.jpg", folder="trip")
    entered, release = _block_rename(monkeypatch)

    renamer = threading.Thread(target=store.mutator.rename_folder, args=("trip", "vacation"))
    renamer.start()
    assert entered.wait(5)

    deleter = threading.Thread(target=store.mutator.delete_folder, args=("trip/day1",))
    deleter.start()
    deleter.join(0.3)
    assert deleter.is_alive()

    release.set()
    renamer.join(5)
    deleter.join(5)

    assert sorted(r.folder_path for r in store.index.list()) == ["vacation", "vacation/day1"]
    for record in store.index.list():
        assert (store.root / record.folder_path).is_dir()
        assert Path(record.path).exists()


def test_upload_commit_waits_for_rename(add_file, store, monkeypatch):
    add_file("a.jpg", folder="trip")
    entered, release = _block_rename(monkeypatch)
    results = []

    renamer = threading.Thread(target=store.mutator.rename_folder, args=("trip", "vacation"))
    renamer.start()
    assert entered.wait(5)

    uploader = threading.Thread(
        target=lambda: results.append(store.ingest_stream(io.BytesIO(b"hi"), "note.txt", "text/plain", "trip"))
    )
    uploader.start()
    uploader.join(0.3)
    assert uploader.is_alive()

    release.set()
    renamer.join(5)
    uploader.join(5)

    uploaded = results[0]
    assert uploaded.folder_path == "trip"
    assert Path(uploaded.path).exists()
    assert store.index.in_folder("vacation")[0].original_name == "a.jpg"
