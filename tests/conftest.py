import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from mediabox import MediaStore, StoreConfig, NewFile
from mediabox_server import ServerConfig, create_app

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    """A MediaStore rooted in a temporary upload directory."""
    s = MediaStore(StoreConfig(upload_dir=tmp_path / "uploads", ffmpeg_binary="ffmpeg-not-installed"))
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def add_file(store):
    """
    Write a file into a folder and register it, bypassing upload handling.
    `age` pushes created_at into the past so ordering is deterministic.
    """
    counter = {"n": 0}

    def _add(original_name, folder=None, mime_type="image/jpeg", data=b"data", age=0):
        counter["n"] += 1
        directory = store.root.joinpath(*(folder.split("/") if folder else []))
        directory.mkdir(parents=True, exist_ok=True)
        name = f"{counter['n']:04d}-{original_name}"
        target = directory / name
        target.write_bytes(data)
        record = store.index.create(NewFile(
            name=name,
            original_name=original_name,
            path=str(target),
            size=len(data),
            mime_type=mime_type,
            folder_path=folder,
        ))
        record = dataclasses.replace(record, created_at=BASE_TIME - timedelta(minutes=age))
        store.index.replace(record)
        return record

    return _add


@pytest.fixture
def app(tmp_path, store):
    config = ServerConfig(upload_dir=tmp_path / "uploads", secret_key="test")
    application = create_app(config, store=store)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()
