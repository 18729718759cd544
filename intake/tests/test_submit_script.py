"""Tests for the command-line submit script."""

from unittest.mock import AsyncMock

import pytest

from scripts.submit import load_photo, main

ARGS = [
    "--name", "Asha Rao",
    "--email", "asha@example.com",
    "--phone", "9876543210",
    "--subject", "Leaking tap",
    "--description", "Leaking since Monday",
]


@pytest.fixture
def cli_backends(mocker, mock_settings, ban_registry, blob_store, record_store):
    mocker.patch("scripts.submit.PostgrestBanRegistry", return_value=ban_registry)
    mocker.patch("scripts.submit.AzureBlobStore", return_value=blob_store)
    mocker.patch("scripts.submit.PostgrestRecordStore", return_value=record_store)
    mocker.patch("scripts.submit.close_shared_client", new_callable=AsyncMock)
    return ban_registry, blob_store, record_store


def test_load_photo_guesses_type(tmp_path):
    path = tmp_path / "sink.png"
    path.write_bytes(b"\x89PNG")

    photo = load_photo(path)

    assert photo.filename == "sink.png"
    assert photo.content_type == "image/png"
    assert photo.data == b"\x89PNG"


async def test_successful_submit_exits_zero(cli_backends, tmp_path, capsys):
    _, blob_store, record_store = cli_backends
    photo = tmp_path / "tap.jpg"
    photo.write_bytes(b"\xff\xd8")

    code = await main(ARGS + ["--photo", str(photo)])

    assert code == 0
    assert "sent successfully" in capsys.readouterr().out
    assert blob_store.put.call_count == 1
    record_store.insert.assert_called_once()


async def test_validation_errors_exit_nonzero(cli_backends, capsys):
    code = await main(["--name", "Asha"])

    assert code == 1
    out = capsys.readouterr().out
    assert "email: Email is required" in out


async def test_unsupported_photo_exits_nonzero(cli_backends, tmp_path, capsys):
    _, _, record_store = cli_backends
    doc = tmp_path / "notes.txt"
    doc.write_text("hello")

    code = await main(ARGS + ["--photo", str(doc)])

    assert code == 1
    assert "Only JPEG, PNG, and WebP images are allowed" in capsys.readouterr().out
    record_store.insert.assert_not_called()


async def test_missing_photo_file_exits_nonzero(cli_backends, tmp_path):
    code = await main(ARGS + ["--photo", str(tmp_path / "gone.jpg")])
    assert code == 1
