"""
Tests for RecordingDownloader: per-item isolation, naming, atomic writes, disk space
"""

import logging
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from gcrecordings.downloader import RecordingDownloader
from gcrecordings.exceptions import DiskSpaceError, DownloadFailedError
from gcrecordings.models import BatchResultItem


def _response(chunks=(b"OggS", b"data")):
    response = Mock()
    response.status_code = 200
    response.headers = {"content-length": str(sum(len(c) for c in chunks))}
    response.iter_content = lambda chunk_size: list(chunks)
    response.__enter__ = Mock(return_value=response)
    response.__exit__ = Mock(return_value=False)
    return response


ITEM_A = BatchResultItem("convA", "recA", result_url="https://s3.example.com/a")
ITEM_B = BatchResultItem("convB", "recB", result_url="https://s3.example.com/b")


class TestNaming:
    def test_file_named_after_conversation_and_recording(self, tmp_path):
        downloader = RecordingDownloader(tmp_path, show_progress=False)
        item = BatchResultItem("conv123", "rec456", result_url="https://s3/x")

        assert downloader.path_for(item) == tmp_path / "conv123_rec456.ogg"

    def test_unsafe_characters_are_replaced(self, tmp_path):
        """Identifiers must never escape the output directory"""
        downloader = RecordingDownloader(tmp_path, show_progress=False)
        item = BatchResultItem("../conv", "rec/1", result_url="https://s3/x")

        path = downloader.path_for(item)

        assert path.parent == tmp_path
        assert path.name == "___conv_rec_1.ogg"


class TestDownloadItem:
    @patch("requests.get")
    def test_streams_to_final_path(self, mock_get, tmp_path):
        mock_get.return_value = _response()
        downloader = RecordingDownloader(tmp_path, show_progress=False)

        result = downloader.download_item(ITEM_A)

        assert result.path == tmp_path / "convA_recA.ogg"
        assert result.path.read_bytes() == b"OggSdata"
        assert result.size_bytes == 8
        assert not list(tmp_path.glob(".tmp.*"))
        mock_get.assert_called_once_with("https://s3.example.com/a", stream=True, timeout=30)

    @patch("requests.get")
    def test_with_progress_bar(self, mock_get, tmp_path):
        mock_get.return_value = _response()
        downloader = RecordingDownloader(tmp_path, show_progress=True)

        result = downloader.download_item(ITEM_A)

        assert result.path.read_bytes() == b"OggSdata"

    @patch("time.sleep")
    @patch("requests.get")
    def test_retries_then_succeeds(self, mock_get, mock_sleep, tmp_path):
        mock_get.side_effect = [requests.exceptions.ConnectionError("reset"), _response()]
        downloader = RecordingDownloader(tmp_path, show_progress=False)

        result = downloader.download_item(ITEM_A)

        assert result.path.exists()
        assert mock_get.call_count == 2
        mock_sleep.assert_called_once_with(2.0)

    @patch("time.sleep")
    @patch("requests.get")
    def test_gives_up_after_retries(self, mock_get, mock_sleep, tmp_path):
        mock_get.side_effect = requests.exceptions.ConnectionError("reset")
        downloader = RecordingDownloader(tmp_path, show_progress=False)

        with pytest.raises(DownloadFailedError, match="after 3 attempts"):
            downloader.download_item(ITEM_A)

        assert not (tmp_path / "convA_recA.ogg").exists()
        assert not list(tmp_path.glob(".tmp.*"))

    @patch("requests.get")
    def test_non_https_url_refused(self, mock_get, tmp_path):
        downloader = RecordingDownloader(tmp_path, show_progress=False)
        item = BatchResultItem("c", "r", result_url="http://s3.example.com/a")

        with pytest.raises(DownloadFailedError, match="non-https"):
            downloader.download_item(item)
        mock_get.assert_not_called()

    @patch("builtins.open")
    @patch("requests.get")
    def test_disk_full_is_not_retried(self, mock_get, mock_open, tmp_path):
        """ENOSPC surfaces as DiskSpaceError on the first attempt"""
        mock_get.return_value = _response()
        mock_file = MagicMock()
        mock_file.write.side_effect = OSError(28, "No space left on device")
        mock_open.return_value.__enter__.return_value = mock_file
        downloader = RecordingDownloader(tmp_path, show_progress=False)

        with pytest.raises(DiskSpaceError, match="Disk full"):
            downloader.download_item(ITEM_A)
        assert mock_get.call_count == 1


class TestFetch:
    @patch("time.sleep")
    @patch("requests.get")
    def test_one_failure_does_not_stop_the_rest(self, mock_get, mock_sleep, tmp_path, caplog):
        def fake_get(url, **kwargs):
            if url.endswith("/b"):
                raise requests.exceptions.ConnectionError("refused")
            return _response()

        mock_get.side_effect = fake_get
        downloader = RecordingDownloader(tmp_path, show_progress=False)

        with caplog.at_level(logging.ERROR):
            downloaded = downloader.fetch([ITEM_A, ITEM_B])

        assert [f.path.name for f in downloaded] == ["convA_recA.ogg"]
        assert (tmp_path / "convA_recA.ogg").exists()
        assert not (tmp_path / "convB_recB.ogg").exists()
        assert downloader.failures == [ITEM_B]
        assert "convB_recB" in caplog.text

    @patch("requests.get")
    def test_export_errors_are_never_attempted(self, mock_get, tmp_path):
        mock_get.return_value = _response()
        failed = BatchResultItem("convC", "recC", error_msg="Recording not found")
        downloader = RecordingDownloader(tmp_path, show_progress=False)

        downloaded = downloader.fetch([ITEM_A, failed])

        assert len(downloaded) == 1
        assert mock_get.call_count == 1
        assert downloader.failures == []
        assert downloader.report_export_failures([ITEM_A, failed]) == [failed]

    @patch("requests.get")
    def test_creates_missing_directory(self, mock_get, tmp_path):
        mock_get.return_value = _response()
        target = tmp_path / "nested" / "Recordings"
        downloader = RecordingDownloader(target, show_progress=False)

        downloader.fetch([ITEM_A])

        assert (target / "convA_recA.ogg").exists()

    @patch("requests.get")
    def test_second_run_into_same_directory(self, mock_get, tmp_path):
        mock_get.side_effect = lambda url, **kwargs: _response()
        downloader = RecordingDownloader(tmp_path, show_progress=False)

        downloader.fetch([ITEM_A])
        downloaded = downloader.fetch([ITEM_A, ITEM_B])

        assert len(downloaded) == 2
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "convA_recA.ogg",
            "convB_recB.ogg",
        ]
