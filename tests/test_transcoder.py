"""
Tests for ScriptTranscoder: argument passing, output streaming, failure reporting
"""

import logging
import shutil
from unittest.mock import patch

import pytest

from gcrecordings.exceptions import TranscodeError
from gcrecordings.transcoder import BUNDLED_SCRIPT, ScriptTranscoder

needs_sh = pytest.mark.skipif(shutil.which("sh") is None, reason="requires a POSIX shell")


class TestCommand:
    def test_directory_and_lowercase_format_appended(self, tmp_path):
        transcoder = ScriptTranscoder("sh ./convert.sh")

        assert transcoder.build_command(tmp_path, "MP3") == [
            "sh",
            "./convert.sh",
            str(tmp_path),
            "mp3",
        ]

    def test_default_is_bundled_script(self, tmp_path):
        transcoder = ScriptTranscoder()

        assert transcoder.build_command(tmp_path, "wav") == [
            "sh",
            str(BUNDLED_SCRIPT),
            str(tmp_path),
            "wav",
        ]
        assert BUNDLED_SCRIPT.exists()

    @pytest.mark.parametrize("command", [[], " ", ""])
    def test_empty_command_fails_on_invoke(self, tmp_path, command):
        transcoder = ScriptTranscoder(command)

        with pytest.raises(TranscodeError, match="empty"):
            transcoder.invoke(tmp_path, "wav")

    def test_unbalanced_quotes_fail_on_invoke(self, tmp_path):
        transcoder = ScriptTranscoder("sh 'convert.sh")

        with pytest.raises(TranscodeError, match="Invalid transcode command"):
            transcoder.invoke(tmp_path, "wav")


@needs_sh
class TestInvoke:
    def test_success_streams_stdout(self, tmp_path, caplog):
        # sh -c assigns the appended arguments to $0 and $1
        transcoder = ScriptTranscoder(["sh", "-c", 'echo "converting $0 to $1"'])

        with caplog.at_level(logging.INFO):
            transcoder.invoke(tmp_path, "WAV")

        assert f"converting {tmp_path} to wav" in caplog.text

    def test_nonzero_exit_reports_code_and_stderr(self, tmp_path):
        transcoder = ScriptTranscoder(["sh", "-c", "echo 'codec missing' >&2; exit 3"])

        with pytest.raises(TranscodeError) as exc_info:
            transcoder.invoke(tmp_path, "mp3")

        assert exc_info.value.exit_code == 3
        assert "codec missing" in exc_info.value.stderr
        assert exc_info.value.code == "TRANSCODE_FAILED"

    def test_existing_files_left_in_place_on_failure(self, tmp_path):
        recording = tmp_path / "conv_rec.ogg"
        recording.write_bytes(b"OggS")
        transcoder = ScriptTranscoder(["sh", "-c", "exit 1"])

        with pytest.raises(TranscodeError):
            transcoder.invoke(tmp_path, "wav")

        assert recording.read_bytes() == b"OggS"

    def test_bundled_script_rejects_unknown_format(self, tmp_path):
        with pytest.raises(TranscodeError) as exc_info:
            ScriptTranscoder().invoke(tmp_path, "flac")

        assert exc_info.value.exit_code == 2
        assert "Unsupported target format" in exc_info.value.stderr


class TestMissingExecutable:
    @patch("shutil.which", return_value=None)
    def test_missing_executable(self, mock_which, tmp_path):
        transcoder = ScriptTranscoder("gcrec-no-such-converter")

        with pytest.raises(TranscodeError, match="not found in PATH"):
            transcoder.invoke(tmp_path, "wav")
