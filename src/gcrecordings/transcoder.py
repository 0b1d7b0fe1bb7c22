"""
Hand-off to an external conversion script (OGG -> WAV/MP3)
"""

import logging
import shlex
import shutil
import subprocess
import threading
from pathlib import Path
from typing import Protocol

from gcrecordings.exceptions import TranscodeError

BUNDLED_SCRIPT = Path(__file__).parent / "scripts" / "convert.sh"


class Transcoder(Protocol):
    def invoke(self, directory: Path, target_format: str) -> None:
        """Convert every recording in directory; raise TranscodeError on failure."""
        ...


def default_command() -> list[str]:
    """Run the bundled ffmpeg script through sh"""
    return ["sh", str(BUNDLED_SCRIPT)]


class ScriptTranscoder:
    """Run an external script with the directory and lower-cased format as arguments"""

    def __init__(self, command: str | list[str] | None = None) -> None:
        self.logger = logging.getLogger(__name__)
        # Command problems surface from invoke so they count as conversion failures
        self.command_error: str | None = None
        self.command: list[str] = []
        if command is None:
            self.command = default_command()
        elif isinstance(command, str):
            try:
                self.command = shlex.split(command)
            except ValueError as e:
                self.command_error = f"Invalid transcode command {command!r}: {e}"
        else:
            self.command = list(command)

    def build_command(self, directory: Path, target_format: str) -> list[str]:
        return [*self.command, str(directory), target_format.lower()]

    def invoke(self, directory: Path, target_format: str) -> None:
        """
        Run the conversion script and stream its output

        stdout lines are logged at INFO, stderr lines at ERROR. Files already
        in ``directory`` are left untouched whatever the outcome.

        Raises:
            TranscodeError: If the script cannot be started or exits non-zero
        """
        if self.command_error:
            raise TranscodeError(self.command_error)
        if not self.command:
            raise TranscodeError("Transcode command is empty")
        cmd = self.build_command(directory, target_format)
        if shutil.which(cmd[0]) is None:
            raise TranscodeError(f"Transcode executable not found in PATH: {cmd[0]}")

        self.logger.info(f"Converting recordings in {directory} to {target_format.upper()}")
        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            raise TranscodeError(f"Could not start transcode process: {e}") from e

        stderr_lines: list[str] = []
        reader = threading.Thread(
            target=self._drain_stderr, args=(process, stderr_lines), daemon=True
        )
        reader.start()
        try:
            assert process.stdout is not None
            for line in process.stdout:
                self.logger.info(line.rstrip())
        except Exception:
            process.kill()
            process.wait()
            raise
        finally:
            if process.stdout:
                process.stdout.close()

        retcode = process.wait()
        reader.join()

        stderr_text = "".join(stderr_lines)
        if retcode != 0:
            raise TranscodeError(
                f"Transcode process exited with code {retcode}",
                exit_code=retcode,
                stderr=stderr_text,
            )
        self.logger.info("Conversion finished successfully")

    def _drain_stderr(self, process: "subprocess.Popen[str]", sink: list[str]) -> None:
        if process.stderr is None:
            return
        try:
            for line in process.stderr:
                sink.append(line)
                self.logger.error(f"Transcode: {line.rstrip()}")
        finally:
            process.stderr.close()
