"""
Recording fetcher: streams finished batch results to disk, one item at a time
"""

import errno
import logging
import os
import shutil
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from urllib.parse import urlparse

import requests
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from gcrecordings.exceptions import DiskSpaceError
from gcrecordings.exceptions import DownloadFailedError as DownloadError
from gcrecordings.models import EXPORT_EXTENSION, BatchResultItem, DownloadedFile


class RecordingDownloader:
    """Download batch export results with streaming, progress bars, and retry logic"""

    def __init__(self, output_dir: Path, show_progress: bool = True):
        self.output_dir = Path(output_dir)
        self.show_progress = show_progress
        self.logger = logging.getLogger(__name__)
        self.failures: list[BatchResultItem] = []

    def ensure_output_dir(self) -> Path:
        """Create the destination directory (no-op when it already exists)"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir

    def path_for(self, item: BatchResultItem) -> Path:
        return self.output_dir / f"{item.file_stem}{EXPORT_EXTENSION}"

    def download_item(
        self,
        item: BatchResultItem,
        retry_count: int = 3,
        backoff_factor: float = 2.0,
    ) -> DownloadedFile:
        """
        Download one result to {conversationId}_{recordingId}.ogg

        Args:
            item: Finalized batch result carrying a result_url
            retry_count: Number of attempts
            backoff_factor: Exponential backoff factor

        Returns:
            The persisted file

        Raises:
            DownloadError: If the download fails after retries
            DiskSpaceError: If the disk fills up while writing
        """
        if not item.result_url:
            raise DownloadError(f"No result URL for {item.label}")

        parsed = urlparse(item.result_url)
        if parsed.scheme != "https" or not parsed.netloc:
            raise DownloadError(f"Refusing to download {item.label} from a non-https URL")

        output_path = self.path_for(item)
        temp_path = output_path.with_name(f".tmp.{output_path.name}")

        for attempt in range(retry_count):
            try:
                # Result URLs are presigned; no bearer token is sent
                with requests.get(item.result_url, stream=True, timeout=30) as response:
                    response.raise_for_status()
                    total_size = int(response.headers.get("content-length", 0) or 0)
                    if self.show_progress:
                        self._download_with_progress(
                            response, temp_path, total_size, output_path.name
                        )
                    else:
                        self._download_without_progress(response, temp_path)

                try:
                    os.replace(str(temp_path), str(output_path))
                except OSError:
                    # Fallback for cross-filesystem moves
                    shutil.move(str(temp_path), str(output_path))

                size_bytes = output_path.stat().st_size
                return DownloadedFile(item=item, path=output_path, size_bytes=size_bytes)

            except DiskSpaceError:
                if temp_path.exists():
                    temp_path.unlink()
                raise

            except Exception as e:
                if temp_path.exists():
                    temp_path.unlink()

                if attempt < retry_count - 1:
                    wait_time = backoff_factor * (2**attempt)
                    self.logger.warning(
                        f"Download of {item.label} failed (attempt {attempt + 1}/{retry_count}), "
                        f"retrying in {wait_time:.1f}s: {e}"
                    )
                    time.sleep(wait_time)
                else:
                    raise DownloadError(
                        f"Download of {item.label} failed after {retry_count} attempts: {e}"
                    ) from e

        raise DownloadError(f"Download failed: {item.label}")

    def _download_with_progress(
        self,
        response: requests.Response,
        output_path: Path,
        total_size: int,
        filename: str,
    ) -> None:
        """Download with rich progress bar"""
        with Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
        ) as progress:
            task = progress.add_task(f"Downloading {filename}", total=total_size or None)
            self._write_stream(response, output_path, lambda n: progress.update(task, advance=n))

    def _download_without_progress(self, response: requests.Response, output_path: Path) -> None:
        """Download without progress bar"""
        self._write_stream(response, output_path, None)

    def _write_stream(
        self,
        response: requests.Response,
        output_path: Path,
        on_chunk: Callable[[int], None] | None,
    ) -> None:
        try:
            with open(output_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
                        if on_chunk:
                            on_chunk(len(chunk))
        except OSError as e:
            if e.errno == errno.ENOSPC:
                raise DiskSpaceError(
                    f"Disk full while downloading {output_path.name}",
                    details=f"Failed to write to {output_path}: {e}",
                ) from e
            raise

    def fetch(self, items: Sequence[BatchResultItem]) -> list[DownloadedFile]:
        """
        Download every item that has a result URL

        Each item is isolated: a failure is logged, recorded in ``failures``
        and does not stop the remaining downloads.

        Returns:
            Files actually persisted, in input order
        """
        self.ensure_output_dir()
        self.failures = []
        downloaded: list[DownloadedFile] = []

        for item in items:
            if not item.result_url:
                continue
            self.logger.info(f"Downloading recording ({EXPORT_EXTENSION[1:]}): {item.label}")
            try:
                result = self.download_item(item)
            except Exception as e:
                self.logger.error(f"Failed to download {item.label}: {e}")
                self.failures.append(item)
                continue
            self.logger.info(f"Saved {result.path.name} ({result.size_mb:.2f} MB)")
            downloaded.append(result)

        return downloaded

    def report_export_failures(self, items: Sequence[BatchResultItem]) -> list[BatchResultItem]:
        """Log items the platform failed to export; they are never downloaded"""
        failed = [item for item in items if item.is_error]
        for item in failed:
            self.logger.warning(f"Platform failed to export {item.label}: {item.error_msg}")
        return failed
