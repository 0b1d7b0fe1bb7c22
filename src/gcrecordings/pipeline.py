"""
Export pipeline: resolve -> submit -> poll -> fetch -> (optional) transcode

Each stage runs to completion before the next one starts and hands a finished
collection forward. Early exits (nothing to export) are normal outcomes, not
errors.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

from gcrecordings.batch import DEFAULT_INTERVAL_SECONDS, DEFAULT_MAX_ATTEMPTS, BatchExporter
from gcrecordings.downloader import RecordingDownloader
from gcrecordings.exceptions import TranscodeError
from gcrecordings.models import EXPORT_FORMAT, FINAL_FORMATS, ExportResult
from gcrecordings.output import OutputFormatter
from gcrecordings.resolver import RecordingResolver
from gcrecordings.transcoder import Transcoder

logger = logging.getLogger(__name__)


def needs_conversion(target_format: str) -> bool:
    """True when the operator's format differs from the export container"""
    return target_format.upper() != EXPORT_FORMAT


class ExportPipeline:
    """One-shot recording export for a queue and date range"""

    def __init__(
        self,
        api: Any,
        output_dir: Path,
        transcoder: Transcoder | None = None,
        formatter: OutputFormatter | None = None,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        show_progress: bool = True,
    ) -> None:
        self.resolver = RecordingResolver(api)
        self.exporter = BatchExporter(api)
        self.downloader = RecordingDownloader(output_dir, show_progress=show_progress)
        self.transcoder = transcoder
        self.formatter = formatter or OutputFormatter()
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.transcode_error: TranscodeError | None = None

    def run(
        self, queue_id: str, start_date: str, end_date: str, target_format: str
    ) -> ExportResult:
        """
        Run every stage for one queue and date range

        Args:
            queue_id: Routing queue ID
            start_date: First day (YYYY-MM-DD, UTC)
            end_date: Last day (YYYY-MM-DD, UTC)
            target_format: Final format, one of OGG, WAV, MP3

        Returns:
            ExportResult; status tells which early exit, if any, was taken

        Raises:
            BatchSubmissionError: If the export job is rejected
            BatchTimeoutError: If the job does not complete in time
        """
        target_format = target_format.upper()
        if target_format not in FINAL_FORMATS:
            raise ValueError(
                f"Unsupported format {target_format!r}; expected one of {FINAL_FORMATS}"
            )

        self.formatter.output_header("SEARCHING CONVERSATIONS WITH RECORDINGS")
        descriptors = self.resolver.resolve(queue_id, start_date, end_date)
        if not self.resolver.conversation_ids:
            self.formatter.output_warning("No conversations found.")
            return ExportResult(status="no_conversations")
        self.formatter.output_success(
            f"Found {len(self.resolver.conversation_ids)} conversations"
        )
        if not descriptors:
            self.formatter.output_warning("No recordings available for download.")
            return ExportResult(status="no_recordings")
        self.formatter.output_success(f"{len(descriptors)} recordings available")

        self.formatter.output_header("SUBMITTING BATCH EXPORT")
        handle = self.exporter.submit(descriptors)
        self.formatter.output_success(
            f"Batch {handle.batch_id} submitted with {handle.expected_count} recordings"
        )

        self.formatter.output_header("WAITING FOR BATCH EXPORT")
        results = self.exporter.poll(
            handle, max_attempts=self.max_attempts, interval_seconds=self.interval_seconds
        )
        if not results:
            self.formatter.output_warning("The batch returned no results to download.")
            return ExportResult(status="empty_batch")
        self.formatter.output_success("Batch export processed")

        self.formatter.output_header("DOWNLOADING RECORDINGS")
        downloaded = self.downloader.fetch(results)
        result = ExportResult(
            status="completed",
            output_dir=self.downloader.output_dir,
            downloaded=tuple(downloaded),
            export_errors=tuple(self.downloader.report_export_failures(results)),
            download_failures=tuple(self.downloader.failures),
        )
        self.formatter.output_export_summary(result)

        if self.convert(result, target_format):
            result = replace(result, transcoded=True)
        return result

    def convert(self, result: ExportResult, target_format: str) -> bool:
        """Invoke the transcoder once when a different final format was chosen

        Returns True when the conversion ran and succeeded. A failure is
        recorded on ``transcode_error`` and reported; downloaded files stay
        on disk.
        """
        if not needs_conversion(target_format):
            self.formatter.output_info("No conversion needed.")
            return False
        if self.transcoder is None or result.output_dir is None:
            logger.warning("No transcoder configured; skipping conversion")
            return False

        self.formatter.output_header(f"CONVERTING TO {target_format.upper()}")
        try:
            self.transcoder.invoke(result.output_dir, target_format.lower())
        except TranscodeError as e:
            logger.debug("TranscodeError caught:", exc_info=True)
            self.transcode_error = e
            self.formatter.output_error(f"Conversion failed: {e.message}")
            if e.stderr:
                self.formatter.output_info(e.stderr.rstrip())
            return False
        self.formatter.output_success("Conversion finished")
        return True
