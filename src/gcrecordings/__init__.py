"""
gcrec - Export and download Genesys Cloud call recordings
"""

try:
    from importlib.metadata import version

    __version__ = version("gcrec")
except Exception:
    # Fallback for editable/uninstalled checkouts
    __version__ = "0.dev0"
__author__ = "gcrec"
__description__ = "CLI tool to batch-export Genesys Cloud call recordings and download them"

from .batch import BatchExporter
from .config import Config, ConfigError
from .downloader import RecordingDownloader
from .exceptions import GcrecError
from .genesys_client import GenesysAPIError, GenesysClient
from .logger import setup_logging
from .models import BatchJobHandle, BatchResultItem, DownloadedFile, RecordingDescriptor
from .output import OutputFormatter
from .pipeline import ExportPipeline
from .resolver import RecordingResolver
from .transcoder import ScriptTranscoder

__all__ = [
    "GenesysClient",
    "GenesysAPIError",
    "GcrecError",
    "Config",
    "ConfigError",
    "RecordingResolver",
    "BatchExporter",
    "RecordingDownloader",
    "ScriptTranscoder",
    "ExportPipeline",
    "RecordingDescriptor",
    "BatchJobHandle",
    "BatchResultItem",
    "DownloadedFile",
    "OutputFormatter",
    "setup_logging",
    "__version__",
]
