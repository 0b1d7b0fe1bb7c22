"""
Custom exception classes with error codes
"""


class GcrecError(Exception):
    """Base exception for gcrec errors"""

    def __init__(self, message: str, code: str, details: str = ""):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for structured logging"""
        return {"code": self.code, "message": self.message, "details": self.details}


class AuthenticationError(GcrecError):
    """Client credentials grant failed"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "AUTH_FAILED", details)


class ConfigError(GcrecError):
    """Missing or invalid configuration"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "INVALID_CONFIG", details)


class ResourceNotFoundError(GcrecError):
    """Requested platform resource does not exist (HTTP 404)"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "NOT_FOUND", details)


class PermissionDeniedError(GcrecError):
    """OAuth client lacks the required permissions"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "PERMISSION_DENIED", details)


class RateLimitedError(GcrecError):
    """API rate limit exceeded"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "RATE_LIMITED", details)


class BatchSubmissionError(GcrecError):
    """Platform rejected the recording batch export request"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "BATCH_SUBMISSION_FAILED", details)


class BatchTimeoutError(GcrecError):
    """Batch export did not complete within the polling budget"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "BATCH_TIMEOUT", details)


class DownloadFailedError(GcrecError):
    """File download failed"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "DOWNLOAD_FAILED", details)


class DiskSpaceError(GcrecError):
    """Insufficient disk space"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message, "DISK_SPACE_ERROR", details)


class TranscodeError(GcrecError):
    """External transcode process failed"""

    def __init__(self, message: str, exit_code: int | None = None, stderr: str = ""):
        super().__init__(message, "TRANSCODE_FAILED", stderr)
        self.exit_code = exit_code
        self.stderr = stderr
