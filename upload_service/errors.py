from __future__ import annotations


class UploadServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class InvalidRequest(UploadServiceError, ValueError):
    """Malformed or missing upload field. Nothing has been written."""

    status_code = 400


class StorageError(UploadServiceError):
    """The upload could not be written to the upload root."""

    status_code = 500


class DownstreamNotifyError(UploadServiceError):
    """A catalog or search call failed or answered with an error status."""

    status_code = 502

    def __init__(self, target: str, message: str, status_code: int | None = None):
        super().__init__(f"{target}: {message}", status_code)
        self.target = target


class TranscodeError(UploadServiceError):
    """ffmpeg exited non-zero, timed out or could not be started."""

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class PortBindError(UploadServiceError):
    """The listening port never became free."""
