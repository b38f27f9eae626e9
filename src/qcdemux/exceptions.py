class QCDemuxError(Exception):
    """Base class for all errors raised by the pipeline."""

    exit_code = 1


class ConfigurationError(QCDemuxError):
    pass


class MissingInputFileError(QCDemuxError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Required file {path} not found!")


class ExternalToolError(QCDemuxError):
    def __init__(self, tool: str, returncode: int):
        self.tool = tool
        self.returncode = returncode
        super().__init__(f"{tool} exited with code {returncode}")

    @property
    def exit_code(self) -> int:
        # Killed by signal N: report 128 + N like the shell does
        if self.returncode < 0:
            return 128 - self.returncode
        return self.returncode


class MalformedFastqError(QCDemuxError):
    pass


class ChecksumMismatchError(QCDemuxError):
    pass


class DownloadError(QCDemuxError):
    pass
