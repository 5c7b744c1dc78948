"""Error types raised while resolving, crawling and capturing pages."""

from typing import Optional


class CaptureError(Exception):
    """Base class for errors that end a run with a readable message."""


# ---------- argument errors ----------

class InvalidArgumentError(CaptureError):
    """Bad flag value, missing value or malformed command line."""


class UnknownOptionError(InvalidArgumentError):
    def __init__(self, option: str):
        super().__init__(f"Unknown option: {option}")
        self.option = option


class UnsupportedModeError(InvalidArgumentError):
    """A removed capture mode was requested."""


# ---------- input errors ----------

class UnsupportedInputError(CaptureError):
    """A URL or URL file that cannot be used as capture input."""


class EmptyUrlError(UnsupportedInputError):
    def __init__(self):
        super().__init__("Empty URL")


class UnsupportedSchemeError(UnsupportedInputError):
    def __init__(self, url: str, scheme: str):
        super().__init__(f"Unsupported URL scheme '{scheme}' in {url} (only http/https)")
        self.url = url
        self.scheme = scheme


class InvalidUrlError(UnsupportedInputError):
    def __init__(self, url: str):
        super().__init__(f"Invalid URL: {url}")
        self.url = url


# ---------- runtime errors ----------

class EnvironmentUnavailableError(CaptureError):
    """Browser runtime or an external tool is missing or blocked."""

    def __init__(self, message: str, remediation: Optional[str] = None):
        self.remediation = remediation
        if remediation:
            message = f"{message}\n{remediation}"
        super().__init__(message)


class NavigationError(CaptureError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to load {url}: {reason}")
        self.url = url
        self.reason = reason


class NoTargetsResolvedError(CaptureError):
    def __init__(self):
        super().__init__("No capture targets were resolved.")
