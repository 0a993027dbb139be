"""
Error types raised by vdsource

File-level errors (TransportError, ProviderError, UnresolvableLink,
FilesystemError) are turned into failed outcomes by the tree walker.
SetupError and its subclasses abort the run with a non-zero exit.
"""
from typing import Optional


class VdsourceError(Exception):
    """Base class for every error vdsource raises on purpose."""


class TransportError(VdsourceError):
    """Network, timeout or response-decoding failure."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class ProviderError(VdsourceError):
    """The API answered with an explicit error object for this request."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TreeFetchError(VdsourceError):
    """A directory listing could not be fetched or decoded."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class MalformedTreeResponse(VdsourceError):
    """A directory listing decoded to something other than a list."""

    def __init__(self, rel_dir: str, payload):
        where = rel_dir or "<root>"
        super().__init__(f"Unexpected directory tree response for {where}: {payload!r}"[:500])
        self.rel_dir = rel_dir
        self.payload = payload


class UnresolvableLink(VdsourceError):
    """A tree entry link matches none of the known addressing schemes."""

    def __init__(self, link: Optional[str]):
        super().__init__(f"Could not resolve download URL from link: {link!r}")
        self.link = link


class FilesystemError(VdsourceError):
    """Writing a downloaded file to the local mirror failed."""


class SetupError(VdsourceError):
    """The run cannot start (missing token, bad config, unusable deployment)."""


class DeploymentNotFound(SetupError):
    """No identifier/scope combination resolved to a deployment."""
