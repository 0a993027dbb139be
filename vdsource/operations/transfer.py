"""
File transfer: fetch one file's bytes and write them into the mirror
"""
import base64
import binascii
import errno
import json
from pathlib import Path
from typing import TYPE_CHECKING
from ..errors import TransportError, ProviderError, FilesystemError

if TYPE_CHECKING:
    from ..core.api_client import ApiClient


def decode_envelope(payload) -> bytes:
    """
    Unwrap the file-content envelope.

      {"data": "<base64>"}          → raw bytes
      {"error": {"message": "…"}}   → ProviderError (the API refused this file)
      anything else                 → TransportError
    """
    if not isinstance(payload, dict):
        raise TransportError(f"Unexpected API response (not an object): {str(payload)[:200]}")
    err = payload.get("error")
    if err:
        if isinstance(err, dict):
            message = err.get("message") or json.dumps(err)
        else:
            message = str(err)
        raise ProviderError(message)
    data = payload.get("data")
    if not isinstance(data, str):
        raise TransportError(
            f"Unexpected API response (no data field): {json.dumps(payload)[:200]}"
        )
    try:
        return base64.b64decode(data)
    except (binascii.Error, ValueError) as exc:
        raise TransportError(f"Invalid base64 payload: {exc}") from exc


def fetch_file(client: "ApiClient", url: str) -> bytes:
    """Download one file through its resolved URL."""
    return decode_envelope(client.get_json(url))


def write_file(path: Path, content: bytes):
    """
    Write *content* to *path*, creating parent directories.

    A full disk propagates as OSError and stops the run; other OS errors
    become FilesystemError so only this file is marked failed.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except OSError as exc:
        if exc.errno == errno.ENOSPC:
            raise
        raise FilesystemError(f"{exc.strerror or exc}: {path}") from exc
