"""Shared helpers for keyreg: errors, logging and version."""

from .errors import (
    InvalidArgumentError,
    InvalidKeyFileError,
    KeyFileNotFoundError,
    RegistrarError,
    RemoteExecFailedError,
    VerificationFailedError,
)
from .version import __version__

__all__ = [
    "RegistrarError",
    "KeyFileNotFoundError",
    "InvalidKeyFileError",
    "RemoteExecFailedError",
    "VerificationFailedError",
    "InvalidArgumentError",
    "__version__",
]
