"""Shared fixtures: a simulated remote host backed by the local shell."""

import io
import logging
import os
import subprocess

import pytest

from keyreg.remote import RemoteResult, Target
from shared.logging_config import setup_logging

ED25519_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIGfakeKeyBodyForTests0123456789abcdef user@host"
ED25519_KEY_OLD_COMMENT = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIGfakeKeyBodyForTests0123456789abcdef old@comment"
RSA_KEY = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQCfakeRsaBody other@laptop"


class LocalShellExec:
    """RemoteExec that runs commands with local sh and HOME pointed at a temp dir."""

    def __init__(self, home, path_prefix=None):
        self.home = home
        self.path_prefix = path_prefix
        self.calls = []

    def run(self, target, command, batch=False, timeout=None):
        self.calls.append((target, command, batch, timeout))
        env = dict(os.environ, HOME=str(self.home))
        if self.path_prefix:
            env["PATH"] = f"{self.path_prefix}{os.pathsep}{env.get('PATH', '')}"
        result = subprocess.run(["sh", "-c", command], env=env, capture_output=True, text=True)
        return RemoteResult(result.returncode, result.stdout, result.stderr)


class UnreachableInBatchMode(LocalShellExec):
    """Simulated remote whose batch-mode connection test always times out."""

    def run(self, target, command, batch=False, timeout=None):
        if batch:
            self.calls.append((target, command, batch, timeout))
            return RemoteResult(255, stderr="Connection timed out")
        return super().run(target, command, batch, timeout)


@pytest.fixture
def remote_home(tmp_path):
    home = tmp_path / "remote_home"
    home.mkdir()
    return home


@pytest.fixture
def authorized_keys(remote_home):
    return remote_home / ".ssh" / "authorized_keys"


@pytest.fixture
def remote(remote_home):
    return LocalShellExec(remote_home)


@pytest.fixture
def target():
    return Target("user@example.com", 22)


@pytest.fixture
def public_key(tmp_path):
    path = tmp_path / "id_ed25519.pub"
    path.write_text(ED25519_KEY + "\n")
    return path


@pytest.fixture
def log_stream():
    """Capture everything logged under the keyreg namespace."""
    stream = io.StringIO()
    setup_logging("keyreg", level="DEBUG", stream=stream, log_format="[%(levelname)s] %(message)s")
    yield stream
    logging.getLogger("keyreg").handlers.clear()
