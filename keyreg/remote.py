"""Remote command execution over SSH.

Two interchangeable transports implement the same ``run`` contract:

- ``SshCommandExec`` shells out to the OpenSSH client, so password prompts,
  host key confirmation and ~/.ssh/config are handled by ssh itself.
- ``ParamikoExec`` uses paramiko directly and asks for a password through an
  injected prompt when key authentication is refused.

Both map transport failures (timeouts, refused connections, auth errors) to a
``RemoteResult`` with exit status 255, the same status ssh uses.
"""

import getpass
import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

import paramiko

from shared.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

SSH_FAILURE_STATUS = 255
AUTHORIZED_KEYS = '"$HOME/.ssh/authorized_keys"'


@dataclass(frozen=True)
class Target:
    """Remote destination: "user@host" plus port."""
    destination: str
    port: int = 22

    def __post_init__(self):
        if not self.destination or not self.destination.strip():
            raise InvalidArgumentError("You must specify the remote host", "target")
        if not 0 < self.port < 65536:
            raise InvalidArgumentError(f"Invalid port: {self.port}", "port")

    @property
    def user(self) -> Optional[str]:
        if "@" not in self.destination:
            return None
        return self.destination.rsplit("@", 1)[0] or None

    @property
    def host(self) -> str:
        return self.destination.rsplit("@", 1)[-1]

    def __str__(self) -> str:
        return self.destination


@dataclass
class RemoteResult:
    """Outcome of one remote command."""
    exit_status: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class RemoteExec(Protocol):
    def run(
        self,
        target: Target,
        command: str,
        batch: bool = False,
        timeout: Optional[int] = None,
    ) -> RemoteResult: ...


def remote_shell(script: str) -> str:
    """Wrap a POSIX script so it runs under sh whatever the login shell is."""
    return f"sh -c {shlex.quote(script)}"


def grep_key_script(fingerprint: str) -> str:
    """Script that exits 0 iff authorized_keys contains the fingerprint token."""
    return remote_shell(
        f"grep -qF -- {shlex.quote(fingerprint)} {AUTHORIZED_KEYS} 2>/dev/null"
    )


def append_key_script(key_content: str) -> str:
    """
    Script that appends a key line to authorized_keys and deduplicates it.

    The deduplicated copy is written to a temp file and renamed over the
    original, so a failure before the rename leaves the original intact.
    """
    key = shlex.quote(key_content.strip())
    script = "\n".join([
        "set -e",
        "umask 077",
        'd="$HOME/.ssh"',
        'f="$d/authorized_keys"',
        't="$f.tmp.$$"',
        'mkdir -p "$d"',
        'chmod 700 "$d"',
        'if [ -s "$f" ] && [ -n "$(tail -c 1 "$f")" ]; then echo >> "$f"; fi',
        f'printf \'%s\\n\' {key} >> "$f"',
        'chmod 600 "$f"',
        'if LC_ALL=C sort -u "$f" > "$t" && chmod 600 "$t" && mv -f "$t" "$f"; then :; '
        'else rm -f "$t"; exit 1; fi',
    ])
    return remote_shell(script)


def echo_script(message: str = "SSH connection working") -> str:
    return f"echo {shlex.quote(message)}"


class SshCommandExec:
    """Run remote commands through the OpenSSH client binary."""

    def __init__(self, ssh_binary: str = "ssh", options: Sequence[str] = ()):
        self.ssh_binary = ssh_binary
        self.options = list(options)

    def build_command(
        self, target: Target, command: str, batch: bool = False, timeout: Optional[int] = None
    ) -> list[str]:
        cmd = [self.ssh_binary, "-p", str(target.port)]
        if batch:
            cmd += ["-o", "BatchMode=yes"]
            if timeout:
                cmd += ["-o", f"ConnectTimeout={timeout}"]
        for option in self.options:
            cmd += ["-o", option]
        cmd += ["--", target.destination, command]
        return cmd

    def run(
        self,
        target: Target,
        command: str,
        batch: bool = False,
        timeout: Optional[int] = None,
    ) -> RemoteResult:
        cmd = self.build_command(target, command, batch=batch, timeout=timeout)
        logger.debug(f"Running: {shlex.join(cmd)}")

        # Interactive runs keep the terminal's stdin so ssh can ask for a password
        kwargs = {}
        if batch:
            kwargs["stdin"] = subprocess.DEVNULL
            if timeout:
                kwargs["timeout"] = timeout + 5

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, **kwargs)
        except subprocess.TimeoutExpired:
            return RemoteResult(SSH_FAILURE_STATUS, stderr=f"Timed out after {timeout} seconds")
        except OSError as e:
            return RemoteResult(SSH_FAILURE_STATUS, stderr=str(e))

        return RemoteResult(result.returncode, result.stdout, result.stderr)


class ParamikoExec:
    """Run remote commands over a paramiko SSHClient."""

    def __init__(
        self,
        password_prompt: Callable[[str], str] = getpass.getpass,
        key_file: Optional[Path] = None,
    ):
        self.password_prompt = password_prompt
        self.key_file = Path(key_file) if key_file else None

    def _new_client(self) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        return client

    def _connect(self, target: Target, batch: bool, timeout: Optional[int]) -> paramiko.SSHClient:
        kwargs = dict(
            hostname=target.host,
            port=target.port,
            username=target.user or getpass.getuser(),
            timeout=timeout,
        )
        if self.key_file:
            kwargs["key_filename"] = str(self.key_file)

        client = self._new_client()
        try:
            client.connect(**kwargs)
            return client
        except paramiko.AuthenticationException:
            client.close()
            if batch:
                raise
        except Exception:
            client.close()
            raise

        logger.debug(f"Key authentication refused by {target.destination}, asking for password")
        password = self.password_prompt(f"{target.destination}'s password: ")
        client = self._new_client()
        try:
            client.connect(**kwargs, password=password, look_for_keys=False, allow_agent=False)
        except Exception:
            client.close()
            raise
        return client

    def run(
        self,
        target: Target,
        command: str,
        batch: bool = False,
        timeout: Optional[int] = None,
    ) -> RemoteResult:
        client = None
        try:
            client = self._connect(target, batch, timeout)
            _stdin, stdout, stderr = client.exec_command(command, timeout=timeout)
            out = stdout.read().decode(errors="replace")
            err = stderr.read().decode(errors="replace")
            status = stdout.channel.recv_exit_status()
            return RemoteResult(status, out, err)
        except (paramiko.SSHException, OSError) as e:
            return RemoteResult(SSH_FAILURE_STATUS, stderr=str(e))
        finally:
            if client:
                client.close()


class SshCopyId:
    """The ssh-copy-id helper, used as a fast path when installed."""

    def __init__(self, binary: str):
        self.binary = binary

    def copy(self, target: Target, public_key: Path) -> bool:
        cmd = [self.binary, "-i", str(public_key), "-p", str(target.port), target.destination]
        logger.debug(f"Running: {shlex.join(cmd)}")
        try:
            return subprocess.run(cmd).returncode == 0
        except OSError as e:
            logger.debug(f"ssh-copy-id could not be started: {e}")
            return False


def find_copy_id() -> Optional[SshCopyId]:
    """Return the ssh-copy-id helper if it is on PATH."""
    binary = shutil.which("ssh-copy-id")
    return SshCopyId(binary) if binary else None
