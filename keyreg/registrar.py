"""Idempotent registration of a public key in a remote authorized_keys file."""

import logging
from pathlib import Path
from typing import Callable, Optional

from keyreg.keys import (
    DEFAULT_GENERATED_KEY,
    DEFAULT_PUBLIC_KEY,
    KeyMaterial,
    generate_ssh_keypair,
    private_key_path_for,
    public_key_path_for,
    read_key_material,
)
from keyreg.remote import (
    RemoteExec,
    RemoteResult,
    SshCopyId,
    Target,
    append_key_script,
    echo_script,
    grep_key_script,
)
from shared.errors import RegistrarError, RemoteExecFailedError, VerificationFailedError

logger = logging.getLogger(__name__)


def _decline(question: str) -> bool:
    return False


class KeyRegistrar:
    """
    Drives the registration workflow against one remote channel.

    Args:
        remote: RemoteExec used for the duplicate check, the append and the
            connection test
        copy_id: Optional ssh-copy-id fast path; None disables it
        confirm: Yes/no decision function. Defaults to always "no", which
            reuses existing keys and skips duplicates.
        keygen: Key pair generator, called as keygen(private_key_path, comment)
        connect_timeout: Connect timeout in seconds for the connection test
        default_public_key: Key registered when no path is given
        default_generated_key: Private key location used by --generate
    """

    def __init__(
        self,
        remote: RemoteExec,
        copy_id: Optional[SshCopyId] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        keygen: Callable[..., Path] = generate_ssh_keypair,
        connect_timeout: int = 5,
        default_public_key: Path = DEFAULT_PUBLIC_KEY,
        default_generated_key: Path = DEFAULT_GENERATED_KEY,
    ):
        self.remote = remote
        self.copy_id = copy_id
        self.confirm = confirm or _decline
        self.keygen = keygen
        self.connect_timeout = connect_timeout
        self.default_public_key = Path(default_public_key)
        self.default_generated_key = Path(default_generated_key)

    def resolve_key_material(
        self,
        explicit_path: Optional[Path] = None,
        generate: bool = False,
        comment: Optional[str] = None,
    ) -> KeyMaterial:
        """Find (or generate) the public key to register."""
        if generate:
            private_key = private_key_path_for(
                Path(explicit_path).expanduser() if explicit_path else self.default_generated_key
            )
            public_key = public_key_path_for(private_key)
            if private_key.exists() and not self.confirm(
                f"SSH key already exists at {private_key}. Overwrite?"
            ):
                logger.info("Using existing key")
            else:
                logger.info("Generating new SSH key...")
                public_key = self.keygen(private_key, comment)
                logger.info("SSH key generated successfully")
        else:
            public_key = Path(explicit_path) if explicit_path else self.default_public_key

        return read_key_material(public_key)

    def is_key_already_present(self, target: Target, key_content: str) -> bool:
        """Check whether the key's base64 body already appears in authorized_keys."""
        key = KeyMaterial(path=Path(), content=key_content)
        if not key.fingerprint:
            logger.debug("Key has no base64 body, skipping duplicate check")
            return False

        logger.info("Checking whether the key is already on the server...")
        result = self.remote.run(target, grep_key_script(key.fingerprint))
        if result.ok:
            logger.warning("This key is already present on the server")
        return result.ok

    def register_key(self, target: Target, key_material: KeyMaterial) -> RemoteResult:
        """
        Append the key to authorized_keys in a single remote round trip.

        Safe to repeat: the file is deduplicated after every append.

        Raises:
            RemoteExecFailedError: if the remote command exits non-zero
        """
        logger.info(f"Adding SSH key to {target}...")
        result = self.remote.run(target, append_key_script(key_material.content))
        if not result.ok:
            raise RemoteExecFailedError(target.destination, result.exit_status, result.stderr)
        logger.info("SSH key added successfully")
        return result

    def verify_connection(self, target: Target) -> bool:
        """Confirm non-interactive key login works. Failure is never fatal."""
        logger.info("Testing connection...")
        result = self.remote.run(
            target, echo_script(), batch=True, timeout=self.connect_timeout
        )
        if result.ok:
            logger.info("Connection test succeeded")
        else:
            logger.debug(f"Connection test exited with {result.exit_status}: {result.stderr.strip()}")
        return result.ok

    def run(
        self,
        target: Target,
        explicit_path: Optional[Path] = None,
        generate: bool = False,
        prompt_if_duplicate: bool = True,
        comment: Optional[str] = None,
    ) -> int:
        """
        Run the full workflow.

        Returns:
            0 on success or when the user declined, 1 on any fatal error
        """
        try:
            key = self.resolve_key_material(explicit_path, generate, comment)
        except RegistrarError as e:
            _log_error(e)
            return 1

        if self.copy_id is not None:
            logger.info("Using ssh-copy-id to add the key...")
            if self.copy_id.copy(target, key.path):
                logger.info("SSH key added successfully using ssh-copy-id")
                return 0
            logger.warning("ssh-copy-id failed, trying manual method...")

        logger.info("Using manual method to add the key...")
        if self.is_key_already_present(target, key.content) and prompt_if_duplicate:
            if not self.confirm("Continue anyway?"):
                logger.info("Operation cancelled")
                return 0

        try:
            self.register_key(target, key)
        except RemoteExecFailedError as e:
            _log_error(e)
            return 1

        if not self.verify_connection(target):
            _log_error(VerificationFailedError(target.destination, target.port))

        logger.info(f"Done. You can now connect using: ssh -p {target.port} {target}")
        return 0


def _log_error(error: RegistrarError) -> None:
    log = logger.error if error.fatal else logger.warning
    log(error.message)
    stderr = error.details.get("stderr")
    if stderr:
        log(stderr.strip())
    if error.recovery_hint:
        logger.info(error.recovery_hint)
