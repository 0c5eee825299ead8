"""Local public key material and ed25519 key pair generation."""

import getpass
import logging
import socket
from dataclasses import dataclass
from pathlib import Path

from shared.errors import InvalidKeyFileError, KeyFileNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_SSH_DIR = Path.home() / ".ssh"
DEFAULT_PUBLIC_KEY = DEFAULT_SSH_DIR / "id_rsa.pub"
DEFAULT_GENERATED_KEY = DEFAULT_SSH_DIR / "id_ed25519"


def fingerprint_token(key_line: str) -> str:
    """
    Extract the base64 key body used for duplicate detection.

    Parse: "ssh-ed25519 AAAA... comment" -> "AAAA...". This is not a
    cryptographic fingerprint; it only identifies the line in authorized_keys.
    Returns "" when the line has no key body.
    """
    parts = key_line.split()
    if len(parts) < 2:
        return ""
    return parts[1]


@dataclass(frozen=True)
class KeyMaterial:
    """A public key read from disk."""
    path: Path
    content: str

    @property
    def fingerprint(self) -> str:
        return fingerprint_token(self.content)


def read_key_material(path: Path) -> KeyMaterial:
    """Read a public key file, failing if it is missing or empty."""
    path = Path(path).expanduser()
    if not path.is_file():
        raise KeyFileNotFoundError(str(path))

    try:
        content = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidKeyFileError(str(path), reason=str(e)) from e
    if not content:
        raise InvalidKeyFileError(str(path))

    return KeyMaterial(path=path, content=content)


def public_key_path_for(private_key: Path) -> Path:
    """Public key path next to a private key (id_ed25519 -> id_ed25519.pub)."""
    private_key = Path(private_key)
    return private_key.with_name(private_key.name + ".pub")


def private_key_path_for(key_path: Path) -> Path:
    """Private key path for either a private or a .pub path."""
    key_path = Path(key_path)
    if key_path.suffix == ".pub":
        return key_path.with_suffix("")
    return key_path


def default_comment() -> str:
    """Default key comment, as ssh-keygen uses: user@hostname."""
    return f"{getpass.getuser()}@{socket.gethostname()}"


def generate_ssh_keypair(key_path: Path, comment: str | None = None) -> Path:
    """
    Generate an Ed25519 SSH keypair.

    Args:
        key_path: Path for the private key; the public key goes to key_path + ".pub"
        comment: Comment appended to the public key line (default: user@hostname)

    Returns:
        Path to the public key file
    """
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

    key_path = Path(key_path).expanduser()
    if not key_path.parent.exists():
        key_path.parent.mkdir(mode=0o700, parents=True)

    private_key = Ed25519PrivateKey.generate()

    private_bytes = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.OpenSSH,
        encryption_algorithm=serialization.NoEncryption(),
    )
    key_path.write_bytes(private_bytes)
    key_path.chmod(0o600)

    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    )
    line = public_bytes.decode("ascii")
    comment = default_comment() if comment is None else comment.strip()
    if comment:
        line = f"{line} {comment}"

    pub_path = public_key_path_for(key_path)
    pub_path.write_text(line + "\n")
    pub_path.chmod(0o644)

    logger.info(f"Generated SSH keypair: {key_path}")
    return pub_path
