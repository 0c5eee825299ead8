"""Configuration management for keyreg."""

from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import yaml

DEFAULT_CONFIG_DIR = Path.home() / ".keyreg"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_SSH_PORT = 22
DEFAULT_CONNECT_TIMEOUT = 5
TRANSPORTS = ("ssh", "paramiko")


@dataclass
class Config:
    """Persistent defaults, overridden by command-line flags."""
    # Remote connection
    port: int = DEFAULT_SSH_PORT
    transport: str = "ssh"
    ssh_options: list[str] = field(default_factory=list)  # extra "-o" options
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    use_copy_id: bool = True

    # Key locations (None = ~/.ssh defaults)
    public_key: Optional[str] = None
    generated_key: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load configuration from file."""
        path = path or DEFAULT_CONFIG_FILE

        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping at the top level of {path}")

        transport = data.get("transport") or "ssh"
        if transport not in TRANSPORTS:
            raise ValueError(f"Unknown transport in {path}: {transport}")

        # Blank values ("port:") load as None and fall back to the defaults
        ssh_options = data.get("ssh_options") or []
        if isinstance(ssh_options, str):
            ssh_options = [ssh_options]
        use_copy_id = data.get("use_copy_id")

        try:
            return cls(
                port=int(data.get("port") or DEFAULT_SSH_PORT),
                transport=transport,
                ssh_options=[str(o) for o in ssh_options],
                connect_timeout=int(data.get("connect_timeout") or DEFAULT_CONNECT_TIMEOUT),
                use_copy_id=True if use_copy_id is None else bool(use_copy_id),
                public_key=data.get("public_key"),
                generated_key=data.get("generated_key"),
                log_level=data.get("log_level") or "INFO",
                log_file=data.get("log_file"),
            )
        except TypeError as e:
            raise ValueError(f"Invalid value in {path}: {e}") from e

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to file."""
        path = path or DEFAULT_CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "port": self.port,
            "transport": self.transport,
            "ssh_options": self.ssh_options,
            "connect_timeout": self.connect_timeout,
            "use_copy_id": self.use_copy_id,
            "public_key": self.public_key,
            "generated_key": self.generated_key,
            "log_level": self.log_level,
            "log_file": self.log_file,
        }

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)
