"""Error taxonomy for key registration."""


class RegistrarError(Exception):
    """Base exception for key registration errors with structured details."""

    fatal = True

    def __init__(
        self,
        code: str,
        message: str,
        details: dict | None = None,
        recovery_hint: str | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.recovery_hint = recovery_hint
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to structured error response."""
        result = {
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.recovery_hint:
            result["recovery_hint"] = self.recovery_hint
        return result


class KeyFileNotFoundError(RegistrarError):
    """Raised when the resolved public key file does not exist."""

    def __init__(self, path: str):
        super().__init__(
            code="KEY_FILE_NOT_FOUND",
            message=f"Public key file not found: {path}",
            details={"path": path},
            recovery_hint="Pass an existing public key path, or use --generate to create a new key pair.",
        )


class InvalidKeyFileError(RegistrarError):
    """Raised when a public key file is empty."""

    def __init__(self, path: str, reason: str = "file is empty"):
        super().__init__(
            code="INVALID_KEY_FILE",
            message=f"Invalid public key file {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class RemoteExecFailedError(RegistrarError):
    """Raised when a remote command exits with non-zero status."""

    def __init__(self, destination: str, exit_status: int, stderr: str = ""):
        super().__init__(
            code="REMOTE_EXEC_FAILED",
            message=f"Remote command on {destination} exited with code {exit_status}",
            details={
                "destination": destination,
                "exit_status": exit_status,
                "stderr": stderr[:500] if stderr else "",
            },
            recovery_hint="Check that the host is reachable and that the password was entered correctly.",
        )


class VerificationFailedError(RegistrarError):
    """Raised when key based login could not be confirmed. Never fatal."""

    fatal = False

    def __init__(self, destination: str, port: int):
        super().__init__(
            code="VERIFICATION_FAILED",
            message=f"Key added, but connection test to {destination} failed",
            details={"destination": destination, "port": port},
            recovery_hint=f"Try manually: ssh -p {port} {destination}",
        )


class InvalidArgumentError(RegistrarError):
    """Raised when command-line arguments are invalid."""

    def __init__(self, message: str, argument: str | None = None):
        details = {"argument": argument} if argument else None
        super().__init__(
            code="INVALID_ARGUMENT",
            message=message,
            details=details,
            recovery_hint="Run with --help to see usage.",
        )
