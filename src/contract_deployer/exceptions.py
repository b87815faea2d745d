"""Custom exception classes for contract-deployer library."""


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    pass


class UnmappedContractError(DeploymentError, LookupError):
    """Raised when a contract identifier has no canonical compiler name."""

    pass


class CompilationError(DeploymentError, RuntimeError):
    """Raised when the artifact compiler reports a failure."""

    pass


class InvalidArtifactError(DeploymentError, ValueError):
    """Raised when the compiler returns an artifact with near-empty bytecode."""

    pass


class MissingParameterError(DeploymentError, ValueError):
    """Raised when required constructor/initialize parameters are missing."""

    def __init__(self, message: str, missing=None):
        super().__init__(message)
        self.missing = list(missing or [])


class InvalidAddressError(DeploymentError, ValueError):
    """Raised when a supplied address is not a 20-byte hex address."""

    pass


class AlreadyInitializedError(DeploymentError, RuntimeError):
    """Raised when simulation reverts because the proxy is already initialized."""

    pass


class UnauthorizedUpgradeError(DeploymentError, PermissionError):
    """Raised when simulation reverts because the caller is not the owner."""

    pass


class UserRejectedError(DeploymentError, RuntimeError):
    """Raised when the signer declines to sign a transaction."""

    pass


class InsufficientFundsError(DeploymentError, RuntimeError):
    """Raised when the account cannot pay for the transaction."""

    pass


class InvalidBytecodeError(DeploymentError, RuntimeError):
    """Raised when the chain rejects a malformed deployment payload."""

    pass


class UnknownChainError(DeploymentError, RuntimeError):
    """Raised when a submission fails for an unrecognized reason."""

    pass


class SessionStateError(DeploymentError, RuntimeError):
    """Raised when an operation is not allowed in the current session state."""

    pass


class HistoryStoreError(DeploymentError, RuntimeError):
    """Raised when the history store cannot be read or written."""

    pass


class RecordNotFoundError(HistoryStoreError, LookupError):
    """Raised when a history record id does not exist."""

    pass


class AuthorizationError(DeploymentError, PermissionError):
    """Raised when a privileged history operation lacks admin authorization."""

    pass
