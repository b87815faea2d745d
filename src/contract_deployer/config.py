"""Runtime configuration for contract-deployer library."""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_COMPILER_URL = "http://localhost:3001"
DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass(frozen=True)
class DeployerConfig:
    """
    Locations of the external collaborators.

    - compiler_url: Artifact compiler service (POST /api/compile)
    - artifacts_path: Pre-compiled artifacts JSON; replaces the compiler service when set
    - history_url: Deployments REST API; when unset the local JSON store is used
    - history_path: Local JSON history file (defaults to ./.contract-deployer/history.json)
    - rpc_url: JSON-RPC endpoint for Web3Signer
    - admin_token: Token the local JSON store accepts for "set current"
    - request_timeout: HTTP timeout in seconds
    """

    compiler_url: str = DEFAULT_COMPILER_URL
    artifacts_path: Optional[str] = None
    history_url: Optional[str] = None
    history_path: Optional[str] = None
    rpc_url: Optional[str] = None
    admin_token: Optional[str] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def validate(self) -> None:
        """Raise ``ValueError`` on unusable settings."""
        if not self.compiler_url and not self.artifacts_path:
            raise ValueError("Either compiler_url or artifacts_path is required")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.history_url and self.history_path:
            raise ValueError("history_url and history_path are mutually exclusive")

    @classmethod
    def from_env(cls, **overrides) -> "DeployerConfig":
        """
        Build a config from $DEPLOYER_* environment variables.

        Explicit keyword arguments take precedence over the environment.

        Raises:
            ValueError: If the resulting config is invalid
        """
        timeout = os.environ.get("DEPLOYER_REQUEST_TIMEOUT")
        values = {
            "compiler_url": os.environ.get("DEPLOYER_COMPILER_URL", DEFAULT_COMPILER_URL),
            "artifacts_path": os.environ.get("DEPLOYER_ARTIFACTS_PATH"),
            "history_url": os.environ.get("DEPLOYER_HISTORY_URL"),
            "history_path": os.environ.get("DEPLOYER_HISTORY_PATH"),
            "rpc_url": os.environ.get("DEPLOYER_RPC_URL"),
            "admin_token": os.environ.get("DEPLOYER_ADMIN_TOKEN"),
            "request_timeout": float(timeout) if timeout else DEFAULT_REQUEST_TIMEOUT,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        config = cls(**values)
        config.validate()
        return config
