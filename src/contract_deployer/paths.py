"""Path management utilities for contract-deployer library."""

from pathlib import Path
from typing import Optional, Union


def get_default_data_dir() -> Path:
    """
    Get default data directory.

    Returns:
        Path to ./.contract-deployer
    """
    return Path.cwd() / ".contract-deployer"


def get_default_history_path(data_root: Optional[Union[Path, str]] = None) -> Path:
    """
    Get the JSON history store path.

    Args:
        data_root: Custom data directory (defaults to ./.contract-deployer)

    Returns:
        Path to history.json
    """
    if data_root is None:
        data_root = get_default_data_dir()
    else:
        data_root = Path(data_root).absolute()

    return data_root / "history.json"
