"""Constructor/initialize parameter binding for contract-deployer library."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .constants import ADDRESS_PATTERN
from .exceptions import InvalidAddressError, MissingParameterError


class ParamDefault(Enum):
    """
    Automatic parameter defaults, resolved from the active signer instead of prompted.

    - CALLER_ADDRESS: the signer's own account address
    - CHAIN_ID: the connected chain id, as a decimal string
    """

    CALLER_ADDRESS = "WALLET"
    CHAIN_ID = "CHAIN_ID"


@dataclass(frozen=True)
class ParamSpec:
    """A named, typed constructor or initializer parameter."""

    name: str
    type: str  # Solidity type, e.g. "address", "uint256"
    default: Optional[ParamDefault] = None


def is_valid_address(value: Any) -> bool:
    """Check that a value is a 0x-prefixed 20-byte hex string."""
    return isinstance(value, str) and ADDRESS_PATTERN.match(value) is not None


def require_address(value: Any, label: str) -> str:
    """
    Validate an address supplied by the caller.

    Raises:
        InvalidAddressError: If the value is missing or malformed
    """
    if not value:
        raise InvalidAddressError(f"{label} is required")
    value = str(value).strip()
    if not is_valid_address(value):
        raise InvalidAddressError(f"Invalid {label}: {value}")
    return value


class ParameterBinding:
    """
    Projects a caller's name -> value map onto an interface's positional inputs.

    Positions come from an index built over the declared parameter list, so
    the order keys were supplied in never affects the argument order.
    """

    def __init__(self, specs: List[ParamSpec]):
        self._specs = list(specs)
        self._index: Dict[str, int] = {spec.name: position for position, spec in enumerate(self._specs)}

    @classmethod
    def from_abi_entry(
        cls,
        entry: Optional[Dict[str, Any]],
        defaults: Optional[Mapping[str, ParamDefault]] = None,
    ) -> "ParameterBinding":
        """
        Build a binding from an ABI constructor/function entry.

        Args:
            entry: ABI entry (None means no parameters)
            defaults: Automatic defaults keyed by parameter name

        Returns:
            ParameterBinding in the entry's declared input order
        """
        defaults = defaults or {}
        specs = []
        for position, item in enumerate((entry or {}).get("inputs", [])):
            name = item.get("name") or f"arg{position}"
            specs.append(ParamSpec(name=name, type=item.get("type", ""), default=defaults.get(name)))
        return cls(specs)

    @property
    def specs(self) -> List[ParamSpec]:
        return list(self._specs)

    @property
    def names(self) -> List[str]:
        return [spec.name for spec in self._specs]

    def resolve(
        self,
        values: Mapping[str, Any],
        account: Optional[str] = None,
        chain_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Fill automatic defaults for parameters the caller left empty.

        Returns:
            Dictionary of declared parameters that have a value, in declared order
        """
        resolved: Dict[str, Any] = {}
        for spec in self._specs:
            value = values.get(spec.name)
            if _is_empty(value):
                if spec.default is ParamDefault.CALLER_ADDRESS and account:
                    value = account
                elif spec.default is ParamDefault.CHAIN_ID and chain_id is not None:
                    value = str(chain_id)
            if not _is_empty(value):
                resolved[spec.name] = value
        return resolved

    def missing(self, resolved: Mapping[str, Any]) -> List[str]:
        return [spec.name for spec in self._specs if _is_empty(resolved.get(spec.name))]

    def validate(
        self,
        values: Mapping[str, Any],
        account: Optional[str] = None,
        chain_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Resolve defaults and check that every declared parameter has a value.

        Raises:
            MissingParameterError: If any declared parameter is still empty
        """
        resolved = self.resolve(values, account, chain_id)
        missing = self.missing(resolved)
        if missing:
            raise MissingParameterError(
                f"Missing required parameters: {', '.join(missing)}", missing
            )
        return resolved

    def bind(
        self,
        values: Mapping[str, Any],
        account: Optional[str] = None,
        chain_id: Optional[int] = None,
    ) -> List[Any]:
        """
        Validate and project values into positional arguments.

        Raises:
            MissingParameterError: If any declared parameter is missing
        """
        resolved = self.validate(values, account, chain_id)
        args: List[Any] = [None] * len(self._specs)
        for name, value in resolved.items():
            args[self._index[name]] = value
        return args


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")
