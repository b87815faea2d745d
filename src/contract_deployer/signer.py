"""Signer/chain collaborator interface and web3.py adapter."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from eth_account import Account
from web3 import Web3

from .constants import NETWORK_NAMES
from .types import Invocation, TransactionResult

logger = logging.getLogger(__name__)


class Signer:
    """
    External signer/chain: simulates, signs, broadcasts and waits for inclusion.

    Implementations raise whatever their client library raises; the gas
    estimator and transaction submitter classify those failures.
    """

    def account(self) -> str:
        """Return the address transactions are sent from."""
        raise NotImplementedError

    def chain_id(self) -> int:
        """Return the id of the connected chain."""
        raise NotImplementedError

    def estimate_gas(self, invocation: Invocation, sender: str) -> int:
        """Simulate the invocation and return the gas it would use."""
        raise NotImplementedError

    def send(self, invocation: Invocation, sender: str, gas: int) -> TransactionResult:
        """Sign, broadcast and block until the transaction is included."""
        raise NotImplementedError


def network_name_for(chain_id: int) -> str:
    return NETWORK_NAMES.get(chain_id, f"Chain ID {chain_id}")


@dataclass(frozen=True)
class SignerContext:
    """Signer identity captured once at session start and passed into every call."""

    signer: Signer
    account: str
    chain_id: int
    network_name: str

    @classmethod
    def from_signer(cls, signer: Signer) -> "SignerContext":
        chain_id = int(signer.chain_id())
        return cls(
            signer=signer,
            account=signer.account(),
            chain_id=chain_id,
            network_name=network_name_for(chain_id),
        )


class Web3Signer(Signer):
    """
    Signer backed by web3.py.

    With a private key, transactions are built, signed locally and sent raw.
    Without one, the node's account signs (``transact``), which is how
    development nodes and unlocked accounts work.
    """

    def __init__(
        self,
        w3: Web3,
        private_key: Optional[str] = None,
        account: Optional[str] = None,
    ):
        self._w3 = w3
        self._private_key = private_key
        if private_key:
            self._account: Optional[str] = Account.from_key(private_key).address
        elif account:
            self._account = Web3.to_checksum_address(account)
        else:
            self._account = None

    @classmethod
    def from_rpc_url(
        cls, rpc_url: str, private_key: Optional[str] = None, account: Optional[str] = None
    ) -> "Web3Signer":
        return cls(Web3(Web3.HTTPProvider(rpc_url)), private_key=private_key, account=account)

    def account(self) -> str:
        if self._account is None:
            accounts = self._w3.eth.accounts
            if not accounts:
                raise RuntimeError("No account available: pass a private key or account address")
            self._account = accounts[0]
        return self._account

    def chain_id(self) -> int:
        return int(self._w3.eth.chain_id)

    def _prepare(self, invocation: Invocation):
        inputs = _inputs_for(invocation)
        args = coerce_arguments(inputs, invocation.args)
        if invocation.is_deploy:
            contract = self._w3.eth.contract(abi=invocation.abi, bytecode=invocation.bytecode)
            return contract.constructor(*args)
        contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(invocation.address), abi=invocation.abi
        )
        return contract.get_function_by_name(invocation.function)(*args)

    def estimate_gas(self, invocation: Invocation, sender: str) -> int:
        return int(self._prepare(invocation).estimate_gas({"from": sender}))

    def send(self, invocation: Invocation, sender: str, gas: int) -> TransactionResult:
        prepared = self._prepare(invocation)
        tx_params: Dict[str, Any] = {"from": sender, "gas": gas}

        if self._private_key:
            tx = prepared.build_transaction(
                {
                    **tx_params,
                    "nonce": self._w3.eth.get_transaction_count(sender),
                    "chainId": self.chain_id(),
                }
            )
            signed = self._w3.eth.account.sign_transaction(tx, private_key=self._private_key)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
        else:
            tx_hash = prepared.transact(tx_params)

        logger.info("Broadcast %s: %s", invocation.describe(), Web3.to_hex(tx_hash))
        receipt = self._w3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] == 0:
            raise RuntimeError(f"Transaction {Web3.to_hex(tx_hash)} reverted")

        return TransactionResult(
            transaction_hash=Web3.to_hex(receipt["transactionHash"]),
            contract_address=receipt.get("contractAddress"),
        )


def _inputs_for(invocation: Invocation) -> List[Dict[str, Any]]:
    for item in invocation.abi:
        if invocation.is_deploy and item.get("type") == "constructor":
            return item.get("inputs", [])
        if (
            not invocation.is_deploy
            and item.get("type") == "function"
            and item.get("name") == invocation.function
        ):
            return item.get("inputs", [])
    return []


def coerce_arguments(inputs: List[Dict[str, Any]], args: List[Any]) -> List[Any]:
    """
    Convert user-entered string arguments to the Python values web3.py expects.

    Non-string arguments and arguments without a matching ABI input pass through.
    """
    coerced = []
    for position, value in enumerate(args):
        abi_type = inputs[position].get("type", "") if position < len(inputs) else ""
        coerced.append(_coerce(abi_type, value))
    return coerced


def _coerce(abi_type: str, value: Any) -> Any:
    if not isinstance(value, str):
        return value
    value = value.strip()

    if abi_type.endswith("]"):
        return json.loads(value)
    if abi_type.startswith(("uint", "int")):
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    if abi_type == "bool":
        return value.lower() in ("true", "1", "yes")
    if abi_type == "address":
        return Web3.to_checksum_address(value)
    return value
