"""Configuration constants for contract-deployer library."""

import re

# Maps logical contract identifiers (as used by the docs/registry) to the
# canonical contract names understood by the artifact compiler
CONTRACT_NAME_MAPPING = {
    "mainDAO": "MainDAO",
    "token": "VotingToken",
    "nowjc": "NOWJC",
    "nativeAthena": "NativeAthena",
    "nativeRewards": "NativeRewards",
    "nativeBridge": "NativeBridge",
    "mainRewards": "MainRewards",
}

# Canonical name of the ERC1967 proxy template deployed in front of UUPS implementations
PROXY_CONTRACT_NAME = "UUPSProxy"

# Bytecode strings shorter than this are treated as a failed compilation
MIN_BYTECODE_LENGTH = 100

# Gas buffer applied on top of every estimate: +20%
GAS_BUFFER_PERCENT = 20

# Fallback gas limits used when simulation fails for an unrecognized reason
FALLBACK_GAS = {
    "contract_deploy": 5_000_000,
    "implementation_deploy": 5_000_000,
    "proxy_deploy": 1_000_000,
    "initialize": 500_000,
    "upgrade": 300_000,
}

# Revert reasons recognized during gas estimation (matched case-insensitively)
ALREADY_INITIALIZED_PATTERNS = [
    re.compile(r"already initialized", re.IGNORECASE),
    re.compile(r"InvalidInitialization", re.IGNORECASE),
]
UNAUTHORIZED_PATTERNS = [
    re.compile(r"OwnableUnauthorizedAccount", re.IGNORECASE),
    re.compile(r"caller is not the owner", re.IGNORECASE),
    re.compile(r"unauthorized", re.IGNORECASE),
]

# Submission failure patterns
USER_REJECTED_PATTERNS = [
    re.compile(r"user rejected", re.IGNORECASE),
    re.compile(r"user denied", re.IGNORECASE),
    re.compile(r"rejected by user", re.IGNORECASE),
]
INSUFFICIENT_FUNDS_PATTERNS = [
    re.compile(r"insufficient funds", re.IGNORECASE),
]
INVALID_BYTECODE_PATTERNS = [
    re.compile(r"Internal JSON-RPC error", re.IGNORECASE),
    re.compile(r"invalid opcode", re.IGNORECASE),
    re.compile(r"invalid bytecode", re.IGNORECASE),
    re.compile(r"max code size exceeded", re.IGNORECASE),
]

# Raw chain messages are cut to this length before being shown to the user
MAX_RAW_MESSAGE_LENGTH = 200

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")

# Minimal ABI for the UUPS upgrade entry point (ERC1822 / OpenZeppelin UUPSUpgradeable)
UUPS_UPGRADE_ABI = [
    {
        "type": "function",
        "name": "upgradeToAndCall",
        "stateMutability": "payable",
        "inputs": [
            {"name": "newImplementation", "type": "address"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [],
    }
]

# Chain ID -> human readable network name
NETWORK_NAMES = {
    1: "Ethereum Mainnet",
    5: "Goerli Testnet",
    11155111: "Sepolia Testnet",
    8453: "Base Mainnet",
    84532: "Base Sepolia",
    42161: "Arbitrum One",
    421614: "Arbitrum Sepolia",
    10: "Optimism",
    11155420: "OP Sepolia",
    137: "Polygon",
    80002: "Polygon Amoy",
}

# Chain ID -> block explorer base URL
BLOCK_EXPLORERS = {
    1: "https://etherscan.io",
    5: "https://goerli.etherscan.io",
    11155111: "https://sepolia.etherscan.io",
    8453: "https://basescan.org",
    84532: "https://sepolia.basescan.org",
    42161: "https://arbiscan.io",
    421614: "https://sepolia.arbiscan.io",
    10: "https://optimistic.etherscan.io",
    11155420: "https://sepolia-optimism.etherscan.io",
    137: "https://polygonscan.com",
    80002: "https://amoy.polygonscan.com",
}
DEFAULT_BLOCK_EXPLORER = "https://etherscan.io"

# Maximum number of history records returned per contract
HISTORY_LIMIT = 50
