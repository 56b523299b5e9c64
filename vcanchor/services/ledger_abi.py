"""ABI fragments for the ledger contracts this service consumes.

Only the functions and events actually called are listed; the full
artifacts live with the contracts.
"""

from __future__ import annotations

DID_REGISTRY_ABI = [
    {"inputs": [{"name": "account", "type": "address"}], "name": "hasDID", "outputs": [{"type": "bool"}], "stateMutability": "view", "type": "function"},
]

CREDENTIAL_NFT_ABI = [
    {"inputs": [{"name": "to", "type": "address"}, {"name": "vcHash", "type": "bytes32"}, {"name": "uri", "type": "string"}], "name": "mintCredential", "outputs": [{"name": "tokenId", "type": "uint256"}], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [{"name": "tokenId", "type": "uint256"}], "name": "getVcHash", "outputs": [{"type": "bytes32"}], "stateMutability": "view", "type": "function"},
    {"anonymous": False, "inputs": [{"indexed": True, "name": "to", "type": "address"}, {"indexed": True, "name": "tokenId", "type": "uint256"}, {"indexed": False, "name": "vcHash", "type": "bytes32"}], "name": "CredentialMinted", "type": "event"},
]

RNG_HELPER_ABI = [
    {"inputs": [{"name": "bound", "type": "uint256"}], "name": "randomMod", "outputs": [{"type": "uint256"}], "stateMutability": "view", "type": "function"},
]

SUBSCRIPTION_MANAGER_ABI = [
    {"inputs": [{"name": "planKey", "type": "uint8"}], "name": "planPriceWei", "outputs": [{"type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "team", "type": "address"}, {"name": "planKey", "type": "uint8"}], "name": "paySubscription", "outputs": [], "stateMutability": "payable", "type": "function"},
    {"inputs": [{"name": "team", "type": "address"}], "name": "paidUntil", "outputs": [{"type": "uint256"}], "stateMutability": "view", "type": "function"},
]
