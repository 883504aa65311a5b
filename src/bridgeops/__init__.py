__all__ = [
    # Errors
    "BridgeOpsError",
    "BookError",
    "AbiError",
    "RpcError",
    "RevertError",
    # Address book
    "Chain",
    "Deployment",
    "CHAINS",
    "DEFAULT_DEPLOYMENT",
    "RemoteToken",
    "get_chain",
    "load_deployment",
    "rpc_url_for",
    # ABI
    "abi_for",
    "parse_signature",
    "signature_of",
    # RPC
    "read_contract",
    # Selectors
    "selector",
    "bytecode_selectors",
    "decode_calldata",
    "decode_revert",
    "match_signatures",
    # Transactions
    "send_contract_tx",
    # Signer
    "get_address",
    "load_private_key",
    # Peer encoding
    "address_to_bytes32",
    "bytes32_to_address",
]

from .book import (
    CHAINS,
    DEFAULT_DEPLOYMENT,
    Chain,
    Deployment,
    RemoteToken,
    get_chain,
    load_deployment,
    rpc_url_for,
)
from .errors import AbiError, BookError, BridgeOpsError, RevertError, RpcError
from .identity.eth import get_address, load_private_key
from .onchain.abi import abi_for, parse_signature, signature_of
from .onchain.rpc import read_contract
from .onchain.selectors import (
    bytecode_selectors,
    decode_calldata,
    decode_revert,
    match_signatures,
    selector,
)
from .onchain.tx import send_contract_tx
from .utils import address_to_bytes32, bytes32_to_address
