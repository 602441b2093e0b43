"""
Web3 Service module for reading from and writing to the vault's chain.

This module provides a Web3Service class for the read side (logs, blocks,
balances) with an insert-only block timestamp cache, and a
TokenTransferClient that signs and submits ERC20 transfers from the
funding wallet.
"""

from typing import Any, Callable, Dict, List, Optional, TypeVar

from eth_account import Account
from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from vault_recovery.shared.constants import DistributionConstants
from vault_recovery.shared.exceptions import (
    ConfigurationException,
    NonceConflictException,
    NonRetryableException,
    OperationCancelled,
    RetryableException,
    RpcException,
    TransferException,
)
from vault_recovery.shared.logging import get_logger
from vault_recovery.shared.retry import RPC_RETRY_CONFIG, RetryConfig
from vault_recovery.shared.services.resource_manager import (
    resource_manager,
)

T = TypeVar("T")

logger = get_logger(__name__)


class Web3Service:
    """
    A service class for the read-only chain calls used by the toolkit.

    Block timestamps are cached for the lifetime of the process: a block's
    timestamp never changes once the block is final, so entries are only
    ever inserted.

    Every read goes through the RPC retry policy. A call that still fails
    afterwards is raised as RpcException.
    """

    def __init__(
        self,
        chain_id: int,
        rpc_url: str,
        w3: Optional[Web3] = None,
        retry_config: RetryConfig = RPC_RETRY_CONFIG,
    ):
        """
        Initialize the Web3Service.

        Args:
            chain_id (int): The chain ID to use.
            rpc_url (str): The RPC URL to use.
            w3: Pre-built Web3 instance (tests inject a mock here).
            retry_config: Retry policy for read calls.
        """
        self.chain_id = chain_id
        self.w3 = w3 if w3 is not None else self._initialize_web3(rpc_url)
        self.retry_config = retry_config
        self._block_timestamp_cache: Dict[int, int] = {}
        self._contract_cache: Dict[Any, Any] = {}

    def _initialize_web3(self, rpc_url: str) -> Web3:
        """Initialize Web3 instance with middleware if needed"""
        if not rpc_url:
            raise ConfigurationException("RPC URL is required")
        w3 = Web3(Web3.HTTPProvider(rpc_url))

        # L2s (Base included) return extraData longer than mainnet allows
        if self.chain_id != 1:
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        return w3

    def _rpc_call(
        self, operation: Callable[..., T], *args: Any, operation_name: str
    ) -> T:
        try:
            return self.retry_config.call(
                operation, *args, operation_name=operation_name
            )
        except (NonRetryableException, RetryableException, OperationCancelled):
            raise
        except Exception as e:
            raise RpcException(f"RPC call {operation_name} failed: {e}") from e

    def get_block_number(self) -> int:
        """Latest block number"""
        return int(
            self._rpc_call(self.w3.eth.get_block_number, operation_name="block_number")
        )

    def get_block_timestamp(self, block_number: int) -> int:
        """Timestamp of a block, cached per block number"""
        if block_number not in self._block_timestamp_cache:
            block = self._rpc_call(
                self.w3.eth.get_block,
                block_number,
                operation_name=f"get_block({block_number})",
            )
            self._block_timestamp_cache[block_number] = int(block["timestamp"])
        return self._block_timestamp_cache[block_number]

    @property
    def cached_block_count(self) -> int:
        return len(self._block_timestamp_cache)

    def get_logs(self, filter_params: Dict[str, Any]) -> List[Any]:
        """Single eth_getLogs call. Retry and chunking live in the fetcher."""
        return list(self.w3.eth.get_logs(filter_params))

    def get_contract(self, address: str, abi_name: str) -> Any:
        """Get a contract instance for a given address and ABI name"""
        key = (address.lower(), abi_name)
        if key not in self._contract_cache:
            abi = resource_manager.load_abi(abi_name)
            self._contract_cache[key] = self.w3.eth.contract(
                address=Web3.to_checksum_address(address.lower()), abi=abi
            )
        return self._contract_cache[key]

    def token_balance(self, token_address: str, holder: str) -> int:
        """ERC20 balanceOf in wei"""
        contract = self.get_contract(token_address, "erc20")
        return int(
            self._rpc_call(
                contract.functions.balanceOf(
                    Web3.to_checksum_address(holder)
                ).call,
                operation_name="balanceOf",
            )
        )

    def native_balance(self, holder: str) -> int:
        """Native (ETH) balance in wei"""
        return int(
            self._rpc_call(
                self.w3.eth.get_balance,
                Web3.to_checksum_address(holder),
                operation_name="get_balance",
            )
        )

    def get_transaction_count(self, address: str) -> int:
        """Pending nonce for an address"""
        return int(
            self._rpc_call(
                self.w3.eth.get_transaction_count,
                Web3.to_checksum_address(address),
                "pending",
                operation_name="get_transaction_count",
            )
        )


def _is_nonce_error(error: Exception) -> bool:
    return "nonce" in str(error).lower()


class TokenTransferClient:
    """
    Signs and submits ERC20 transfers from the funding wallet.

    One call to ``send_transfer`` submits exactly one transaction and waits
    for its receipt; it never retries on its own. The distribution executor
    owns the nonce-refresh policy.
    """

    def __init__(
        self,
        web3_service: Web3Service,
        private_key: str,
        receipt_timeout: int = DistributionConstants.RECEIPT_TIMEOUT_SECONDS,
    ):
        if not private_key:
            raise ConfigurationException("A private key is required to sign transfers")
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError) as e:
            raise ConfigurationException(f"Invalid private key: {e}")
        self.web3_service = web3_service
        self.receipt_timeout = receipt_timeout

    @property
    def address(self) -> str:
        return self._account.address

    def get_nonce(self) -> int:
        return self.web3_service.get_transaction_count(self.address)

    def send_transfer(
        self, token_address: str, recipient: str, amount: int, nonce: int
    ) -> str:
        """
        Transfer ``amount`` wei of ``token_address`` to ``recipient``.

        Returns:
            The transaction hash (0x-prefixed hex) of a mined, successful tx

        Raises:
            NonceConflictException: the node rejected the nonce
            TransferException: submission failed or the receipt status is 0
        """
        w3 = self.web3_service.w3
        contract = self.web3_service.get_contract(token_address, "erc20")

        try:
            tx = contract.functions.transfer(
                Web3.to_checksum_address(recipient), int(amount)
            ).build_transaction(
                {
                    "from": self.address,
                    "nonce": nonce,
                    "chainId": self.web3_service.chain_id,
                }
            )
            signed = self._account.sign_transaction(tx)
            tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            if _is_nonce_error(e):
                raise NonceConflictException(f"Nonce {nonce} rejected: {e}")
            raise TransferException(f"Failed to submit transfer: {e}")

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Submitted transfer {tx_hash_hex} (nonce {nonce})")

        try:
            receipt = w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except Exception as e:
            # Submitted but unconfirmed: it may still be mined
            raise TransferException(
                f"Transaction {tx_hash_hex} status unknown (no receipt after "
                f"{self.receipt_timeout}s, may still be mined; check it on-chain "
                f"before re-sending): {e}",
                tx_hash=tx_hash_hex,
            )

        if receipt["status"] != 1:
            raise TransferException(
                f"Transaction {tx_hash_hex} reverted", tx_hash=tx_hash_hex
            )
        return tx_hash_hex
