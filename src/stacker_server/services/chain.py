"""On-chain score recording.

The server account calls ``updatePlayerData(player, scoreAmount,
transactionAmount)`` on the games contract and waits for the receipt before
reporting success. Failures are never retried here: resending a
state-changing call could record the same run twice.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from stacker_server.core.errors import ChainDisabledError, ChainSubmissionError
from stacker_server.core.settings import settings

logger = logging.getLogger(__name__)

GAMES_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "registerGame",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_game", "type": "address"},
            {"name": "_name", "type": "string"},
            {"name": "_image", "type": "string"},
            {"name": "_url", "type": "string"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "updatePlayerData",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "player", "type": "address"},
            {"name": "scoreAmount", "type": "uint256"},
            {"name": "transactionAmount", "type": "uint256"},
        ],
        "outputs": [],
    },
]

_PRIVATE_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")
RECEIPT_STATUS_SUCCESS = 1


def normalize_private_key(value: str | None) -> str:
    """Return ``value`` as a ``0x``-prefixed lowercase 64 hex digit key.

    Surrounding quotes and any whitespace are stripped, which tolerates keys
    pasted into ``.env`` files.
    """
    if not value:
        raise ValueError("Missing SERVER_PRIVATE_KEY")
    key = str(value).strip()
    if len(key) >= 2 and key[0] == key[-1] and key[0] in "\"'":
        key = key[1:-1]
    key = re.sub(r"\s+", "", key)
    if key[:2] in ("0x", "0X"):
        key = key[2:]
    if not _PRIVATE_KEY_RE.fullmatch(key):
        raise ValueError("SERVER_PRIVATE_KEY must be 64 hex digits, optionally 0x-prefixed")
    return "0x" + key.lower()


@dataclass(frozen=True)
class ChainConfig:
    """Immutable configuration for chain writes."""

    rpc_url: str | None
    contract_address: str | None
    private_key: str | None
    chain_id: int
    receipt_timeout_seconds: float

    @property
    def enabled(self) -> bool:
        return bool(self.rpc_url and self.contract_address and self.private_key)


def load_chain_config() -> ChainConfig:
    """Build configuration object from global settings."""
    return ChainConfig(
        rpc_url=settings.rpc_url,
        contract_address=settings.contract_addr,
        private_key=settings.server_private_key,
        chain_id=settings.chain_id,
        receipt_timeout_seconds=settings.chain_receipt_timeout_seconds,
    )


class ChainSubmitter:
    """Send score updates to the games contract and await confirmation."""

    def __init__(
        self,
        config: ChainConfig | None = None,
        *,
        w3: Any | None = None,
        account: Any | None = None,
    ) -> None:
        self.config = config or load_chain_config()
        self._w3 = w3
        self._account = account
        self._contract: Any | None = None
        # One server account means one nonce sequence; only allocation and
        # broadcast are serialized, receipts are awaited concurrently.
        self._send_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled or (self._w3 is not None and self._account is not None)

    @property
    def account(self) -> Any:
        if self._account is None:
            if not self.config.private_key:
                raise ChainDisabledError("Chain submitter is not configured")
            self._account = Account.from_key(normalize_private_key(self.config.private_key))
        return self._account

    @property
    def address(self) -> str | None:
        """Server account address, or None when no key is configured."""
        try:
            return str(self.account.address)
        except (ChainDisabledError, ValueError):
            return None

    def _ensure_contract(self) -> Any:
        if not self.enabled:
            raise ChainDisabledError("Chain submitter is not configured")
        if self._w3 is None:
            self._w3 = AsyncWeb3(AsyncHTTPProvider(self.config.rpc_url))
        if self._contract is None:
            self._contract = self._w3.eth.contract(
                address=Web3.to_checksum_address(self.config.contract_address),
                abi=GAMES_ABI,
            )
        return self._contract

    async def _transact(self, function: Any) -> str:
        w3 = self._w3
        account = self.account
        async with self._send_lock:
            nonce = await w3.eth.get_transaction_count(account.address, "pending")
            tx = await function.build_transaction(
                {"from": account.address, "nonce": nonce, "chainId": self.config.chain_id}
            )
            signed = account.sign_transaction(tx)
            tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hex = Web3.to_hex(tx_hash)
        logger.info("Sent transaction %s, awaiting receipt", tx_hex)

        receipt = await w3.eth.wait_for_transaction_receipt(
            tx_hash,
            timeout=self.config.receipt_timeout_seconds,
        )
        if receipt["status"] != RECEIPT_STATUS_SUCCESS:
            raise ChainSubmissionError(f"Transaction {tx_hex} reverted")
        return tx_hex

    async def submit(self, player: str, score_delta: int, tx_delta: int) -> str:
        """Record ``score_delta`` and ``tx_delta`` for ``player`` on-chain.

        Returns:
            The confirmed transaction hash as ``0x`` hex.

        Raises:
            ChainSubmissionError: RPC failure, revert or receipt timeout; the
                underlying exception is chained as ``__cause__``.
        """
        contract = self._ensure_contract()
        try:
            function = contract.functions.updatePlayerData(
                Web3.to_checksum_address(player),
                int(score_delta),
                int(tx_delta),
            )
            tx_hash = await self._transact(function)
        except ChainSubmissionError:
            raise
        except Exception as exc:
            raise ChainSubmissionError(f"updatePlayerData failed: {exc}") from exc
        logger.info("Recorded score %d for %s in %s", score_delta, player, tx_hash)
        return tx_hash

    async def register_game(self, name: str, image: str, url: str) -> str:
        """Register the server account as a game on the contract."""
        contract = self._ensure_contract()
        try:
            function = contract.functions.registerGame(self.account.address, name, image, url)
            return await self._transact(function)
        except ChainSubmissionError:
            raise
        except Exception as exc:
            raise ChainSubmissionError(f"registerGame failed: {exc}") from exc


class _ChainSubmitterSingleton:
    """Singleton wrapper for ChainSubmitter."""

    _instance: ChainSubmitter | None = None

    @classmethod
    def get_instance(cls) -> ChainSubmitter:
        if cls._instance is None:
            cls._instance = ChainSubmitter()
        return cls._instance


def get_chain_submitter() -> ChainSubmitter:
    """Return a singleton chain submitter instance."""
    return _ChainSubmitterSingleton.get_instance()
