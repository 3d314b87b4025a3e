"""BEP20 adapter reading ``Transfer`` logs over JSON-RPC."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, TypeVar

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from deposit_engine.core.config import EvmSettings
from deposit_engine.modules.wallets.models import MainWallet

from .exceptions import ChainAdapterError, ChainRpcError, ChainTimeoutError, TransferDecodeError, WalletConfigError
from .models import NETWORK_BEP20, TRANSFER_TOPIC, RawTransfer, TransferBatch, scale_amount

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _hex(value: Any) -> str:
    """Lower-case hex without the ``0x`` prefix for bytes or str input."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    return str(value).lower().removeprefix("0x")


def address_topic(address: str) -> str:
    return "0x" + "0" * 24 + _hex(address)[-40:]


class EvmChainAdapter:
    """Scans one chunk of blocks per call; the caller loops to drain a backlog."""

    def __init__(
        self,
        w3: AsyncWeb3,
        *,
        network: str = NETWORK_BEP20,
        token_decimals: int = 18,
        chunk_size: int = 1000,
        request_timeout: float = 15.0,
    ) -> None:
        self.network = network
        self._w3 = w3
        self._token_decimals = token_decimals
        self._chunk_size = chunk_size
        self._timeout = request_timeout

    @classmethod
    def from_settings(cls, settings: EvmSettings, network: str = NETWORK_BEP20) -> "EvmChainAdapter":
        w3 = AsyncWeb3(AsyncHTTPProvider(settings.rpc_url))
        return cls(
            w3,
            network=network,
            token_decimals=settings.token_decimals,
            chunk_size=settings.chunk_size,
            request_timeout=settings.request_timeout,
        )

    async def aclose(self) -> None:
        await self._w3.provider.disconnect()

    async def get_head_height(self) -> int:
        return int(await self._call(self._w3.eth.block_number, "eth_blockNumber"))

    async def fetch_transfers_since(
        self,
        checkpoint: int,
        wallet: MainWallet,
        *,
        head_height: int | None = None,
    ) -> TransferBatch:
        head = head_height if head_height is not None else await self.get_head_height()
        if checkpoint >= head:
            return TransferBatch(events=[], head_height=head, scanned_to=checkpoint)

        token, wallet_topic = self._wallet_filter(wallet)
        from_block = checkpoint + 1
        to_block = min(checkpoint + self._chunk_size, head)
        logs = await self._call(
            self._w3.eth.get_logs(
                {
                    "fromBlock": from_block,
                    "toBlock": to_block,
                    "address": token,
                    "topics": ["0x" + TRANSFER_TOPIC, None, wallet_topic],
                }
            ),
            "eth_getLogs",
        )
        logger.debug("%s: %d transfer logs in blocks %d-%d", self.network, len(logs), from_block, to_block)

        events: list[RawTransfer] = []
        for log in logs:
            try:
                transfer = self._decode_log(log, wallet)
            except TransferDecodeError as exc:
                logger.warning("Skipping %s log in block %s: %s", self.network, log.get("blockNumber"), exc)
                continue
            if transfer is not None:
                events.append(transfer)
        return TransferBatch(events=events, head_height=head, scanned_to=to_block)

    def _wallet_filter(self, wallet: MainWallet) -> tuple[str, str]:
        try:
            token = Web3.to_checksum_address(wallet.token_contract_address)
        except (TypeError, ValueError) as exc:
            raise WalletConfigError(
                self.network, f"invalid token contract {wallet.token_contract_address!r}: {exc}"
            ) from exc
        if not Web3.is_address(wallet.address):
            raise WalletConfigError(self.network, f"invalid main wallet address {wallet.address!r}")
        return token, address_topic(wallet.address)

    def _decode_log(self, log: Any, wallet: MainWallet) -> RawTransfer | None:
        try:
            topics = [_hex(topic) for topic in log["topics"]]
            if len(topics) < 3 or topics[0] != TRANSFER_TOPIC:
                raise TransferDecodeError("not a Transfer(address,address,uint256) log")
            from_address = Web3.to_checksum_address("0x" + topics[1][-40:])
            to_address = Web3.to_checksum_address("0x" + topics[2][-40:])
            data = _hex(log["data"])
            value = int(data or "0", 16)
            tx_hash = "0x" + _hex(log["transactionHash"])
            block_number = int(log["blockNumber"])
            block_hash = log.get("blockHash")
        except TransferDecodeError:
            raise
        except (KeyError, TypeError, ValueError) as exc:
            raise TransferDecodeError(str(exc)) from exc

        if to_address.lower() != wallet.address.lower() or value <= 0:
            return None

        return RawTransfer(
            tx_hash=tx_hash,
            from_address=from_address,
            to_address=to_address,
            amount=scale_amount(value, self._token_decimals),
            network=self.network,
            block_number=block_number,
            block_hash="0x" + _hex(block_hash) if block_hash else "",
            raw_payload={
                "address": str(log.get("address") or ""),
                "topics": ["0x" + topic for topic in topics],
                "data": "0x" + data,
                "log_index": log.get("logIndex"),
                "transaction_index": log.get("transactionIndex"),
            },
        )

    async def _call(self, awaitable: Awaitable[T], method: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise ChainTimeoutError(self.network, f"{method} timed out after {self._timeout}s") from exc
        except ChainAdapterError:
            raise
        except Exception as exc:
            raise ChainRpcError(self.network, f"{method} failed: {exc}") from exc
