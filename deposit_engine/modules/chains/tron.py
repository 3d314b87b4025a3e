"""TRC20 adapter backed by the TronGrid HTTP API."""

from __future__ import annotations

import logging
from typing import Any

import base58
import httpx

from deposit_engine.core.config import TronSettings
from deposit_engine.modules.wallets.models import MainWallet

from .exceptions import ChainRpcError, ChainTimeoutError, TransferDecodeError, WalletConfigError
from .models import NETWORK_TRC20, TRANSFER_TOPIC, RawTransfer, TransferBatch, scale_amount

logger = logging.getLogger(__name__)

TRON_ADDRESS_PREFIX = "41"


def to_hex_address(address: str) -> str:
    """Base58check (``T...``) or ``0x`` address to the 21-byte ``41...`` hex form."""
    address = address.strip()
    if address.startswith("T"):
        return base58.b58decode_check(address).hex().lower()
    if address.lower().startswith("0x"):
        return (TRON_ADDRESS_PREFIX + address[2:]).lower()
    return address.lower()


def to_base58_address(hex_address: str) -> str:
    return base58.b58encode_check(bytes.fromhex(hex_address)).decode()


def topic_to_address(topic: str) -> str:
    topic = topic.lower().removeprefix("0x")
    if len(topic) < 40:
        raise TransferDecodeError(f"topic too short for an address: {topic!r}")
    try:
        return to_base58_address(TRON_ADDRESS_PREFIX + topic[-40:])
    except ValueError as exc:
        raise TransferDecodeError(f"undecodable address topic {topic!r}") from exc


class TronChainAdapter:
    """Reads recent incoming TRC20 transfers of a main wallet.

    TronGrid only exposes the latest page of an account's transactions, so a
    fetch always scans up to the head; anything older than the page is left
    to re-ingestion dedup and manual review.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        network: str = NETWORK_TRC20,
        page_size: int = 50,
        token_decimals: int = 6,
    ) -> None:
        self.network = network
        self._client = client
        self._page_size = page_size
        self._token_decimals = token_decimals

    @classmethod
    def from_settings(cls, settings: TronSettings, network: str = NETWORK_TRC20) -> "TronChainAdapter":
        headers = {"Accept": "application/json"}
        if settings.api_key:
            headers["TRON-PRO-API-KEY"] = settings.api_key
        client = httpx.AsyncClient(
            base_url=settings.api_url,
            timeout=settings.request_timeout,
            headers=headers,
        )
        return cls(
            client,
            network=network,
            page_size=settings.page_size,
            token_decimals=settings.token_decimals,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_head_height(self) -> int:
        payload = await self._request("POST", "/wallet/getnowblock")
        try:
            return int(payload["block_header"]["raw_data"]["number"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ChainRpcError(self.network, "getnowblock returned no block number") from exc

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

        wallet_hex = self._parse_address(wallet.address, "main wallet")
        contract_hex = self._parse_address(wallet.token_contract_address, "token contract")
        payload = await self._request(
            "GET",
            f"/v1/accounts/{to_base58_address(wallet_hex)}/transactions",
            params={"limit": self._page_size, "only_to": "true"},
        )
        block_hashes: dict[int, str] = {}
        events: list[RawTransfer] = []

        for tx in payload.get("data") or []:
            if not self._is_token_call(tx, contract_hex):
                continue
            try:
                block_number = int(tx.get("blockNumber") or 0)
            except (TypeError, ValueError):
                logger.warning(
                    "Skipping TRON transaction %s with block number %r", tx.get("txID"), tx.get("blockNumber")
                )
                continue
            if block_number <= checkpoint or block_number > head:
                continue
            try:
                transfer = await self._decode_transfer(tx, wallet_hex, contract_hex, block_hashes)
            except TransferDecodeError as exc:
                logger.warning("Skipping TRON transaction %s: %s", tx.get("txID"), exc)
                continue
            if transfer is not None:
                events.append(transfer)

        # TronGrid lists newest first
        events.sort(key=lambda event: (event.block_number, event.tx_hash))
        return TransferBatch(events=events, head_height=head, scanned_to=head)

    def _parse_address(self, address: str, role: str) -> str:
        try:
            hex_address = to_hex_address(address)
            raw = bytes.fromhex(hex_address)
        except (TypeError, ValueError) as exc:
            raise WalletConfigError(self.network, f"invalid {role} address {address!r}: {exc}") from exc
        if len(raw) != 21 or not hex_address.startswith(TRON_ADDRESS_PREFIX):
            raise WalletConfigError(self.network, f"invalid {role} address {address!r}")
        return hex_address

    @staticmethod
    def _is_token_call(tx: dict[str, Any], contract_hex: str) -> bool:
        contracts = (tx.get("raw_data") or {}).get("contract") or []
        if not contracts:
            return False
        call = contracts[0]
        if call.get("type") != "TriggerSmartContract":
            return False
        target = ((call.get("parameter") or {}).get("value") or {}).get("contract_address") or ""
        if target.lower() != contract_hex:
            return False
        results = tx.get("ret") or []
        return not results or results[0].get("contractRet", "SUCCESS") == "SUCCESS"

    async def _decode_transfer(
        self,
        tx: dict[str, Any],
        wallet_hex: str,
        contract_hex: str,
        block_hashes: dict[int, str],
    ) -> RawTransfer | None:
        tx_id = tx.get("txID")
        if not tx_id:
            raise TransferDecodeError("transaction without txID")

        info = await self._request("POST", "/wallet/gettransactioninfobyid", json={"value": tx_id})
        for log in info.get("log") or []:
            topics = log.get("topics") or []
            if len(topics) < 3 or topics[0].lower().removeprefix("0x") != TRANSFER_TOPIC:
                continue
            emitter = (log.get("address") or "").lower()
            if emitter and TRON_ADDRESS_PREFIX + emitter.removeprefix("0x")[-40:] != contract_hex:
                continue
            if TRON_ADDRESS_PREFIX + topics[2].lower().removeprefix("0x")[-40:] != wallet_hex:
                continue
            to_address = topic_to_address(topics[2])
            try:
                value = int(log.get("data") or "0", 16)
            except ValueError as exc:
                raise TransferDecodeError(f"undecodable transfer value {log.get('data')!r}") from exc
            if value <= 0:
                return None

            try:
                block_number = int(tx.get("blockNumber") or info.get("blockNumber") or 0)
            except (TypeError, ValueError) as exc:
                raise TransferDecodeError(f"undecodable block number {tx.get('blockNumber')!r}") from exc
            if block_number not in block_hashes:
                block_hashes[block_number] = await self._block_hash(block_number)
            return RawTransfer(
                tx_hash=tx_id,
                from_address=topic_to_address(topics[1]),
                to_address=to_address,
                amount=scale_amount(value, self._token_decimals),
                network=self.network,
                block_number=block_number,
                block_hash=block_hashes[block_number],
                raw_payload={"transaction": tx, "log": log},
            )

        logger.debug("TRON transaction %s has no transfer log to %s", tx_id, to_base58_address(wallet_hex))
        return None

    async def _block_hash(self, block_number: int) -> str:
        payload = await self._request("POST", "/wallet/getblockbynum", json={"num": block_number})
        return payload.get("blockID") or ""

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            raise ChainTimeoutError(self.network, f"{path} timed out") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ChainRpcError(self.network, f"{path} failed: {exc}") from exc

        if not isinstance(payload, dict):
            raise ChainRpcError(self.network, f"{path} returned {type(payload).__name__}")
        if payload.get("Error") or payload.get("success") is False:
            raise ChainRpcError(self.network, f"{path} error: {payload.get('Error') or payload.get('error')}")
        return payload
