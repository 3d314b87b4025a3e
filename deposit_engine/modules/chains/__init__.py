"""Chain adapter exports and the default network registry."""

from __future__ import annotations

from deposit_engine.core.config import ChainSettings

from .base import ChainAdapter
from .evm import EvmChainAdapter
from .exceptions import ChainAdapterError, ChainRpcError, ChainTimeoutError, TransferDecodeError, WalletConfigError
from .models import NETWORK_BEP20, NETWORK_TRC20, RawTransfer, TransferBatch
from .tron import TronChainAdapter


def build_adapters(settings: ChainSettings) -> dict[str, ChainAdapter]:
    return {
        NETWORK_TRC20: TronChainAdapter.from_settings(settings.tron),
        NETWORK_BEP20: EvmChainAdapter.from_settings(settings.bsc),
    }


__all__ = [
    "ChainAdapter",
    "ChainAdapterError",
    "ChainRpcError",
    "ChainTimeoutError",
    "EvmChainAdapter",
    "NETWORK_BEP20",
    "NETWORK_TRC20",
    "RawTransfer",
    "TransferBatch",
    "TransferDecodeError",
    "TronChainAdapter",
    "WalletConfigError",
    "build_adapters",
]
