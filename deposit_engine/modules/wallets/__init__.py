"""Main wallet and checkpoint exports."""

from .models import BlockCheckpoint, MainWallet
from .service import CheckpointStore, MainWalletService

__all__ = [
    "BlockCheckpoint",
    "CheckpointStore",
    "MainWallet",
    "MainWalletService",
]
