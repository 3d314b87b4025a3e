"""Errors raised by chain adapters."""


class ChainAdapterError(Exception):
    """Base class for chain adapter failures; the network pass is abandoned."""

    def __init__(self, network: str, message: str) -> None:
        super().__init__(f"{network}: {message}")
        self.network = network


class ChainRpcError(ChainAdapterError):
    """The node or indexer returned an error or an unusable response."""


class ChainTimeoutError(ChainAdapterError):
    """An RPC call exceeded its configured timeout."""


class WalletConfigError(ChainAdapterError):
    """A main wallet or token address cannot be parsed for this network."""


class TransferDecodeError(Exception):
    """A single transfer could not be decoded; only that event is skipped."""
