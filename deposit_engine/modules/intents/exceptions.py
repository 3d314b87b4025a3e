"""Intent domain exceptions."""


class IntentError(Exception):
    """Base error for deposit intent operations."""


class MainWalletNotConfiguredError(IntentError):
    def __init__(self, network: str) -> None:
        super().__init__(f"no active main wallet configured for {network}")
        self.network = network


class InvalidIntentAmountError(IntentError):
    def __init__(self, amount: object) -> None:
        super().__init__(f"deposit amount must be positive, got {amount}")
        self.amount = amount
