"""Feature modules: chains, wallets, deposits, intents, ledger, reconciler."""
