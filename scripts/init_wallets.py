"""
Register or update a custodial main wallet.

Example:
    python scripts/init_wallets.py BEP20 0xMainWallet 0x55d398326f99059fF775485246999027B3197955 \
        --min-confirmations 15 --start-block 43000000
"""
import argparse
import asyncio

from deposit_engine.infrastructure.database.session import dispose_engine, get_session, init_db
from deposit_engine.modules.wallets import CheckpointStore, MainWalletService


async def register_wallet(args: argparse.Namespace) -> None:
    await init_db()

    async for db in get_session():
        wallet = await MainWalletService.with_session(db).register_wallet(
            network=args.network,
            address=args.address,
            token_contract_address=args.token_contract,
            min_confirmations=args.min_confirmations,
            is_active=not args.inactive,
        )
        if args.start_block is not None:
            await CheckpointStore.with_session(db).set_checkpoint(wallet.network, args.start_block)

        print(f"{wallet.network} main wallet {wallet.address} registered (active={wallet.is_active})")
        if args.start_block is not None:
            print(f"{wallet.network} scanning starts after block {args.start_block}")

    await dispose_engine()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("network", help="TRC20 or BEP20")
    parser.add_argument("address", help="main wallet address receiving deposits")
    parser.add_argument("token_contract", help="stablecoin token contract address")
    parser.add_argument("--min-confirmations", type=int, default=12)
    parser.add_argument("--start-block", type=int, default=None, help="seed the network checkpoint")
    parser.add_argument("--inactive", action="store_true", help="register the wallet as inactive")
    asyncio.run(register_wallet(parser.parse_args()))


if __name__ == "__main__":
    main()
