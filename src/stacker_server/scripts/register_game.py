# src/stacker_server/scripts/register_game.py
"""
One-off registration of the server account as a game on the contract.

Run once per deployment, after RPC_URL, CONTRACT_ADDR and SERVER_PRIVATE_KEY
are configured:

    python -m stacker_server.scripts.register_game --name "Monad Stacker X"
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from stacker_server.core.errors import ChainSubmissionError
from stacker_server.core.settings import settings
from stacker_server.services.chain import ChainSubmitter


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Register the server wallet as a game.")
    parser.add_argument("--name", default=settings.game_name, help="Game name")
    parser.add_argument("--image", default=settings.game_image, help="Game image URL")
    parser.add_argument("--url", default=settings.game_url, help="Game URL")
    return parser


async def _register(name: str, image: str, url: str) -> str:
    submitter = ChainSubmitter()
    return await submitter.register_game(name, image, url)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if not settings.chain_configured:
        print("Set RPC_URL, CONTRACT_ADDR and SERVER_PRIVATE_KEY before registering.", file=sys.stderr)
        return 1
    try:
        tx_hash = asyncio.run(_register(args.name, args.image, args.url))
    except ChainSubmissionError as exc:
        print(f"registerGame failed: {exc.__cause__ or exc}", file=sys.stderr)
        return 1
    print(f"registerGame tx: {tx_hash}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
