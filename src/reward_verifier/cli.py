"""
Reward Root Verifier - CLI Entry Point

Verifies reward roots against their published leaves and proofs.

Usage:
    reward-verifier root <ROOT> [--json] [--concurrency N]
    reward-verifier contract <ADDRESS> [--network NAME | --rpc-url URL] [--json] [--concurrency N]

Environment Variables:
    PROOFS_BASE_URL                 Host the leaves and proofs are read from
    LEDGER_RPC_URL                  Ethereum JSON-RPC endpoint for contract reads
    LEDGER_NETWORK                  Network used when no endpoint is given (default: mainnet)
    MAX_CONCURRENT_PROOF_FETCHES    Proof requests in flight at once (default: 32)
    LOG_LEVEL                       Log level (default: INFO)
"""

import argparse
import asyncio
import json
import sys
from argparse import Namespace
from collections.abc import Sequence
from typing import Any

import structlog

from reward_verifier import __version__
from reward_verifier.core.config import settings
from reward_verifier.core.logging import setup_logging
from reward_verifier.core.validation import ZERO_BYTES32, normalize_address, normalize_root
from reward_verifier.services.aggregator import VerificationError, VerificationResponse
from reward_verifier.services.ledger_client import (
    ROOT_PROPERTY_NAMES,
    ContractNotFoundError,
    LedgerClient,
    LedgerClientError,
    UnknownNetworkError,
    resolve_rpc_url,
)
from reward_verifier.services.report import render_response
from reward_verifier.services.verifier import verify_hosted_root

logger = structlog.get_logger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def exit_code_for(response: VerificationResponse) -> int:
    if isinstance(response, VerificationError):
        return EXIT_RUNTIME_ERROR
    return EXIT_SUCCESS if response.valid else EXIT_VERIFICATION_FAILED


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="reward-verifier",
        description="Verify reward Merkle roots against their published leaves and proofs.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides LOG_LEVEL)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- root command ---
    root_parser = subparsers.add_parser(
        "root",
        help="Verify a single root",
        description="Rebuild the tree for a root and check every published proof.",
    )
    root_parser.add_argument(
        "root",
        type=str,
        help="Root to verify (64 hex characters, 0x prefix optional)",
    )
    _add_output_arguments(root_parser)
    root_parser.set_defaults(func=root_cmd)

    # --- contract command ---
    contract_parser = subparsers.add_parser(
        "contract",
        help="Verify the roots a reward contract commits to",
        description="Read pendingRewardsRoot and rewardsRoot from the contract and verify each.",
    )
    contract_parser.add_argument(
        "address",
        type=str,
        help="Reward contract address (40 hex characters, 0x prefix optional)",
    )
    contract_parser.add_argument(
        "--network",
        type=str,
        default=None,
        help="Network name, e.g. mainnet or sepolia (default: LEDGER_NETWORK)",
    )
    contract_parser.add_argument(
        "--rpc-url",
        type=str,
        default=None,
        help="Ethereum JSON-RPC endpoint (default: LEDGER_RPC_URL)",
    )
    _add_output_arguments(contract_parser)
    contract_parser.set_defaults(func=contract_cmd)

    return parser


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output machine-readable JSON report",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=settings.MAX_CONCURRENT_PROOF_FETCHES,
        help="Proof requests in flight at once",
    )


def root_cmd(args: Namespace) -> int:
    """Verify one root."""
    try:
        root = normalize_root(args.root)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    response = asyncio.run(verify_hosted_root(root, max_concurrency=args.concurrency))

    if args.json:
        print(json.dumps(response.to_dict(), indent=2))
    else:
        print(render_response(response))
    return exit_code_for(response)


def contract_cmd(args: Namespace) -> int:
    """Verify every non-empty root a reward contract exposes."""
    try:
        address = normalize_address(args.address)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        rpc_url = resolve_rpc_url(network=args.network, rpc_url=args.rpc_url)
    except UnknownNetworkError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    return asyncio.run(_verify_contract(address, rpc_url, args.concurrency, args.json))


async def _verify_contract(address: str, rpc_url: str, concurrency: int, as_json: bool) -> int:
    exit_code = EXIT_SUCCESS
    report: dict[str, Any] = {"contract": address, "roots": {}}

    async with LedgerClient(rpc_url=rpc_url) as ledger:
        for name in ROOT_PROPERTY_NAMES:
            try:
                root = await ledger.get_root(address, name)
            except ContractNotFoundError as e:
                logger.error("Contract not found", contract=address, rpc_url=rpc_url)
                print(f"error: {e}", file=sys.stderr)
                return EXIT_RUNTIME_ERROR
            except LedgerClientError as e:
                logger.error("Could not read root", contract=address, property=name, error=str(e))
                print(f"error reading {name}: {e}", file=sys.stderr)
                return EXIT_RUNTIME_ERROR

            if root == ZERO_BYTES32:
                report["roots"][name] = None
                if not as_json:
                    print(f"{name} is empty.")
                continue

            if not as_json:
                print(f"verifying {name}: {root}...")
            response = await verify_hosted_root(root, max_concurrency=concurrency)
            report["roots"][name] = response.to_dict()
            exit_code = max(exit_code, exit_code_for(response))
            if not as_json:
                print(render_response(response, label=name))

    if as_json:
        print(json.dumps(report, indent=2))
    return exit_code


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and dispatch to a subcommand."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    setup_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
