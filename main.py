#!/usr/bin/env python3
"""Entry point for the plasma client.

Initializes the account from environment configuration and runs one
operation: init, deposit, send, exit or status.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from src.plasma_client.config import PlasmaConfig
from src.plasma_client.errors import ExitFailure, PlasmaError
from src.plasma_client.models import ETH_CURRENCY
from src.plasma_client.plasma_account import PlasmaAccount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Plasma client - deposit to, transact on and exit from a plasma child chain",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  WEB3_PROVIDER_URL       - Root chain RPC endpoint
  PLASMA_CONTRACT_ADDRESS - Plasma framework contract on the root chain
  WATCHER_URL             - Watcher service URL
  CHILDCHAIN_URL          - Child chain URL (default: WATCHER_URL)
  ROOT_EXPLORER_URL       - Root chain explorer (default: https://rinkeby.etherscan.io/)
  CHILD_EXPLORER_URL      - Child chain explorer (default: http://quest.ari.omg.network/)
  POLL_INTERVAL_MS        - Confirmation poll interval (default: 1000)
  CONFIRMATION_BLOCKS     - Confirmation depth (default: 1)
  MAX_INPUTS              - Max UTXOs spent per transfer (default: 4)
  EXIT_BOND               - Wei bonded per standard exit (default: 31415926535)
  PRIVATE_KEY             - Account key (default: first provider account)
  LOG_LEVEL               - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Initialize the account and show its balances")

    deposit = subparsers.add_parser("deposit", help="Deposit from the root chain to the child chain")
    deposit.add_argument("amount", help="Amount in base units, e.g. 100000")
    deposit.add_argument("--currency", default=ETH_CURRENCY, help="ERC20 token address (default: ETH)")
    deposit.add_argument(
        "--no-approve",
        action="store_true",
        default=False,
        help="Skip the ERC20 approval before a token deposit"
    )

    send = subparsers.add_parser("send", help="Send funds on the child chain")
    send.add_argument("to_address", help="Recipient address")
    send.add_argument("amount", help="Amount in base units")
    send.add_argument("--currency", default=ETH_CURRENCY, help="Token address (default: ETH)")

    exit_cmd = subparsers.add_parser("exit", help="Start standard exits for all UTXOs")
    exit_cmd.add_argument("--address", default=None, help="Owner of the UTXOs (default: account)")

    subparsers.add_parser("status", help="Show account and service status")
    return parser


async def run_command(account: PlasmaAccount, args: argparse.Namespace) -> None:
    match args.command:
        case "init":
            return
        case "deposit":
            print(await account.deposit(args.amount, args.currency, approve=not args.no_approve))
        case "send":
            print(await account.transfer(args.to_address, args.amount, args.currency))
        case "exit":
            messages = await account.exit(args.address)
            print("\n".join(messages) if messages else "No UTXOs to exit.")
        case "status":
            status = account.status()
            status["service"] = await account.service_check()
            print(json.dumps(status, indent=2))


async def main() -> None:
    """Main entry point for the plasma client.

    Raises:
        SystemExit: On configuration or operation errors
    """
    args: argparse.Namespace = build_parser().parse_args()
    setup_logging(args.log_level)

    try:
        config: PlasmaConfig = PlasmaConfig.from_env()
        config.log_config()
    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - WEB3_PROVIDER_URL: Root chain RPC endpoint")
        logger.error("  - PLASMA_CONTRACT_ADDRESS: Plasma framework contract")
        logger.error("  - WATCHER_URL: Watcher service URL")
        sys.exit(1)

    account = PlasmaAccount(config)
    try:
        print(await account.initialize())
        await run_command(account, args)
    except ExitFailure as e:
        for message in e.succeeded:
            print(message)
        logger.error(f"{len(e.failures)} exits failed")
        sys.exit(1)
    except PlasmaError as e:
        logger.error(f"Operation failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down...")
        if account.poller:
            account.poller.stop()
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
