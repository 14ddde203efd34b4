# main.py

"""Entry point for the price_watch monitor (CLI and API server)."""

import argparse
import logging
import sys

from src.config.logging_config import setup_logging

logger = logging.getLogger("price_watch.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="price_watch",
        description="Track product listing prices and stock across sites.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser(
        "scrape",
        help="Scrape every tracked listing once (scheduled batch run).",
    )

    refresh = commands.add_parser(
        "refresh", help="Re-scrape a single listing now.",
    )
    refresh.add_argument("listing_id", type=int)

    add_tracker = commands.add_parser(
        "add-tracker", help="Create a new tracker.",
    )
    add_tracker.add_argument("title")
    add_tracker.add_argument(
        "-d", "--description", default=None,
        help="Free-text description.",
    )
    add_tracker.add_argument(
        "-t", "--target-price", default=None, dest="target_price",
        help="Price you are waiting for.",
    )

    add_listing = commands.add_parser(
        "add-listing",
        help="Scrape a product URL and track it under a tracker.",
    )
    add_listing.add_argument("tracker_id", type=int)
    add_listing.add_argument("url")
    add_listing.add_argument(
        "--title", default=None,
        help="Override the scraped title.",
    )
    add_listing.add_argument(
        "--price", default=None,
        help="Override the scraped price.",
    )

    history = commands.add_parser(
        "history", help="Show a listing's snapshots and events.",
    )
    history.add_argument("listing_id", type=int)

    commands.add_parser("serve", help="Run the HTTP API.")
    return parser


def main() -> None:
    """Dispatch the requested sub-command and exit with its code."""
    log_file = setup_logging()
    logger.info("price_watch starting, log file: %s", log_file)

    args = _build_parser().parse_args()

    from src.cli import runner

    if args.command == "scrape":
        exit_code = runner.run_batch()
    elif args.command == "refresh":
        exit_code = runner.run_refresh(args.listing_id)
    elif args.command == "add-tracker":
        exit_code = runner.run_add_tracker(
            args.title,
            description=args.description,
            target_price=args.target_price,
        )
    elif args.command == "add-listing":
        exit_code = runner.run_add_listing(
            args.tracker_id,
            args.url,
            title=args.title,
            price=args.price,
        )
    elif args.command == "history":
        exit_code = runner.run_history(args.listing_id)
    else:
        exit_code = runner.run_server()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
