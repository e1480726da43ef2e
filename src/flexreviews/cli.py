"""
FlexReviews CLI
===============

Command-line interface for the review pipeline.

Commands:
    fetch       - List aggregated reviews (with filters)
    stats       - Show review statistics
    approve     - Approve a review for the website
    unapprove   - Remove a review from the website
    status      - Show source integration and approval-state status
    listings    - List managed listings

Usage:
    flexreviews fetch --listing-id 2B-N1-A --min-rating 4
    flexreviews stats --date-range 30 --json
    flexreviews approve 7453
    flexreviews status
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict

from .api.services import ReviewService
from .exceptions import FlexReviewsError


def setup_logging(verbose: bool = False):
    """Configure logging for CLI."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _filter_params(args) -> Dict[str, Any]:
    params = {
        "listingId": args.listing_id,
        "channel": args.channel,
        "minRating": args.min_rating,
        "sentiment": args.sentiment,
        "dateRange": args.date_range,
    }
    if hasattr(args, "limit"):
        params["limit"] = args.limit
        params["offset"] = args.offset
    return {k: v for k, v in params.items() if v is not None}


def cmd_fetch(args, service: ReviewService):
    """List aggregated reviews."""
    try:
        page = asyncio.run(service.get_all_reviews(_filter_params(args)))
    except FlexReviewsError as e:
        print(f"ERROR: {e}")
        return 1

    if args.json:
        output = {
            "result": [r.to_dict() for r in page["reviews"]],
            "meta": {"total": page["total"], "sources": page["sources"], "breakdown": page["breakdown"]},
        }
        print(json.dumps(output, indent=2, default=str))
        return 0

    reviews = page["reviews"]
    if not reviews:
        print("No reviews match the given filters.")
        return 0

    print("=" * 60)
    print(f"REVIEWS ({len(reviews)} of {page['total']}, sources: {', '.join(page['sources'])})")
    print("=" * 60)
    print()

    for review in reviews:
        approved = "✓" if review.is_approved_for_website else " "
        print(f"[{approved}] {review.id}  {review.average_rating:.1f}/5  {review.sentiment.value}")
        print(f"    {review.listing_name} | {review.channel.value} | {review.submitted_at}")
        print(f"    {review.guest_name}: {review.public_review[:70]}")
        if review.keywords:
            print(f"    Keywords: {', '.join(review.keywords)}")
        print()

    return 0


def cmd_stats(args, service: ReviewService):
    """Show review statistics."""
    try:
        stats = asyncio.run(service.get_stats(_filter_params(args), approved_only=args.approved_only))
    except FlexReviewsError as e:
        print(f"ERROR: {e}")
        return 1

    if args.json:
        print(json.dumps(stats.to_dict(), indent=2))
        return 0

    print("=" * 60)
    print("REVIEW STATISTICS")
    print("=" * 60)
    print(f"Total reviews: {stats.total_reviews}")
    print(f"Average rating: {stats.average_rating:.2f}/5")
    print()

    if stats.category_averages:
        print("Categories:")
        for category, rating in sorted(stats.category_averages.items(), key=lambda kv: -kv[1]):
            bar_length = int(rating / 5 * 20)
            bar = "█" * bar_length + "░" * (20 - bar_length)
            print(f"  {category:24} [{bar}] {rating:.2f}")
        print()

    print("Sentiment:")
    for sentiment, count in stats.sentiment_breakdown.items():
        print(f"  - {sentiment}: {count}")

    if stats.trend_data:
        print()
        print("Trend (last days):")
        for point in stats.trend_data:
            print(f"  {point.date}: {point.rating:.2f} ({point.count})")

    return 0


def _set_approval(args, service: ReviewService, approved: bool):
    count = service.set_approval(args.review_id, approved)
    action = "approved for" if approved else "removed from"
    print(f"Review {args.review_id} {action} website. Total approved: {count}")

    error = service.approval_store.last_persist_error
    if error:
        print(f"WARNING: change not saved to disk: {error}")
        return 1
    return 0


def cmd_approve(args, service: ReviewService):
    """Approve a review for the website."""
    return _set_approval(args, service, True)


def cmd_unapprove(args, service: ReviewService):
    """Remove a review from the website."""
    return _set_approval(args, service, False)


def cmd_status(args, service: ReviewService):
    """Show integration status."""
    status = service.integration_status()

    if args.json:
        print(json.dumps(status, indent=2, default=str))
        return 0

    print("=" * 60)
    print("INTEGRATION STATUS")
    print("=" * 60)
    print()

    print("Sources:")
    for source in status["sources"]:
        icon = "✓" if source["configured"] else "✗"
        always_on = " (always on)" if source["alwaysOn"] else ""
        print(f"  {icon} {source['name']}: {source['status']}{always_on}")

    approvals = status["approvals"]
    print()
    print(f"Approved reviews: {approvals['count']}")
    if approvals["isStale"]:
        print("⚠ Approval state on disk may be stale")
    if approvals["lastPersistError"]:
        print(f"  Last error: {approvals['lastPersistError']}")

    return 0


def cmd_listings(args, service: ReviewService):
    """List managed listings."""
    listings, source = service.get_listings()

    if args.json:
        print(json.dumps({"result": listings, "meta": {"total": len(listings), "source": source}}, indent=2))
        return 0

    print("=" * 60)
    print(f"LISTINGS ({source})")
    print("=" * 60)
    for listing in listings:
        print(f"  {listing.get('id', ''):10} {listing.get('name', '')}")
    print()
    print(f"Total: {len(listings)} listings")
    return 0


def _add_filter_arguments(parser, paging: bool = True):
    parser.add_argument("--listing-id", help="Canonical listing id (e.g. 2B-N1-A)")
    parser.add_argument("--channel", help="Booking channel (airbnb, booking, ...)")
    parser.add_argument("--min-rating", help="Minimum average rating (0-5)")
    parser.add_argument("--sentiment", help="positive, neutral or negative")
    parser.add_argument("--date-range", help="Only reviews from the last N days")
    if paging:
        parser.add_argument("--limit", help="Maximum reviews to show")
        parser.add_argument("--offset", help="Reviews to skip")
    parser.add_argument("--json", action="store_true", help="Output as JSON")


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="flexreviews",
        description="FlexReviews review aggregation CLI",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    fetch_parser = subparsers.add_parser("fetch", help="List aggregated reviews")
    _add_filter_arguments(fetch_parser)

    stats_parser = subparsers.add_parser("stats", help="Show review statistics")
    _add_filter_arguments(stats_parser, paging=False)
    stats_parser.add_argument(
        "--approved-only",
        action="store_true",
        help="Only reviews approved for the website",
    )

    approve_parser = subparsers.add_parser("approve", help="Approve a review for the website")
    approve_parser.add_argument("review_id", help="Review id")

    unapprove_parser = subparsers.add_parser("unapprove", help="Remove a review from the website")
    unapprove_parser.add_argument("review_id", help="Review id")

    status_parser = subparsers.add_parser("status", help="Show integration status")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    listings_parser = subparsers.add_parser("listings", help="List managed listings")
    listings_parser.add_argument("--json", action="store_true", help="Output as JSON")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "fetch": cmd_fetch,
        "stats": cmd_stats,
        "approve": cmd_approve,
        "unapprove": cmd_unapprove,
        "status": cmd_status,
        "listings": cmd_listings,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    service = ReviewService()
    service.init()
    return handler(args, service)


if __name__ == "__main__":
    sys.exit(main())
