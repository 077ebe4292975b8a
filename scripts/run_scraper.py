"""Manual adapter runner for testing and debugging.

Runs one provider adapter and prints the normalized records it produces.
Nothing is written to the database unless ``--persist`` is given, in which
case the run goes through the ingestion service exactly like a scheduled run.

Usage:
    python scripts/run_scraper.py --adapter epic_games
    python scripts/run_scraper.py --adapter steam --url https://store.steampowered.com/app/1234/
    python scripts/run_scraper.py --adapter reddit --limit 5
    python scripts/run_scraper.py --adapter humble_choice --persist
"""

import argparse
import asyncio
import os
import sys
import traceback
from typing import Optional

# Add backend to path so we can import budgetgamer modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from budgetgamer.db.session import async_session_factory
from budgetgamer.scrapers.base import EntityKind, NormalizedOffer
from budgetgamer.scrapers.register_adapters import register_all_adapters
from budgetgamer.scrapers.scheduler import run_adapter_isolated


def _print_offer(i: int, offer: NormalizedOffer) -> None:
    print(f"[{i}] {offer.name}")
    print(f"    Provider: {offer.provider_id}")
    print(f"    Window:   {offer.start_date:%Y-%m-%d %H:%M} -> {offer.end_date:%Y-%m-%d %H:%M} UTC")
    if offer.developer:
        print(f"    Developer: {offer.developer}")
    if offer.publisher:
        print(f"    Publisher: {offer.publisher}")
    if offer.platform_ids:
        print(f"    Platforms: {', '.join(offer.platform_ids)}")
    print(f"    URL: {offer.provider_url[:80]}")
    print()


async def run_scraper(slug: str, url: Optional[str] = None, limit: int = 10, persist: bool = False) -> int:
    """Run an adapter and display the results.

    Args:
        slug: Adapter slug (e.g. "epic_games", "steam")
        url: Game link, for adapters that fetch a single submission
        limit: Maximum number of records to display
        persist: Store the results through the ingestion service

    Returns:
        Process exit code
    """
    factory = register_all_adapters()
    if not factory.has_adapter(slug):
        print(f"\nError: Unknown adapter '{slug}'")
        print("\nAvailable adapters:")
        for name in sorted(factory.get_registered_slugs()):
            print(f"   - {name}")
        return 2

    print(f"\n{'='*70}")
    print(f"  Running {slug} adapter{' (persisting)' if persist else ''}")
    print(f"{'='*70}\n")

    if persist:
        tally = await run_adapter_isolated(async_session_factory, slug, factory)
        for key, value in tally.items():
            print(f"  {key}: {value}")
        print()
        return 0

    adapter = factory.create_adapter(slug)
    print(f"Initialized {slug} adapter (type: {adapter.adapter_type}, stores: {adapter.entity_kind.value})\n")

    try:
        if url:
            records = [await adapter.fetch_offer(url)]
        elif adapter.entity_kind == EntityKind.ARTICLE:
            records = await adapter.fetch_links()
        else:
            records = await adapter.fetch_offers()
    except NotImplementedError:
        print(f"Adapter '{slug}' only handles submitted links; pass --url\n")
        return 2
    except Exception as e:
        print(f"\nError occurred while running {slug}:")
        print(f"   {type(e).__name__}: {e}")
        traceback.print_exc()
        return 1
    finally:
        await adapter.cleanup()

    if not records:
        print("No records found.\n")
        return 0

    print(f"Found {len(records)} records, showing {min(limit, len(records))}\n")
    for i, record in enumerate(records[:limit], 1):
        if isinstance(record, NormalizedOffer):
            _print_offer(i, record)
        else:
            print(f"[{i}] {record}")

    if adapter.failures:
        print(f"{'='*70}")
        print(f"  {len(adapter.failures)} item failures")
        print(f"{'='*70}")
        for failure in adapter.failures:
            print(f"  - {failure}")
        print()

    return 0


def main():
    """Parse arguments and run the adapter."""
    parser = argparse.ArgumentParser(
        description="Run a provider adapter for testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_scraper.py --adapter epic_games
  python scripts/run_scraper.py --adapter gog --url https://www.gog.com/en/game/some_game
  python scripts/run_scraper.py --adapter amazon_prime --persist
        """,
    )

    parser.add_argument(
        "--adapter",
        required=True,
        help="Adapter slug (e.g., 'epic_games', 'amazon_prime', 'steam')",
    )

    parser.add_argument(
        "--url",
        help="Game link for submission adapters (steam, gog, humble_bundle, playstation)",
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of records to display (default: 10)",
    )

    parser.add_argument(
        "--persist",
        action="store_true",
        help="Write the results to the database through the ingestion service",
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(run_scraper(args.adapter, args.url, args.limit, args.persist)))


if __name__ == "__main__":
    main()
