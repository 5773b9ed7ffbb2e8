"""
Shopsignal CLI
==============

Command-line interface for scoring administration.

Commands:
    recalculate - Recalculate every product's interest score
    scores      - List stored interest scores
    viability   - Show scale / test / kill verdicts
    insights    - Show dashboard insights
    schedule    - Run the recalculation on its cron schedule

Usage:
    python -m shopsignal.orchestrator.cli recalculate
    python -m shopsignal.orchestrator.cli scores --level hot --limit 10
    python -m shopsignal.orchestrator.cli viability --product-id prod-1 --json
    python -m shopsignal.orchestrator.cli insights
    python -m shopsignal.orchestrator.cli schedule --cron-entry
"""

import argparse
import json
import sys
from typing import List, Optional

from ..data.config import get_settings
from ..scoring.insights import level_overview
from ..storage.base import StoreError
from .logging_config import setup_logging_from_config
from .recalculation import RecalculationError
from .scheduler import RecalculationScheduler, generate_cron_entry
from .services import Services, build_services


def _print_json(payload):
    print(json.dumps(payload, indent=2, default=str))


def cmd_recalculate(args, services: Services) -> int:
    """Recalculate all interest scores."""
    try:
        result = services.pipeline.run()
    except RecalculationError as e:
        print(f"ERROR: Recalculation aborted: {e}")
        return 1

    if args.json:
        _print_json(result.to_dict())
        return 0

    print("=" * 60)
    print("INTEREST RECALCULATION COMPLETE")
    print("=" * 60)
    print(f"Run ID: {result.run_id}")
    print(f"Status: {result.status.value}")
    print(f"Duration: {result.duration_seconds:.2f} seconds")
    print(f"Processed: {result.processed} (failed upserts: {result.failed})")
    print()
    print("Summary:")
    for level, count in result.summary.items():
        print(f"  {level:5}: {count}")
    for error in result.errors:
        print(f"  ✗ {error['product_id']}: {error['message']}")

    return 0


def cmd_scores(args, services: Services) -> int:
    """List stored interest scores, highest first."""
    try:
        scores = services.score_store.list_scores()
        names = services.catalog.product_names()
    except StoreError as e:
        print(f"ERROR: Failed to read scores: {e}")
        return 1

    if args.level:
        scores = [s for s in scores if s.interest_level.value == args.level]
    scores = scores[:args.limit]

    if args.json:
        _print_json([s.to_dict() for s in scores])
        return 0

    if not scores:
        print("No interest scores found. Run 'recalculate' first.")
        return 0

    print("=" * 60)
    print("INTEREST SCORES")
    print("=" * 60)
    print()
    for i, score in enumerate(scores, 1):
        bar_length = int(score.interest_score / 100 * 20)
        bar = "█" * bar_length + "░" * (20 - bar_length)
        print(f"{i}. {names.get(score.product_id, score.product_id)}")
        print(f"   [{bar}] {score.interest_score}/100 ({score.interest_level.value})")
        print(
            f"   Sessions: {score.unique_sessions} | Return visitors: {score.return_visitors} | "
            f"Buyer confidence: {score.buyer_confidence}% | Hesitation: {score.hesitation_score}%"
        )
        print()

    print(f"Levels: {level_overview(scores)}")
    return 0


def cmd_viability(args, services: Services) -> int:
    """Show viability verdicts."""
    try:
        if args.product_id:
            score = services.viability.evaluate(args.product_id)
            if score is None:
                print(f"No funnel data for {args.product_id}")
                return 1
            scores = [score]
        else:
            scores = services.viability.build().scores
    except StoreError as e:
        print(f"ERROR: Failed to read analytics: {e}")
        return 1

    if args.json:
        _print_json([s.to_dict() for s in scores])
        return 0

    if not scores:
        print("No funnel data recorded yet.")
        return 0

    for score in scores:
        print("=" * 60)
        print(f"{score.product_id}: {score.score}/100 -> {score.recommendation.value.upper()}")
        print("=" * 60)
        for name, value in score.breakdown.to_dict().items():
            bar = "█" * int(value / 5) + "░" * (20 - int(value / 5))
            print(f"  {name:20} [{bar}] {value}")
        print(f"  {score.explanation}")
        print()

    return 0


def cmd_insights(args, services: Services) -> int:
    """Show dashboard insights."""
    try:
        insights = services.insights.generate(
            services.score_store.list_scores(),
            services.catalog.product_names(),
        )
    except StoreError as e:
        print(f"ERROR: Failed to build insights: {e}")
        return 1

    if args.json:
        _print_json([i.to_dict() for i in insights])
        return 0

    for insight in insights:
        print(f"[{insight.type.value}] {insight.title}")
        print(f"    {insight.description}")
    return 0


def cmd_schedule(args, services: Services) -> int:
    """Run the scheduler daemon, or print its crontab equivalent."""
    if args.cron_entry:
        print("Add the following to your crontab (crontab -e):")
        print(generate_cron_entry(config=services.settings.scheduler))
        return 0

    scheduler = RecalculationScheduler(services.pipeline, services.settings.scheduler)
    if args.once:
        result = scheduler.trigger_now()
        if result is None:
            print("Recalculation failed")
            return 1
        print(f"Recalculation completed: {result.status.value} {result.summary}")
        return 0

    scheduler.start(blocking=True)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shopsignal",
        description="Shopsignal scoring CLI",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    recalc_parser = subparsers.add_parser("recalculate", help="Recalculate all interest scores")
    recalc_parser.add_argument("--json", action="store_true", help="Output as JSON")

    scores_parser = subparsers.add_parser("scores", help="List interest scores")
    scores_parser.add_argument(
        "--level",
        choices=["hot", "warm", "cool", "cold"],
        help="Only show one interest level",
    )
    scores_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Maximum scores to show (default: 20)",
    )
    scores_parser.add_argument("--json", action="store_true", help="Output as JSON")

    viability_parser = subparsers.add_parser("viability", help="Show viability verdicts")
    viability_parser.add_argument("--product-id", help="Only evaluate this product")
    viability_parser.add_argument("--json", action="store_true", help="Output as JSON")

    insights_parser = subparsers.add_parser("insights", help="Show dashboard insights")
    insights_parser.add_argument("--json", action="store_true", help="Output as JSON")

    schedule_parser = subparsers.add_parser("schedule", help="Run the recalculation scheduler")
    schedule_parser.add_argument(
        "--once",
        action="store_true",
        help="Trigger one run now and exit",
    )
    schedule_parser.add_argument(
        "--cron-entry",
        action="store_true",
        help="Print a crontab entry instead of running",
    )

    return parser


def main(argv: Optional[List[str]] = None, services: Optional[Services] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "recalculate": cmd_recalculate,
        "scores": cmd_scores,
        "viability": cmd_viability,
        "insights": cmd_insights,
        "schedule": cmd_schedule,
    }

    settings = services.settings if services is not None else get_settings()
    setup_logging_from_config(settings.logging, level="DEBUG" if args.verbose else None)

    own_services = services is None
    if own_services:
        try:
            services = build_services(settings)
        except StoreError as e:
            print(f"ERROR: Storage unavailable: {e}")
            return 1

    try:
        return commands[args.command](args, services)
    finally:
        if own_services:
            services.close()


if __name__ == "__main__":
    sys.exit(main())
