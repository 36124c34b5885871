# src/main.py - v1
"""CLI entry point.

Usage:
    contentflow create <keyword> [--target ID]
    contentflow status <item_id>
    contentflow step <item_id> <step> [--block N] [--model M]
    contentflow write-all <item_id> [--model M]
    contentflow rollback <item_id>
    contentflow history <item_id>
    contentflow costs [--days N] [--top N]
    contentflow refresh-scan [--days N] [--mark]

Work items only survive between invocations with REPOSITORY_BACKEND=sqlite.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from contentflow.core.errors import ContentFlowError, NotFoundError
from contentflow.core.models import StepName
from contentflow.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except NotFoundError as exc:
        logger.error("%s", exc)
        return 2
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="contentflow",
        description=f"contentflow v{__version__} - article production workflow",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    p_create = subparsers.add_parser("create", help="Create a draft work item")
    p_create.add_argument("keyword", help="Target keyword")
    p_create.add_argument("--title", default=None)
    p_create.add_argument("--target", default=None, help="Publishing target id")
    p_create.set_defaults(func=_cmd_create)

    p_status = subparsers.add_parser("status", help="Show a work item's workflow position")
    p_status.add_argument("item_id")
    p_status.set_defaults(func=_cmd_status)

    p_step = subparsers.add_parser("step", help="Execute one workflow step")
    p_step.add_argument("item_id")
    p_step.add_argument("step", choices=[s.value for s in StepName])
    p_step.add_argument("--block", type=int, default=None, help="Block index (write_block)")
    p_step.add_argument("--model", default=None, help="Model override")
    p_step.set_defaults(func=_cmd_step)

    p_write = subparsers.add_parser("write-all", help="Write every pending block")
    p_write.add_argument("item_id")
    p_write.add_argument("--model", default=None, help="Model override")
    p_write.set_defaults(func=_cmd_write_all)

    p_rollback = subparsers.add_parser("rollback", help="Move back one status")
    p_rollback.add_argument("item_id")
    p_rollback.set_defaults(func=_cmd_rollback)

    p_history = subparsers.add_parser("history", help="List runs, most recent first")
    p_history.add_argument("item_id")
    p_history.set_defaults(func=_cmd_history)

    p_costs = subparsers.add_parser("costs", help="Cost report")
    p_costs.add_argument("--days", type=int, default=30)
    p_costs.add_argument("--top", type=int, default=10)
    p_costs.set_defaults(func=_cmd_costs)

    p_refresh = subparsers.add_parser("refresh-scan", help="Find stale published items")
    p_refresh.add_argument("--days", type=int, default=None)
    p_refresh.add_argument("--target", default=None)
    p_refresh.add_argument("--mark", action="store_true", help="Mark candidates refresh_needed")
    p_refresh.set_defaults(func=_cmd_refresh_scan)

    return parser


def _facade():
    from contentflow.api.facade import build_facade
    from contentflow.config.settings import Settings

    settings = Settings()
    if settings.repository_backend == "memory":
        logger.warning("REPOSITORY_BACKEND=memory: nothing persists after this command")
    return build_facade(settings)


async def _cmd_create(args: argparse.Namespace) -> int:
    item = await _facade().create_work_item(args.keyword, args.title, args.target)
    print(item.id)
    return 0


async def _cmd_status(args: argparse.Namespace) -> int:
    from contentflow.api.models import WorkItemView

    view = WorkItemView.of(await _facade().get_work_item(args.item_id))
    item = view.item
    print(f"\n{item.keyword} ({item.id})")
    print(f"  Status:    {view.label} [{item.status.value}] {view.progress}%")
    print(f"  Next step: {view.next_step.value if view.next_step else '-'}")
    pending = len(item.pending_block_indices)
    print(f"  Blocks:    {len(item.blocks)} ({pending} pending), {item.word_count} words")
    return 0


async def _cmd_step(args: argparse.Namespace) -> int:
    result = await _facade().trigger_step(args.item_id, args.step, args.block, args.model)
    if not result.success:
        print(f"Step failed: {result.error}")
        return 1
    print(f"\nStep {args.step} complete:")
    print(f"  Status:  {result.status.value if result.status else '-'}")
    print(f"  Model:   {result.model_used or '-'}")
    print(f"  Tokens:  {result.tokens_in} in / {result.tokens_out} out")
    print(f"  Cost:    ${result.cost_usd:.4f}")
    return 0


async def _cmd_write_all(args: argparse.Namespace) -> int:
    def progress(block, current: int, total: int) -> None:
        mark = "ok" if block.success else f"error: {block.error}"
        print(f"  [{current}/{total}] block {block.block_index}: {mark}")

    result = await _facade().write_all(args.item_id, args.model, on_progress=progress)
    if not result.success:
        print(f"Nothing written: {result.error}")
        return 1
    print("\nBatch complete:")
    print(f"  Written:  {result.written_count}/{result.pending_blocks}")
    print(f"  Errors:   {result.error_count}")
    print(f"  Cost:     ${result.total_cost_usd:.4f}")
    return 0 if result.error_count == 0 else 1


async def _cmd_rollback(args: argparse.Namespace) -> int:
    result = await _facade().rollback(args.item_id)
    if not result.success:
        print(f"Rollback refused: {result.error}")
        return 1
    print(f"{result.from_status.value} -> {result.to_status.value} ({result.label})")
    return 0


async def _cmd_history(args: argparse.Namespace) -> int:
    runs = await _facade().run_history(args.item_id)
    for run in runs:
        line = (
            f"{run.created_at:%Y-%m-%d %H:%M:%S}  {run.step.value:<12} {run.status:<8}"
            f" {run.model_used or '-':<28} ${run.cost_usd:.4f} {run.duration_ms}ms"
        )
        if run.error:
            line += f"  {run.error}"
        print(line)
    return 0


async def _cmd_costs(args: argparse.Namespace) -> int:
    facade = _facade()
    summary = await facade.cost_summary()
    alert = await facade.budget_alert()
    print("\nCosts:")
    print(f"  Total:        ${summary.total_cost_usd:.4f} over {summary.total_runs} runs")
    print(f"  Per item:     ${summary.avg_cost_per_item:.4f}")
    print(f"  Month:        ${alert.current_spend:.2f} / ${alert.budget:.2f} ({alert.percent_used}%)"
          + ("  ALERT" if alert.is_alert else ""))
    for model in summary.by_model:
        print(f"  {model.model:<30} ${model.cost_usd:.4f} ({model.runs} runs)")
    for day in await facade.daily_costs(args.days):
        print(f"  {day.date}  ${day.cost_usd:.4f}  {day.runs} runs")
    for entry in await facade.top_spenders(args.top):
        print(f"  {entry.keyword:<40} ${entry.cost_usd:.4f}")
    return 0


async def _cmd_refresh_scan(args: argparse.Namespace) -> int:
    facade = _facade()
    candidates = await facade.refresh_candidates(args.target, args.days)
    for item in candidates:
        print(f"  {item.id}  {item.keyword}  {item.word_count} words  {item.published_at:%Y-%m-%d}")
        if args.mark:
            try:
                await facade.mark_refresh_needed(item.id)
            except ContentFlowError as exc:
                logger.warning("Could not mark %s: %s", item.id, exc)
    print(f"{len(candidates)} candidate(s)")
    return 0


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from contentflow.logging.logger import setup_logging

    setup_logging(level="DEBUG" if verbose else "INFO", log_format="text")
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
