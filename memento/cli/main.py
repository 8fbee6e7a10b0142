"""Operational command line for embedding diagnostics, migration and reindexing.

Usage:
    memento-embeddings diagnose full
    memento-embeddings migrate analyze --dimensions 1024
    memento-embeddings migrate clear-mismatched --dimensions 1024 --dry-run
    memento-embeddings migrate recreate-index --dimensions 1024
    memento-embeddings reindex count --only-missing
    memento-embeddings reindex run --entity-type person --batch-size 20
"""

import argparse
import asyncio
import signal
import sys
from typing import Any

from memento.bootstrap import AppContext, build_context
from memento.config import Settings, get_settings
from memento.config.dimensions import DimensionRegistry
from memento.errors import ConfigurationError, MementoError
from memento.migration.models import DRY_RUN_LABEL, EmbeddingStateSummary
from memento.observability.logging import get_logger
from memento.reindex.models import ReindexOptions, ReindexProgress, ReindexResult

logger = get_logger(__name__)


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--entity-type",
        action="append",
        dest="entity_types",
        help="Only entities of this type (repeatable)",
    )
    parser.add_argument("--name-pattern", help="Regex the entity name must fully match")
    parser.add_argument("--limit", type=int, help="Maximum entities to process")
    parser.add_argument(
        "--only-missing", action="store_true", help="Only entities without an embedding"
    )
    parser.add_argument("--force", action="store_true", help="Regenerate existing embeddings")
    parser.add_argument("--query", help="Custom selection query (must contain RETURN)")
    parser.add_argument("--batch-size", type=int, help="Entities per batch")
    parser.add_argument("--batch-delay", type=float, help="Seconds between batches")
    parser.add_argument(
        "--skip-updated-since",
        type=int,
        help="Skip embeddings written at or after this epoch ms (with --force)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memento-embeddings",
        description="Embedding consistency diagnostics, migration and reindexing",
    )
    parser.add_argument("--target-model", help="Embedding model to use instead of the configured one")
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    commands = parser.add_subparsers(dest="command", required=True)

    diagnose = commands.add_parser("diagnose", help="Inspect configuration and database state")
    diagnose.add_argument("target", choices=["config", "database", "full"])

    migrate = commands.add_parser("migrate", help="Move the embedding population between dimensions")
    migrate.add_argument(
        "action",
        choices=[
            "analyze",
            "backup",
            "clear-mismatched",
            "clear-all",
            "recreate-index",
            "restore",
            "cleanup-backups",
            "list-needing",
        ],
    )
    migrate.add_argument("--dimensions", type=int, help="Target dimension (defaults to configured)")
    migrate.add_argument("--skip-backup", action="store_true", help="clear-all without backup")
    migrate.add_argument(
        "--regenerate-all", action="store_true", help="list-needing: include every entity"
    )
    migrate.add_argument(
        "--no-wait", action="store_true", help="recreate-index: do not wait for ONLINE"
    )

    reindex = commands.add_parser("reindex", help="Regenerate embeddings in batches")
    reindex.add_argument("action", choices=["count", "run", "delete"])
    _add_filter_arguments(reindex)

    return parser


def options_from_args(args: argparse.Namespace, defaults: ReindexOptions) -> ReindexOptions:
    """Reindex options from command line arguments over configured defaults."""
    return ReindexOptions(
        batch_size=args.batch_size if args.batch_size is not None else defaults.batch_size,
        batch_delay=args.batch_delay if args.batch_delay is not None else defaults.batch_delay,
        entity_types=args.entity_types,
        name_pattern=args.name_pattern,
        only_missing=args.only_missing,
        force=args.force,
        limit=args.limit,
        dry_run=args.dry_run,
        custom_query=args.query,
        skip_updated_since=args.skip_updated_since,
    )


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Switch the embedding model when ``--target-model`` is given.

    The explicit dimension override is dropped so the new model's dimension
    is inferred.
    """
    if not args.target_model:
        return settings
    embedding = settings.providers.embedding.model_copy(
        update={"model": args.target_model, "dimensions": None}
    )
    providers = settings.providers.model_copy(update={"embedding": embedding})
    return settings.model_copy(update={"providers": providers})


def _label(dry_run: bool) -> str:
    return f"{DRY_RUN_LABEL} " if dry_run else ""


def print_state(summary: EmbeddingStateSummary) -> None:
    print("=== Embedding State ===")
    print(f"Expected dimensions: {summary.expected_dimensions}")
    print(f"Entities: {summary.total_entities}")
    print(f"  with embeddings:    {summary.entities_with_embeddings}")
    print(f"  without embeddings: {summary.entities_without_embeddings}")
    for dimensions, count in sorted(summary.dimension_counts.items()):
        print(f"  {dimensions}D: {count}")
    print(f"Mismatched: {summary.mismatched_total}")
    for mismatch in summary.mismatches:
        if mismatch.has_embedding:
            print(f"  - {mismatch.entity_name} ({mismatch.current_dimensions}D)")
    if summary.mismatches_truncated:
        print(f"  ... sample limited to {summary.mismatch_sample_limit}")
    if summary.missing_truncated:
        print(f"Missing sample limited to {summary.missing_sample_limit}")
    print(f"Status: {summary.consistency_status.value}")


def diagnose_config(settings: Settings) -> int:
    registry = DimensionRegistry.from_settings(settings)
    report = registry.resolve()
    print(report.summary())
    recommendations = registry.recommendations(report)
    if recommendations:
        print()
        print("\n".join(recommendations))
    return 0 if report.is_valid else 1


async def diagnose_database(ctx: AppContext) -> int:
    diagnostics = await ctx.vector_store.diagnostics()
    print("=== Database ===")
    for key, value in diagnostics.items():
        print(f"{key}: {value}")
    validation = await ctx.analyzer.validate_index_definition(
        ctx.vector_store.index_name, ctx.vector_store.dimensions
    )
    print(validation.message)
    return 0 if validation.is_valid else 1


async def run_migrate(ctx: AppContext, args: argparse.Namespace) -> int:
    neo4j = ctx.settings.storage.neo4j
    target = args.dimensions or ctx.dimension_report.index_dimensions
    migration = ctx.migration

    if args.action == "analyze":
        print_state(await ctx.analyzer.analyze_embedding_state(target))
        return 0
    if args.action == "list-needing":
        names = await migration.list_entities_needing_embeddings(target, args.regenerate_all)
        print(f"{len(names)} entities need {target}D embeddings")
        for name in names:
            print(f"  - {name}")
        return 0

    if args.action == "backup":
        result = await migration.backup(dry_run=args.dry_run)
    elif args.action == "clear-mismatched":
        result = await migration.clear_mismatched(target, dry_run=args.dry_run)
    elif args.action == "clear-all":
        result = await migration.clear_all(dry_run=args.dry_run, skip_backup=args.skip_backup)
    elif args.action == "recreate-index":
        result = await migration.recreate_index(
            neo4j.vector_index,
            target,
            neo4j.similarity_function,
            label=neo4j.entity_label,
            dry_run=args.dry_run,
            wait_online=not args.no_wait,
        )
    elif args.action == "restore":
        result = await migration.restore(dry_run=args.dry_run)
    else:
        result = await migration.cleanup_backups(dry_run=args.dry_run)

    print(result.describe())
    if result.completed_at is not None:
        print(f"Completed at {result.completed_at} (use with reindex --skip-updated-since)")
    return 0


async def run_reindex(ctx: AppContext, args: argparse.Namespace) -> int:
    options = options_from_args(args, ctx.reindex_defaults)
    engine = ctx.reindex

    if args.action == "count":
        count = await engine.count_entities_for_reindex(options)
        print(f"{count} entities match")
        for entity in await engine.get_sample_entities(options):
            print(f"  - {entity.name} ({entity.entity_type})")
        seconds = engine.estimate_duration(count, options.batch_size, options.batch_delay)
        print(f"Estimated time: {seconds / 60:.1f} minutes")
        return 0

    if args.action == "delete":
        count = await engine.delete_embeddings(options)
        verb = "Would delete" if options.dry_run else "Deleted"
        print(f"{_label(options.dry_run)}{verb} {count} embeddings")
        return 0

    cancel = asyncio.Event()
    _install_cancel_handler(cancel)
    result = ReindexResult()
    if ctx.embedding_provider is None:
        raise ConfigurationError("reindex run requires an embedding provider")
    async for event in engine.run(ctx.embedding_provider, options, cancel_event=cancel):
        if isinstance(event, ReindexProgress):
            if event.processed % options.batch_size == 0 or event.processed == event.total:
                eta = event.estimated_time_remaining or 0.0
                print(
                    f"[{event.current_batch}/{event.total_batches}] "
                    f"{event.processed}/{event.total} ({event.percentage:.1f}%) "
                    f"ok={event.succeeded} failed={event.failed} skipped={event.skipped} "
                    f"ETA {eta / 60:.1f}m"
                )
        else:
            result = event

    if result.dry_run:
        print(f"{DRY_RUN_LABEL} Would reindex {result.total} entities")
        return 0
    print(
        f"Reindexed {result.succeeded}/{result.total} "
        f"(failed {result.failed}, skipped {result.skipped}) in {result.duration:.1f}s"
    )
    if result.cancelled:
        print("Run was cancelled before completion")
    for error in result.errors:
        print(f"  - {error.entity_name}: {error.error}")
    return 1 if result.failed or result.cancelled else 0


def _install_cancel_handler(cancel: asyncio.Event) -> None:
    def handler(sig: int, frame: Any) -> None:
        logger.info("shutdown_signal_received", signal=signal.Signals(sig).name)
        cancel.set()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


async def run(args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "diagnose" and args.target == "config":
        return diagnose_config(settings)

    ctx = build_context(
        settings, with_provider=args.command == "reindex" and args.action == "run"
    )
    try:
        if args.command == "diagnose":
            status = diagnose_config(settings) if args.target == "full" else 0
            print()
            status = max(status, await diagnose_database(ctx))
            if args.target == "full":
                print()
                print_state(
                    await ctx.analyzer.analyze_embedding_state(ctx.vector_store.dimensions)
                )
            return status
        if args.command == "migrate":
            return await run_migrate(ctx, args)
        return await run_reindex(ctx, args)
    finally:
        await ctx.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = apply_overrides(get_settings(), args)
        return asyncio.run(run(args, settings))
    except MementoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
