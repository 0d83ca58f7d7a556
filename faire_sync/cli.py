import argparse
import logging
import sys

from faire_sync.db import create_db_engine, make_session_factory
from faire_sync.services.sync_logs import list_sync_logs
from faire_sync.services.sync_runner import ENTITY_CHOICES, FaireSyncRunner, RunSummary
from faire_sync.settings import get_settings

logger = logging.getLogger("faire_sync.cli")


def format_summary(summary: RunSummary, error_preview: int = 3) -> str:
    lines = ["", "=" * 60, "FAIRE SYNC SUMMARY", "=" * 60]
    for store in summary.stores:
        status = "FAILED" if store.failed else "OK"
        lines.append(f"\n{store.store_name} ({store.store_code}) [{status}]")
        lines.append(f"  Products:  {store.products}")
        lines.append(f"  Variants:  {store.variants}")
        lines.append(f"  Orders:    {store.orders}")
        lines.append(f"  Items:     {store.items}")
        lines.append(f"  Shipments: {store.shipments}")
        lines.append(f"  Linked:    {store.linked}")
        if store.errors:
            lines.append(f"  Errors:    {len(store.errors)}")
            for error in store.errors[:error_preview]:
                lines.append(f"    - {error}")
            if len(store.errors) > error_preview:
                lines.append(f"    ... and {len(store.errors) - error_preview} more")

    totals = summary.totals()
    lines.append("\n" + "-" * 60)
    lines.append("TOTALS: " + ", ".join(f"{key}={value}" for key, value in totals.items()))
    lines.append(f"Started:   {summary.started_at.isoformat() if summary.started_at else '-'}")
    lines.append(f"Completed: {summary.completed_at.isoformat() if summary.completed_at else '-'}")
    return "\n".join(lines)


def run_sync_command(args) -> int:
    settings = get_settings()
    engine = create_db_engine(settings)
    try:
        runner = FaireSyncRunner(settings, make_session_factory(engine))
        summary = runner.run_sync(store_codes=args.store, entity=args.entity)
    except Exception as e:
        logger.exception(f"[CLI] Critical error: {e}")
        return 1
    finally:
        engine.dispose()

    if not summary.stores:
        logger.warning("[CLI] No active stores matched")
    print(format_summary(summary, settings.error_preview_count))
    return 1 if summary.has_failures else 0


def sync_logs_command(args) -> int:
    settings = get_settings()
    engine = create_db_engine(settings)
    try:
        with make_session_factory(engine)() as session:
            rows = list_sync_logs(session, store_code=args.store, limit=args.limit)
            for log, code in rows:
                print(
                    f"{log.started_at.isoformat()}  {code:<12} {log.entity_type:<10} {log.status:<10} "
                    f"processed={log.processed_records} failed={log.failed_records}"
                )
                if log.error_message:
                    print(f"    {log.error_message}")
    finally:
        engine.dispose()
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Faire marketplace sync CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    sync_parser = subparsers.add_parser("run-sync", help="Sync catalogs and orders for active stores")
    sync_parser.add_argument("--store", action="append", help="Store code to sync (repeatable, default: all active)")
    sync_parser.add_argument("--entity", choices=ENTITY_CHOICES, default="all")

    logs_parser = subparsers.add_parser("sync-logs", help="Show recent sync runs")
    logs_parser.add_argument("--store", help="Only show runs for this store code")
    logs_parser.add_argument("--limit", type=int, default=50)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    )

    if args.command == "run-sync":
        return run_sync_command(args)
    if args.command == "sync-logs":
        return sync_logs_command(args)
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
