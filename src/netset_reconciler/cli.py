#!/usr/bin/env python3
"""Reconcile CLI runner.

Usage:
    netset-reconciler [--store PATH] [--interfaces PATH] [--config PATH]
                      [--set-name NAME] [--dry-run] [--no-apply] [--no-current] [-v]

Exit codes:
    0   Reconciled set committed (and applied unless --no-apply)
    1   Nothing was committed (lock, store or invariant failure)
    2   Committed but could not be applied
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .config.inventory import InterfaceInventory
from .config.settings import ReconcilerConfig
from .reconcile_engine.engine import ReconcileEngine, discard_changes, save_changes
from .reconcile_engine.errors import ApplyPending, EngineError
from .reconcile_engine.summary import summarize_report
from .store.catalog import StoreCatalog
from .store.locking import LockUnavailable, store_lock
from .store.preferences import PreferencesStore
from .utils.audit_log import ChangeTracker, setup_audit_logging
from .utils.logging_config import global_stats, setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netset-reconciler",
        description="Stage an IPv6-normalized copy of the current network set",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Preview what would change
    netset-reconciler --dry-run

    # Reconcile, commit and apply
    netset-reconciler --store /etc/netset-reconciler/preferences.yaml

    # Stage under a different name without switching to it
    netset-reconciler --set-name lab --no-current

Environment:
    NETSET_STORE, NETSET_INTERFACES, NETSET_SET_NAME    Paths and set name
    NETSET_LOG_LEVEL, NETSET_LOG_FILE                   Logging
""",
    )
    parser.add_argument("--config", type=Path, help="Settings YAML file")
    parser.add_argument("--store", type=Path, help="Preferences document")
    parser.add_argument("--interfaces", type=Path, help="Interface inventory YAML")
    parser.add_argument("--set-name", help="Name of the staged set")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without staging anything",
    )
    parser.add_argument(
        "--no-apply",
        action="store_true",
        help="Commit the new set without applying it",
    )
    parser.add_argument(
        "--no-current",
        action="store_true",
        help="Leave the current set unchanged",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )
    return parser


def load_config(args: argparse.Namespace) -> ReconcilerConfig:
    """Settings file and environment, then command-line overrides."""
    config = ReconcilerConfig.load(args.config)
    if args.store:
        config.store_path = args.store
    if args.interfaces:
        config.interfaces_path = args.interfaces
    if args.set_name:
        config.set_name = args.set_name
    if args.no_apply:
        config.apply_changes = False
    if args.no_current:
        config.make_current = False
    return config


def run(config: ReconcilerConfig, dry_run: bool = False) -> int:
    """Run one reconcile session and return the exit code."""
    inventory = InterfaceInventory(
        str(config.interfaces_path) if config.interfaces_path else None
    )
    store = PreferencesStore(config.store_path)
    catalog = StoreCatalog(store, inventory.get_interfaces())
    tracker = ChangeTracker(store_label=str(config.store_path))
    engine = ReconcileEngine(store, catalog, tracker)

    if dry_run:
        print(engine.preview())
        return 0

    with store_lock(
        store,
        wait=config.lock_wait,
        max_attempts=config.lock_attempts,
        min_wait=config.lock_min_wait,
        max_wait=config.lock_max_wait,
    ):
        try:
            report = engine.run(config.set_name, make_current=config.make_current)
            print(summarize_report(report))
            save_changes(store, tracker, apply=config.apply_changes)
        except ApplyPending:
            raise
        except EngineError:
            discard_changes(store)
            raise

    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the reconcile CLI."""
    args = build_parser().parse_args(argv)

    log_settings = setup_logging(logging.DEBUG if args.verbose else None)
    setup_audit_logging(str(log_settings.file.parent))

    try:
        config = load_config(args)
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"Invalid settings: {e}")
        return 1

    logger.info("=" * 60)
    logger.info(f"Reconciling {config.store_path} into set '{config.set_name}'")
    logger.info("=" * 60)

    try:
        code = run(config, dry_run=args.dry_run)
        logger.debug(global_stats.summary())
        return code
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except LockUnavailable as e:
        logger.error(str(e))
        return 1
    except ApplyPending as e:
        logger.error(f"{e}; run again or apply manually once the cause is fixed")
        return 2
    except EngineError as e:
        logger.error(f"Reconcile failed, nothing committed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
