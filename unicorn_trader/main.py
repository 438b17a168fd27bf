#!/usr/bin/env python3
"""
Unicorn Trader - CLI Entry Point

Examples:
    python -m unicorn_trader.main init-db
    python -m unicorn_trader.main run-all
    python -m unicorn_trader.main run-one ai_yolo_kid --ignore-market-hours
    python -m unicorn_trader.main persona ai_contrarian --deactivate
    python -m unicorn_trader.main serve --port 8000
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from unicorn_trader.config import Config, load_config
from unicorn_trader.ledger.ledger_store import AccountNotFoundError
from unicorn_trader.services import TradingServices, build_services

logger = logging.getLogger(__name__)


def _load(config_path: str) -> Config:
    if Path(config_path).exists():
        return load_config(config_path)
    logger.warning(f"Config file {config_path} not found; using defaults")
    return Config()


def _print(data):
    print(json.dumps(data, indent=2, default=str))


def _run_command(args, services: TradingServices) -> int:
    if args.command == 'init-db':
        created = services.initialize(with_roster=not args.no_roster)
        logger.info(f"Database ready at {services.config.database.path}; {created} personas provisioned")
        return 0

    if args.command == 'run-all':
        batch = services.coordinator.run_all(triggered_by=args.triggered_by)
        _print(batch.model_dump(mode="json"))
        return 0 if batch.skipped or batch.error is None else 1

    if args.command == 'run-one':
        outcome = services.coordinator.run_one(
            args.account_id, triggered_by=args.triggered_by, check_market=not args.ignore_market_hours
        )
        _print(outcome.model_dump(mode="json"))
        return 0 if outcome.error is None else 1

    if args.command == 'sync-prices':
        results = services.sync_reference_prices()
        _print(results)
        return 0 if all(r['success'] for r in results.values()) else 1

    if args.command == 'reset':
        _print(services.reset_account(args.account_id).model_dump(mode="json"))
        return 0

    if args.command == 'clone':
        _print(services.store.clone_persona(args.account_id).model_dump(mode="json"))
        return 0

    if args.command == 'persona':
        account = services.update_persona(
            args.account_id,
            is_active=args.is_active,
            strategy=args.strategy,
            personality_prompt=args.personality_prompt,
            catchphrase=args.catchphrase,
        )
        _print(account.model_dump(mode="json"))
        return 0

    if args.command == 'runs':
        _print([r.model_dump(mode="json") for r in services.run_guard.list_runs(args.limit)])
        return 0

    if args.command == 'serve':
        import uvicorn
        from unicorn_trader.api.server import create_app

        uvicorn.run(create_app(services), host=args.host, port=args.port)
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Unicorn AI investor trading simulator',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument('--config', type=str, default='config.yaml', help='Path to configuration file')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging level')

    subparsers = parser.add_subparsers(dest='command', required=True)

    init_db = subparsers.add_parser('init-db', help='Create tables, seed instruments and default personas')
    init_db.add_argument('--no-roster', action='store_true', help='Skip provisioning the default personas')

    run_all = subparsers.add_parser('run-all', help='Run every active persona for the current slot')
    run_all.add_argument('--triggered-by', default='operator', choices=['cron', 'manual', 'operator'])

    run_one = subparsers.add_parser('run-one', help='Run a single persona without claiming a slot')
    run_one.add_argument('account_id')
    run_one.add_argument('--triggered-by', default='manual', choices=['cron', 'manual', 'operator'])
    run_one.add_argument('--ignore-market-hours', action='store_true', help='Run even when the market is closed')

    subparsers.add_parser('sync-prices', help='Refresh reference prices from live quotes')

    reset = subparsers.add_parser('reset', help='Reset an account to the starting balance')
    reset.add_argument('account_id')

    clone = subparsers.add_parser('clone', help='Clone a persona with a fresh balance')
    clone.add_argument('account_id')

    persona = subparsers.add_parser('persona', help='Update a persona\'s settings')
    persona.add_argument('account_id')
    active = persona.add_mutually_exclusive_group()
    active.add_argument('--activate', dest='is_active', action='store_true', default=None)
    active.add_argument('--deactivate', dest='is_active', action='store_false', default=None)
    persona.add_argument('--strategy', help='Strategy archetype, e.g. CONTRARIAN')
    persona.add_argument('--personality-prompt', help='Custom guidelines; pass "" to clear')
    persona.add_argument('--catchphrase')

    runs = subparsers.add_parser('runs', help='Show recent run slots')
    runs.add_argument('--limit', type=int, default=20)

    serve = subparsers.add_parser('serve', help='Start the HTTP API')
    serve.add_argument('--host', default='127.0.0.1')
    serve.add_argument('--port', type=int, default=8000)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    load_dotenv()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    services = build_services(_load(args.config))
    try:
        exit_code = _run_command(args, services)
    except (AccountNotFoundError, ValueError) as e:
        logger.error(str(e))
        exit_code = 1
    finally:
        services.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
