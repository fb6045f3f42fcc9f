"""
Main entrypoint: API server, batch refresh, or rank recompute.

    python main.py serve                      # FastAPI on API_HOST:API_PORT
    python main.py refresh 0xabc... 0xdef...  # aggregate addresses sequentially
    python main.py refresh --all              # re-aggregate every stored address
    python main.py recompute-ranks

Env: EXPLORER_API_URL, DATABASE_URL / MEGARANK_DB_PATH, API_HOST, API_PORT, LOG_LEVEL, LOG_FORMAT, etc.

API-only: uvicorn backend_megarank.api_server.app:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import sys

# Configure structured JSON logging before other imports that may log
from backend_megarank.megarank_logging import get_logger

logger = get_logger("main")


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from backend_megarank.api_server import create_app
    from backend_megarank.config import get_settings

    settings = get_settings()
    host = args.host or settings.api.host
    port = args.port or settings.api.port
    logger.info("main_serve", host=host, port=port)
    uvicorn.run(create_app(settings=settings), host=host, port=port, log_level="info")
    return 0


async def _refresh(addresses: list[str], refresh_all: bool, delay: float | None) -> int:
    from backend_megarank.aggregation import ActivityService
    from backend_megarank.config import get_settings

    service = ActivityService.from_settings(get_settings())
    service.store.init_db()
    try:
        targets = list(addresses)
        if refresh_all:
            targets.extend(service.store.list_addresses())
        if not targets:
            logger.error("main_config_error", message="No addresses given: pass addresses or --all")
            return 1
        done = await service.aggregate_batch(targets, delay_sec=delay)
        for record in done:
            print(f"{record.address}\tscore={record.base_score}\trank={record.rank}\ttxs={record.total_txs}")
        return 0 if len(done) == len(targets) else 2
    finally:
        await service.aclose()
        service.store.dispose()


async def _recompute() -> int:
    from backend_megarank.aggregation import RankRecalculator
    from backend_megarank.config import get_settings
    from backend_megarank.database import ActivityStore

    store = ActivityStore(get_settings().store.database_url)
    store.init_db()
    try:
        total = await RankRecalculator(store).recompute_all()
        print(f"ranked {total} addresses")
        return 0
    finally:
        store.dispose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="MegaRank activity scoring service")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    refresh = sub.add_parser("refresh", help="Aggregate one or more addresses now")
    refresh.add_argument("addresses", nargs="*")
    refresh.add_argument("--all", action="store_true", help="Also refresh every stored address")
    refresh.add_argument("--delay", type=float, default=None, help="Seconds between addresses")

    sub.add_parser("recompute-ranks", help="Recompute dense ranks for all stored addresses")

    args = parser.parse_args(argv)
    if args.command in (None, "serve"):
        if args.command is None:
            args.host, args.port = None, None
        return _serve(args)
    if args.command == "refresh":
        return asyncio.run(_refresh(args.addresses, args.all, args.delay))
    if args.command == "recompute-ranks":
        return asyncio.run(_recompute())
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
