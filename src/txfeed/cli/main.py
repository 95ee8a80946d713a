from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import sys
from typing import Optional

from txfeed.config import settings
from txfeed.core.errors import TxFeedError
from txfeed.core.models import Portfolio
from txfeed.services.grouping import group_by_date
from txfeed.services.history_service import HistoryService
from txfeed.services.pagination import PaginationController
from txfeed.services.portfolio import PortfolioService
from txfeed.services.price_annotator import PriceAnnotator
from txfeed.io.output_writer import write_history_json, write_summary_md

from txfeed.adapters.chain.rpc_chain_adapter import RpcChainAdapter
from txfeed.adapters.chain.static_chain_adapter import StaticChainAdapter
from txfeed.adapters.pricing.price_adapter import PriceAdapter
from txfeed.adapters.pricing.static_price_adapter import StaticPriceAdapter


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="txfeed", description="Solana wallet activity feed (SOL + SPL tokens)")
    p.add_argument("--address", required=False, help="Wallet address to load history for")
    p.add_argument("--pages", type=int, default=1, help="Number of history pages to load")
    p.add_argument("--latest", action="store_true", help="Only show the most recent transaction")
    p.add_argument("--out", default="out", help="Output folder")
    p.add_argument("--rpc-url", default=settings.SOLANA_RPC_URL, help="Solana JSON-RPC endpoint")
    p.add_argument("--use-static", action="store_true", help="Use static adapters (dev/testing)")
    p.add_argument("--no-prices", action="store_true", help="Skip the price lookup and use default prices")
    p.add_argument("--portfolio", action="store_true", help="Include SOL/USDC balances in the output")
    return p


def _ts() -> str:
    return dt.datetime.now().strftime("%H:%M:%S")


def _make_progress_reporter(address: str):
    def progress(event: str, data: dict) -> None:
        if event == "start":
            print(f"[{_ts()}] Loading history for {address} • {data['pages']} page(s)")
            return
        if event == "page":
            more = "more available" if data["has_more"] else "end of history"
            print(f"[{_ts()}] Page {data['page']} • {data['events']} event(s) total • {more}")
            return
        if event == "done":
            print(f"[{_ts()}] Done • {data['events']} event(s) in {data['sections']} section(s)")
            return
        if event == "error":
            print(f"[{_ts()}] Error: {data.get('message', 'Unknown error')}", file=sys.stderr)

    return progress


async def _run(args: argparse.Namespace) -> int:
    progress = _make_progress_reporter(args.address)

    # Ports
    if args.use_static:
        chain = StaticChainAdapter()
        adapter_label = "StaticChainAdapter (dev/testing)"
    else:
        chain = RpcChainAdapter(rpc_url=args.rpc_url)
        adapter_label = f"RpcChainAdapter ({args.rpc_url})"

    if args.use_static or args.no_prices:
        prices = StaticPriceAdapter(settings.DEFAULT_PRICES)
    else:
        prices = PriceAdapter()

    history = HistoryService(chain)
    annotator = PriceAnnotator(prices)
    print(f"Adapter: {adapter_label}")

    price_task: Optional[asyncio.Task] = None
    try:
        portfolio: Optional[Portfolio] = None
        price_task = asyncio.create_task(annotator.refresh())

        if args.latest:
            latest = await history.fetch_latest(args.address)
            events = [latest] if latest is not None else []
            has_more = False
        else:
            progress("start", {"pages": args.pages})
            pager = PaginationController(history, args.address)
            await pager.refresh()
            page = 1
            while True:
                state = pager.state
                if state.error:
                    progress("error", {"message": state.error})
                    return 1
                progress("page", {"page": page, "events": len(state.events), "has_more": state.has_more})
                if page >= args.pages or not state.has_more:
                    break
                await pager.load_more()
                page += 1
            events = pager.events
            has_more = pager.has_more

        await price_task
        if args.portfolio:
            portfolio = await PortfolioService(chain, annotator).get_portfolio(args.address, refresh_prices=False)
    except TxFeedError as exc:
        progress("error", {"message": f"{exc.__class__.__name__}: {exc}"})
        return 1
    finally:
        if price_task is not None and not price_task.done():
            price_task.cancel()
            await asyncio.gather(price_task, return_exceptions=True)
        if isinstance(chain, RpcChainAdapter):
            await chain.aclose()

    priced = annotator.annotate(events)
    sections = group_by_date(events)
    progress("done", {"events": len(events), "sections": len(sections)})

    # Outputs
    print("Writing outputs...")
    json_path = write_history_json(args.address, priced, sections, args.out, has_more=has_more, portfolio=portfolio)
    summary_path = write_summary_md(args.address, priced, sections, args.out, portfolio=portfolio)
    print(f"Wrote: {json_path}")
    print(f"Wrote: {summary_path}")
    return 0


def main() -> int:
    args = build_arg_parser().parse_args()

    if not args.address:
        print("Missing --address", file=sys.stderr)
        return 2
    if args.pages < 1:
        print("--pages must be >= 1", file=sys.stderr)
        return 2

    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
