from __future__ import annotations
import argparse, logging, os, time
from typing import List

from .adapter import BittrexAdapter
from .config import AdapterConfig, Credentials
from .events import Topic
from .parsers import market_from_pair
from .utils import to_json

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def poll_once(api: BittrexAdapter, pairs: List[str], with_wallet: bool):
    for pair in pairs:
        tick = api.get_ticker(market_from_pair(pair))
        if tick is None:
            continue
        logging.info("[%s] last=%s ask=%s bid=%s", pair, tick.close, tick.buy_price, tick.sell_price)
    if with_wallet:
        wallet = api.get_wallet()
        if wallet is not None:
            logging.info("[BAL] %s", to_json(wallet))
        orders = api.get_open_orders()
        if orders is not None:
            logging.info("[ORD] %d open orders", len(orders))


def main(argv=None):
    ap = argparse.ArgumentParser(description="Poll Bittrex tickers (and wallet when keys are set).")
    ap.add_argument("--market", action="append", default=[], help="market name, e.g. USDT-BTC (repeatable)")
    ap.add_argument("--once", action="store_true", help="run a single poll cycle and exit")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    cfg = AdapterConfig.from_env()
    creds = Credentials.from_env()
    pairs = args.market or ["USDT-BTC"]

    api = BittrexAdapter(cfg, creds)
    api.subscribe(Topic.ERROR, lambda exc: logging.error("[ERR] %s", exc))
    logging.info("Bittrex poller start | markets=%s | every %ss | private=%s",
                 ", ".join(pairs), cfg.polling_speed, creds.present)
    api.connect()
    try:
        while True:
            poll_once(api, pairs, creds.present)
            if args.once:
                break
            time.sleep(cfg.polling_speed)
    except KeyboardInterrupt:
        logging.info("Bittrex poller stopped")
    finally:
        api.disconnect()
        api.close()


if __name__ == "__main__":
    main()
