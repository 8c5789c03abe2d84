import logging
import sys

from .cache import CLEAN, PageCache, append_jsonl
from .classify import classify
from .config import get_settings
from .fetcher import Fetcher
from .resolver import Resolver
from .schema import Found, StoreContext

OUT = CLEAN / "lookups.jsonl"


def build_resolver(settings=None, use_cache: bool = True) -> Resolver:
    settings = settings or get_settings()
    cache = PageCache(settings.cache_dir, settings.cache_ttl_s) if use_cache else None
    return Resolver(Fetcher.from_settings(settings, cache=cache), settings)


def main(raw: str, store_id=None, prior_decision=None):
    settings = get_settings()
    resolver = build_resolver(settings)
    identifier = classify(raw, settings.retailer_domain)
    store = StoreContext(store_id=store_id or settings.default_store_id)

    print(f"[LOOKUP] {identifier.kind} → {raw!r} @ store {store.store_id}")
    outcome = resolver.resolve(identifier, store, prior_decision)

    if isinstance(outcome, Found):
        rec = outcome.record
        print(f"[FOUND] {rec.sku} | {rec.name} | {rec.price} | {rec.stock.stock_text}")
        for line in rec.display_specs:
            print(line)
        append_jsonl(OUT, outcome.record.model_dump(mode="json"))
    else:
        print(f"[{outcome.kind.upper()}] {outcome.model_dump_json()}")
    return outcome


if __name__ == "__main__":
    # python -m microscan.lookup 679294            -> look up a SKU at the default store
    # python -m microscan.lookup 679294 101        -> same, at store 101
    # python -m microscan.lookup 679294 101 accept-redirect
    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) < 2:
        sys.exit("usage: python -m microscan.lookup <sku|upc|url|text> [store_id] [accept-redirect|reject]")
    main(sys.argv[1], *sys.argv[2:4])
