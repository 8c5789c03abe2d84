import logging
from typing import Optional, Tuple

import tldextract

from .adapters.adapter_microcenter import extract, extract_sku
from .adapters.search_page import (
    detail_url,
    find_product_id,
    is_best_guess,
    is_blocked,
    is_no_results,
    looks_blocked,
    parse_hits,
    product_id_from_url,
    redirect_banner,
    search_url,
    with_store,
)
from .config import Settings, get_settings
from .fetcher import BlockedError, FetchedPage, FetchError
from .images import build_image_urls
from .normalizer import normalize
from .rules import Page
from .schema import (
    Blocked,
    Found,
    Mismatch,
    NoResults,
    ProductUrl,
    SearchListing,
    SkuCode,
    StoreContext,
    TransientError,
    nominal_sku,
    search_text,
)

logger = logging.getLogger(__name__)

# bundled public suffix snapshot, no network
_tld = tldextract.TLDExtract(suffix_list_urls=())


class LookupCancelled(Exception):
    pass


def registered_domain(url: str) -> str:
    ext = _tld(url)
    return f"{ext.domain}.{ext.suffix}".lower() if ext.suffix else ext.domain.lower()


class Resolver:
    """
    Turns an Identifier into a ResolutionOutcome: catalog search, then the
    detail page, then field extraction. Holds no per-lookup state; a
    redirect the user has to confirm comes back in as prior_decision.
    """

    def __init__(self, fetcher, settings: Optional[Settings] = None):
        self.fetcher = fetcher
        self.settings = settings or get_settings()

    def _store(self, store: Optional[StoreContext]) -> StoreContext:
        return store or StoreContext(store_id=self.settings.default_store_id)

    def _fetch(self, url: str, cancel=None, referer: Optional[str] = None) -> FetchedPage:
        if cancel is not None and cancel.is_set():
            raise LookupCancelled(url)
        return self.fetcher.get(url, referer=referer or self.settings.site + "/")

    def resolve(self, identifier, store: Optional[StoreContext] = None,
                prior_decision: Optional[str] = None, cancel=None):
        """
        prior_decision answers an earlier Mismatch. "accept-redirect" looks up
        the found SKU instead; "reject" never fetches the found product, but
        since nothing is remembered between calls it repeats the original
        search (and detail fetch, when that is where the mismatch showed up)
        to return the same Mismatch.
        """
        store = self._store(store)
        try:
            outcome = self._resolve(identifier, store, prior_decision, cancel)
        except BlockedError as exc:
            outcome = Blocked(message=f"Blocked by bot protection ({exc})")
        except FetchError as exc:
            outcome = TransientError(message=str(exc))
        logger.info("resolve %s %r -> %s", identifier.kind, search_text(identifier), outcome.kind)
        return outcome

    def _direct_target(self, identifier, store: StoreContext) -> Optional[Tuple[str, Optional[str]]]:
        """(url, product id or None) for URL identifiers that need no catalog search."""
        if not isinstance(identifier, ProductUrl):
            return None
        url = identifier.value
        if "://" not in url:
            url = "https://" + url
        product_id = product_id_from_url(url)
        if registered_domain(url) == self.settings.retailer_domain.lower():
            return with_store(url, store.store_id), product_id
        if product_id:
            return detail_url(self.settings.site, product_id, store.store_id), product_id
        return None

    def _on_mismatch(self, identifier, searched: str, found: str, store, prior_decision, cancel):
        """None means carry on with the found product."""
        if not isinstance(identifier, SkuCode):
            logger.info("accepting redirect %s -> %s for %s input", searched, found, identifier.kind)
            return None
        if prior_decision == "accept-redirect":
            logger.info("caller accepted redirect %s -> %s", searched, found)
            return self._resolve(SkuCode(value=found), store, None, cancel)
        return Mismatch(searched=searched, found=found)

    def _resolve(self, identifier, store: StoreContext, prior_decision, cancel):
        site = self.settings.site
        searched = search_text(identifier)
        if not searched:
            return NoResults(searched="")
        nominal = nominal_sku(identifier)

        direct = self._direct_target(identifier, store)
        if direct:
            first_url, product_id = direct
        else:
            first_url, product_id = search_url(site, searched, store.store_id), None
        first = self._fetch(first_url, cancel)

        if product_id:
            detail = first
        elif product_id_from_url(first.url):
            # search landed straight on a product page
            product_id, detail = product_id_from_url(first.url), first
        else:
            results = Page(first.text, first.url)
            if is_no_results(results):
                return NoResults(searched=searched)
            if is_blocked(results):
                return Blocked()

            banner = redirect_banner(results)
            if banner and nominal and banner[1] != nominal:
                decided = self._on_mismatch(identifier, nominal, banner[1], store, prior_decision, cancel)
                if decided is not None:
                    return decided

            if is_best_guess(results, banner[1] if banner else searched):
                logger.info("search for %r only returned a best guess", searched)
                return NoResults(searched=searched)

            ref = find_product_id(results)
            if not ref:
                if looks_blocked(results):
                    return Blocked()
                return TransientError(message="Product ID not found")
            product_id, path = ref
            detail = self._fetch(detail_url(site, product_id, store.store_id, path), cancel, referer=first.url)

        page = Page(detail.text, detail.url)
        actual = extract_sku(page)
        if is_blocked(page) or (not actual and looks_blocked(page)):
            logger.warning("bot protection page at %s", detail.url)
            return Blocked()
        if nominal and actual and actual != nominal:
            decided = self._on_mismatch(identifier, nominal, actual, store, prior_decision, cancel)
            if decided is not None:
                return decided

        sku = actual or nominal or ""
        fields = extract(page, sku, store)
        images = build_image_urls(product_id, sku, self.settings.images)
        return Found(record=normalize(fields, sku, product_id, detail.url, images))

    def search(self, query: str, store: Optional[StoreContext] = None, cancel=None) -> SearchListing:
        """One catalog search, parsed into result cards."""
        store = self._store(store)
        query = query.strip()
        page = self._fetch(search_url(self.settings.site, query, store.store_id), cancel)
        if product_id_from_url(page.url):
            return SearchListing(query=query, single_url=with_store(page.url.split("?")[0], store.store_id))
        results = Page(page.text, page.url)
        if is_blocked(results):
            raise BlockedError("bot protection page", page.url)
        hits = parse_hits(results, self.settings.site, store.store_id, self.settings.images)
        logger.info("search %r -> %d hits", query, len(hits))
        return SearchListing(query=query, hits=hits)
