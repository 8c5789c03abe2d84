"""
Rules for the catalog search response: terminal markers, the canonical
product id, the "showing results for" redirect banner and result cards.
"""
import re
from typing import List, Optional, Tuple
from urllib.parse import parse_qsl, quote_plus, urlencode, urlsplit, urlunsplit

from ..images import IMAGE_HOST, image_url
from ..rules import Page, clean_text, first_match
from ..schema import SearchHit
from .adapter_microcenter import display_name

PRODUCT_PATH_RE = re.compile(r"/product/(\d+)(?:/|$|\?)", re.I)

NO_MATCHES_RE = re.compile(r"Oh no!.*?couldn(?:'|&#39;|&#x27;|’)t find any matches", re.I | re.S)
ZERO_RESULTS_RE = re.compile(r"searchInfoBar[^>]*>[^<]*\b0\s+Results?\s+for", re.I)
REDIRECT_BANNER_RE = re.compile(r"You searched for[^\d]+(\d+)[^\d]+Showing Results For[^\d]+(\d+)", re.I)

# Interstitial / challenge pages. Loose markers are only trusted once the
# page also failed to yield a product id.
BLOCKED_MARKERS = (
    "Access Denied",
    "Attention Required! | Cloudflare",
    "cf-browser-verification",
    "Just a moment...",
)
LOOSE_BLOCKED_MARKERS = ("Access Denied", "Cloudflare")

RESULT_START_MARKERS = ("Sort by:", "sort by:", "Sort By:", 'class="result_list"', "items found")
RESULT_LINK_RE = re.compile(r"href=[\"'](/product/(\d+)/[^\"'?#]+)", re.I)
DATA_ID_RE = re.compile(r"data-id=[\"'](\d+)[\"']", re.I)
CARD_BEFORE, CARD_AFTER = 300, 800
MAX_HITS = 24


def search_url(site: str, text: str, store_id: str) -> str:
    return f"{site}/search/search_results.aspx?Ntt={quote_plus(text)}&searchButton=search&storeid={store_id}"


def detail_url(site: str, product_id: str, store_id: str, path: Optional[str] = None) -> str:
    path = path or f"/product/{product_id}/"
    return f"{site}{path}?storeid={store_id}"


def with_store(url: str, store_id: str) -> str:
    """Set storeid on a product URL, keeping the rest of its query."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k.lower() != "storeid"]
    query.append(("storeid", store_id))
    return urlunsplit(parts._replace(query=urlencode(query), fragment=""))


def product_id_from_url(url: Optional[str]) -> Optional[str]:
    m = PRODUCT_PATH_RE.search(url or "")
    return m.group(1) if m else None


def is_no_results(page: Page) -> bool:
    return bool(NO_MATCHES_RE.search(page.html) or ZERO_RESULTS_RE.search(page.html))


def is_blocked(page: Page) -> bool:
    return any(marker in page.html for marker in BLOCKED_MARKERS)


def looks_blocked(page: Page) -> bool:
    return any(marker in page.html for marker in LOOSE_BLOCKED_MARKERS)


def redirect_banner(page: Page) -> Optional[Tuple[str, str]]:
    """(searched, shown) SKUs when the search swapped the query for another SKU."""
    m = REDIRECT_BANNER_RE.search(page.html)
    return (m.group(1), m.group(2)) if m else None


def results_region(html: str) -> str:
    # Result cards follow the sort control; links above it are site navigation.
    for marker in RESULT_START_MARKERS:
        idx = html.find(marker)
        if idx > -1:
            return html[idx:]
    return html


# --------------------------------------------------------------------------- #
# Canonical product id. Each rule returns (product_id, detail path or None).
# --------------------------------------------------------------------------- #

def _id_from_json(page: Page):
    m = page.search(r"['\"]productId['\"]\s*:\s*['\"](\d+)['\"]")
    return (m.group(1), None) if m else None


def _id_from_data_attr(page: Page):
    node = page.soup.find(attrs={"data-id": re.compile(r"^\d+$")})
    return (node["data-id"], None) if node else None


def _id_from_hidden_field(page: Page):
    node = page.soup.find("input", attrs={"name": "productId", "value": re.compile(r"^\d+$")})
    return (node["value"], None) if node else None


def _id_from_result_link(page: Page):
    m = RESULT_LINK_RE.search(results_region(page.html))
    return (m.group(2), m.group(1)) if m else None


PRODUCT_ID_RULES = [
    _id_from_json,
    _id_from_data_attr,
    _id_from_hidden_field,
    _id_from_result_link,
]


def find_product_id(page: Page) -> Optional[Tuple[str, Optional[str]]]:
    return first_match(PRODUCT_ID_RULES, page, "product_id")


def is_best_guess(page: Page, searched: str) -> bool:
    """
    True when the catalog had no real match and padded the page with a guess:
    the first result card never mentions what was searched, or there is no
    result link and several unrelated product ids are on the page.
    """
    region = results_region(page.html)
    link = RESULT_LINK_RE.search(region)
    if link:
        card = region[max(0, link.start() - CARD_BEFORE):link.start() + CARD_AFTER]
        return searched.lower() not in card.lower()
    return len(set(DATA_ID_RE.findall(page.html))) > 1


# --------------------------------------------------------------------------- #
# Result cards
# --------------------------------------------------------------------------- #

CARD_ANCHOR_RE = re.compile(r"Add SKU:(\d+) to wishlist")
CARD_LINK_RE = re.compile(r"<a[^>]*class=\"[^\"]*productClickItemV2[^\"]*\"([^>]*)href=\"(/product/[^\"?]+)", re.I)
CARD_STOCK_RE = re.compile(r"(\d+\+?\s+IN\s+STOCK[^<\"]*)", re.I)
CARD_SPAN = 900


def _attr(attrs: str, name: str) -> str:
    m = re.search(rf'{name}="([^"]*)"', attrs, re.I)
    return clean_text(m.group(1)) if m else ""


def parse_hits(page: Page, site: str, store_id: str, image_host: str = IMAGE_HOST) -> List[SearchHit]:
    region = results_region(page.html)
    hits: List[SearchHit] = []
    seen = set()
    for anchor in CARD_ANCHOR_RE.finditer(region):
        if len(hits) >= MAX_HITS:
            break
        sku = anchor.group(1)
        if sku in seen:
            continue
        card = region[anchor.start():anchor.start() + CARD_SPAN]
        link = CARD_LINK_RE.search(card)
        if not link:
            continue
        attrs, href = link.group(1), link.group(2)
        name = display_name(_attr(attrs, "data-name"), _attr(attrs, "data-brand"))
        if not name:
            continue
        price = _attr(attrs, "data-price")
        product_id = _attr(attrs, "data-id")
        stock = CARD_STOCK_RE.search(card)
        hits.append(SearchHit(
            sku=sku,
            name=name,
            price=f"${price}" if price else None,
            url=detail_url(site, product_id, store_id, path=href),
            image_url=image_url(product_id, sku, 1, "front", image_host) if product_id else None,
            stock_text=stock.group(1).strip() if stock else None,
        ))
        seen.add(sku)
    return hits
