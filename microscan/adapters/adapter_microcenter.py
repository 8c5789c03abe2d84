import logging
import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from ..rules import Page, clean_text, first_match, node_text, regex_rule
from ..schema import ProductFields, Reviews, ServiceOffer, SpecEntry, StockInfo

logger = logging.getLogger(__name__)

RETAILER_RE = re.compile(r"micro\s?center", re.I)
TITLE_SUFFIX_RE = re.compile(r"\s*[-|]\s*Micro\s?Center.*$", re.I)
MONEY_RE = re.compile(r"([0-9][0-9,]*(?:\.[0-9]+)?)")

INSTALLATION_RE = re.compile(r"Installation Service", re.I)
PLAN_OFFER_RE = re.compile(r"(?:\d+\s*Year|Replacement|Protection|Extended|Extension).*Plan", re.I)

MIN_FEATURE_LEN = 10
MAX_CELL_LABEL = 50
MAX_CELL_VALUE = 200


def _has_class(fragment: str):
    return lambda c: bool(c) and fragment in c


def _money(text: Optional[str]) -> Optional[str]:
    m = MONEY_RE.search(text or "")
    return f"${m.group(1).replace(',', '')}" if m else None


def _amount(display: Optional[str]) -> Optional[Decimal]:
    try:
        return Decimal(display.lstrip("$")) if display else None
    except InvalidOperation:
        return None


def display_name(name: str, brand: str) -> str:
    """Prefix the brand unless the name already carries it."""
    if brand and name and brand.lower() not in name.lower():
        return f"{brand} {name}"
    return name or brand


# --------------------------------------------------------------------------- #
# Name / brand
# --------------------------------------------------------------------------- #

def _name_from_title_heading(page):
    return node_text(page.soup.find("h2", class_=_has_class("productTi")))

def _name_from_h1_data(page):
    return clean_text(page.soup.find("h1", attrs={"data-name": True})["data-name"])

def _name_from_h1(page):
    return node_text(page.soup.find("h1"))

def _name_from_og_title(page):
    meta = page.soup.find("meta", attrs={"property": "og:title"})
    return TITLE_SUFFIX_RE.sub("", clean_text(meta["content"]))

def _name_from_title_tag(page):
    return TITLE_SUFFIX_RE.sub("", node_text(page.soup.title))

NAME_RULES = [
    _name_from_title_heading,
    _name_from_h1_data,
    _name_from_h1,
    _name_from_og_title,
    _name_from_title_tag,
]


def _not_retailer(brand: str) -> Optional[str]:
    return None if RETAILER_RE.search(brand) else brand

def _brand_from_data_attr(page):
    return _not_retailer(clean_text(page.soup.find(attrs={"data-brand": True})["data-brand"]))

def _brand_from_span(page):
    return _not_retailer(node_text(page.soup.find("span", class_=_has_class("brand"))))

BRAND_RULES = [_brand_from_data_attr, _brand_from_span]


# --------------------------------------------------------------------------- #
# Price
# --------------------------------------------------------------------------- #

def _price_from_pricing_content(page):
    return _money(page.soup.find("span", id="pricing")["content"])

def _price_from_pricing_text(page):
    return _money(node_text(page.soup.find("span", id="pricing")))

def _price_from_data_attr(page):
    return _money(page.soup.find(attrs={"data-price": True})["data-price"])

PRICE_RULES = [_price_from_pricing_content, _price_from_pricing_text, _price_from_data_attr]


def _strike_with_original(page):
    for strike in page.soup.find_all("strike"):
        m = re.search(r"Original price\s*\$?\s*([0-9][0-9,.]*)", node_text(strike), re.I)
        if m:
            return strike, _money(m.group(1))
    return None

def _sale_pair(page) -> Optional[Tuple[str, str]]:
    found = _strike_with_original(page)
    if not found:
        return None
    strike, original = found
    badge = strike.find_next_sibling("span")
    m = re.match(r"Save\s*\$?\s*([0-9][0-9,.]*)", node_text(badge), re.I)
    return (original, _money(m.group(1))) if m else None

def _original_from_strike(page):
    found = _strike_with_original(page)
    return found[1] if found else None

def _savings_from_badge(page):
    badge = page.soup.find("span", class_=_has_class("savings"))
    m = re.match(r"Save\s*\$?\s*([0-9][0-9,.]*)", node_text(badge), re.I)
    return _money(m.group(1)) if m else None

SALE_PAIR_RULES = [_sale_pair]
ORIGINAL_PRICE_RULES = [_original_from_strike]
SAVINGS_RULES = [_savings_from_badge]


def _derive_savings(original: Optional[str], current: Optional[str]) -> Optional[str]:
    was, now = _amount(original), _amount(current)
    if was is None or now is None or was <= now:
        return None
    return f"${was - now:.2f}"


# --------------------------------------------------------------------------- #
# Stock / location
# --------------------------------------------------------------------------- #

OUT_OF_STOCK_RE = re.compile(r"out\s*of\s*stock|sold\s*out", re.I)
IN_STOCK_RE = re.compile(r"in\s*stock", re.I)


def _stock_from_inventory(page) -> Optional[Tuple[str, str]]:
    for cnt in page.soup.find_all("span", class_=_has_class("inventoryCnt")):
        store = cnt.find_next_sibling("span")
        if store is not None and any("storeName" in c for c in store.get("class", [])):
            return node_text(cnt), node_text(store)
    return None

STOCK_RULES = [_stock_from_inventory]


def parse_stock(count_text: str, store_name: Optional[str] = None) -> StockInfo:
    """
    Normalise an inventory string such as "25+ in Stock" or "SOLD OUT".
    An explicit out-of-stock marker wins over any number on the page.
    """
    count, text, in_stock = 0, None, False
    m = re.search(r"(\d+)\s*(\+)?", count_text)
    if m:
        count = int(m.group(1))
        in_stock = count > 0
        text = f"{count}{'+' if m.group(2) else ''} in Stock"

    if OUT_OF_STOCK_RE.search(count_text):
        count, text, in_stock = 0, "0 in Stock", False
    elif not m and IN_STOCK_RE.search(count_text):
        count, text, in_stock = 1, "1 in Stock", True

    return StockInfo(stock_text=text, stock_count=count, in_stock=in_stock, store_name=store_name or None)


def _location_from_span(page):
    for span in page.soup.find_all("span"):
        lead = span.contents[0] if span.contents else None
        if not isinstance(lead, str):
            continue
        m = re.match(r"\s*Located In\s+(.+)", lead, re.I | re.S)
        if not m:
            continue
        location = clean_text(m.group(1))
        other = node_text(span.find("span", class_=_has_class("otherLocation")))
        if other:
            location = location + other if other[0] in ",;" else f"{location} {other}"
        return location
    return None

LOCATION_RULES = [_location_from_span, regex_rule(r"Located In\s+([^<]+)", name="_location_from_text")]


# --------------------------------------------------------------------------- #
# Reviews
# --------------------------------------------------------------------------- #

def _rating(value) -> float:
    return min(5.0, max(0.0, float(value)))

def _reviews_from_aggregate(page):
    m = page.search(
        r'"aggregateRating"\s*:\s*\{[^}]*"ratingValue"\s*:\s*"?([0-9.]+)"?[^}]*"reviewCount"\s*:\s*"?(\d+)"?'
    )
    return Reviews(rating=_rating(m.group(1)), count=int(m.group(2))) if m else None

def _rating_from_json(page):
    m = page.search(r'"ratingValue"\s*:\s*"?([0-9.]+)')
    return _rating(m.group(1)) if m else None

def _rating_from_itemprop(page):
    node = page.soup.find(attrs={"itemprop": "ratingValue"})
    return _rating(node.get("content") or node_text(node))

def _count_from_json(page):
    m = page.search(r'"reviewCount"\s*:\s*"?(\d+)')
    return int(m.group(1)) if m else None

def _count_from_itemprop(page):
    node = page.soup.find(attrs={"itemprop": "reviewCount"})
    raw = (node.get("content") or node_text(node)).replace(",", "").strip()
    return int(raw) if raw.isdigit() else None

REVIEW_PAIR_RULES = [_reviews_from_aggregate]
RATING_RULES = [_rating_from_json, _rating_from_itemprop]
REVIEW_COUNT_RULES = [_count_from_json, _count_from_itemprop]


# --------------------------------------------------------------------------- #
# Services
# --------------------------------------------------------------------------- #

def _offer(el, name_re) -> Optional[ServiceOffer]:
    name = clean_text(el.get("data-name"))
    price = (el.get("data-price") or "").strip()
    if not name_re.search(name) or not re.fullmatch(r"[0-9]+(?:\.[0-9]+)?", price):
        return None
    return ServiceOffer(name=name, price=float(price))


def extract_installation(page: Page) -> List[ServiceOffer]:
    offers = []
    for el in page.soup.find_all(["input", "button"], attrs={"data-name": True}):
        # ids starting with "ap" belong to the product; others are header links
        if not (el.get("id") or "").lower().startswith("ap"):
            continue
        offer = _offer(el, INSTALLATION_RE)
        if offer:
            offers.append(offer)
    return offers


def extract_protection(page: Page) -> List[ServiceOffer]:
    # the same radio options are rendered more than once on a page
    seen, offers = set(), []
    for el in page.soup.find_all("input", attrs={"data-name": True}):
        if (el.get("type") or "").lower() != "radio":
            continue
        offer = _offer(el, PLAN_OFFER_RE)
        if offer and (offer.name, offer.price) not in seen:
            seen.add((offer.name, offer.price))
            offers.append(offer)
    return offers


# --------------------------------------------------------------------------- #
# Specifications
# --------------------------------------------------------------------------- #

FEATURES_BLOB_RE = re.compile(r'"z_features"\s*:\s*"((?:[^"\\]|\\.)*)"')


def _titled(text: str) -> str:
    text = text.replace("_", " ").strip()
    return text[:1].upper() + text[1:]


def _specs_from_feature_blob(page) -> List[SpecEntry]:
    m = FEATURES_BLOB_RE.search(page.html)
    if not m:
        return []
    specs = []
    for triple in m.group(1).split(" | "):
        group = re.search(r"Group:([^,]+)", triple)
        feature = re.search(r"Feature:([^,]+)", triple)
        value = re.search(r"Value:(.+)", triple)
        if not (feature and value):
            continue
        specs.append(SpecEntry(
            label=_titled(feature.group(1)),
            value=clean_text(value.group(1).replace("\\", "")),
            group=_titled(group.group(1)) if group else None,
        ))
    return specs


def label_pairs(page: Page) -> List[Tuple[str, str]]:
    """<strong class="lbl">Label:</strong><span class="item">Value</span> pairs."""
    pairs = []
    for lbl in page.soup.find_all("strong", class_="lbl"):
        item = lbl.find_next_sibling()
        if item is None or item.name != "span" or "item" not in item.get("class", []):
            continue
        label, value = node_text(lbl).rstrip(":").strip(), node_text(item)
        if label and value:
            pairs.append((label, value))
    return pairs


def _specs_from_label_pairs(page) -> List[SpecEntry]:
    return [SpecEntry(label=label, value=value) for label, value in label_pairs(page)]


def _specs_from_list_items(page) -> List[SpecEntry]:
    specs = []
    for li in page.soup.find_all("li"):
        if li.find(True) is not None:
            continue
        text = node_text(li)
        if len(text) > MIN_FEATURE_LEN:
            specs.append(SpecEntry(label="Feature", value=text))
    return specs


def _specs_from_table_cells(page) -> List[SpecEntry]:
    specs = []
    for row in page.soup.find_all("tr"):
        cells = row.find_all(["th", "td"], recursive=False)
        if len(cells) != 2 or any(c.find(["table", "tr"]) for c in cells):
            continue
        label, value = node_text(cells[0]), node_text(cells[1])
        if label and value and len(label) < MAX_CELL_LABEL and len(value) < MAX_CELL_VALUE:
            specs.append(SpecEntry(label=label, value=value))
    return specs


STRUCTURED_SPEC_RULES = [_specs_from_feature_blob]
# these read different page regions, so all of them run
FALLBACK_SPEC_PASSES = [_specs_from_label_pairs, _specs_from_list_items, _specs_from_table_cells]


def _dedupe(specs: List[SpecEntry]) -> List[SpecEntry]:
    seen, out = set(), []
    for s in specs:
        key = (s.group, s.label, s.value)
        if key not in seen:
            seen.add(key)
            out.append(s)
    return out


def extract_specs(page: Page) -> List[SpecEntry]:
    specs = first_match(STRUCTURED_SPEC_RULES, page, "specs")
    if not specs:
        specs = []
        for extract_pass in FALLBACK_SPEC_PASSES:
            try:
                specs.extend(extract_pass(page))
            except (AttributeError, TypeError, ValueError) as exc:
                logger.debug("spec pass %s failed: %s", extract_pass.__name__, exc)
    return _dedupe(specs)


# --------------------------------------------------------------------------- #
# Identity
# --------------------------------------------------------------------------- #

def _labelled(label_re: str, name: str):
    pattern = re.compile(label_re, re.I)

    def rule(page):
        for label, value in label_pairs(page):
            if pattern.fullmatch(label):
                return value
        return None

    rule.__name__ = name
    return rule

def _sku_from_data_attr(page):
    node = page.soup.find(attrs={"data-sku": re.compile(r"^\d+$")})
    return node["data-sku"] if node else None

SKU_RULES = [
    _labelled(r"SKU", "_sku_from_label"),
    _sku_from_data_attr,
    regex_rule(r"['\"]sku['\"]\s*:\s*['\"]?(\d+)", name="_sku_from_json"),
]
MFR_PART_RULES = [_labelled(r"Mfr\.? Part\s*#?", "_mfr_part_from_label")]
UPC_RULES = [_labelled(r"UPC", "_upc_from_label")]


def extract_sku(page: Page) -> Optional[str]:
    """SKU the detail page reports for itself."""
    return first_match(SKU_RULES, page, "sku")


# --------------------------------------------------------------------------- #
# Entry point
# --------------------------------------------------------------------------- #

def extract(html, sku: str = "", store=None) -> ProductFields:
    """
    Read every product field off a detail page. Fields whose rules all miss
    keep their empty value; a redesigned page degrades field by field.
    """
    page = html if isinstance(html, Page) else Page(html)

    price = first_match(PRICE_RULES, page, "price")
    pair = first_match(SALE_PAIR_RULES, page, "sale")
    if pair:
        original, savings = pair
    else:
        original = first_match(ORIGINAL_PRICE_RULES, page, "original_price")
        savings = first_match(SAVINGS_RULES, page, "savings")
    if original and not savings:
        savings = _derive_savings(original, price)

    stock_match = first_match(STOCK_RULES, page, "stock")
    stock = parse_stock(*stock_match) if stock_match else StockInfo()

    reviews = first_match(REVIEW_PAIR_RULES, page, "reviews") or Reviews(
        rating=first_match(RATING_RULES, page, "rating") or 0.0,
        count=first_match(REVIEW_COUNT_RULES, page, "review_count") or 0,
    )

    fields = ProductFields(
        name=first_match(NAME_RULES, page, "name") or "",
        brand=first_match(BRAND_RULES, page, "brand") or "",
        price=price,
        original_price=original,
        savings=savings,
        stock=stock,
        location=first_match(LOCATION_RULES, page, "location"),
        mfr_part=first_match(MFR_PART_RULES, page, "mfr_part") or "",
        upc=first_match(UPC_RULES, page, "upc") or "",
        specs=extract_specs(page),
        reviews=reviews,
        installation=extract_installation(page),
        protection=extract_protection(page),
    )
    logger.info(
        "extracted sku=%s store=%s name=%r price=%s specs=%d",
        sku, getattr(store, "store_id", None), fields.name, fields.price, len(fields.specs),
    )
    return fields
