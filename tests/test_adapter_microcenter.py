import pytest

from microscan.adapters.adapter_microcenter import (
    display_name,
    extract,
    extract_protection,
    extract_sku,
    extract_specs,
    parse_stock,
)
from microscan.rules import Page
from microscan.schema import Reviews, ServiceOffer, SpecEntry, StockInfo

from conftest import DETAIL_HTML


def test_full_detail_page():
    fields = extract(DETAIL_HTML, "679294")
    assert fields.name == "Example CPU"
    assert fields.brand == "Example"
    assert fields.price == "$399.99"
    assert fields.original_price is None
    assert fields.savings is None
    assert fields.stock == StockInfo(
        stock_text="25+ in Stock", stock_count=25, in_stock=True, store_name="at Tustin Store"
    )
    assert fields.location == "Aisle 12, Aisle 14"
    assert fields.mfr_part == "100-100000910WOF"
    assert fields.upc == "730143314572"
    assert fields.reviews == Reviews(rating=4.8, count=120)
    assert fields.installation == [ServiceOffer(name="CPU Installation Service", price=29.99)]


def test_protection_offers_are_deduplicated():
    plans = extract_protection(Page(DETAIL_HTML))
    assert plans == [
        ServiceOffer(name="2 Year Replacement Plan", price=49.99),
        ServiceOffer(name="3 Year Protection Plan", price=69.99),
    ]


def test_identical_radio_markup_yields_one_offer():
    radio = '<input type="radio" data-name="2 Year Protection Plan" data-price="39.99">'
    assert len(extract(radio * 2).protection) == 1


def test_same_plan_name_at_two_prices_is_kept_twice():
    html = (
        '<input type="radio" data-name="2 Year Protection Plan" data-price="39.99">'
        '<input type="radio" data-name="2 Year Protection Plan" data-price="44.99">'
    )
    assert [p.price for p in extract(html).protection] == [39.99, 44.99]


def test_installation_in_header_navigation_is_ignored():
    html = '<button id="hdr" data-name="PC Installation Service" data-price="99.99"></button>'
    assert extract(html).installation == []


def test_structured_feature_blob():
    specs = extract_specs(Page(DETAIL_HTML))
    assert specs[0] == SpecEntry(label="Cores", value="8", group="Features")
    assert SpecEntry(label="Socket type", value="AM5", group="Connectivity") in specs
    # duplicated triple in the blob is dropped
    assert len([s for s in specs if s.label == "Cores"]) == 1


def test_fallback_spec_passes_are_concatenated():
    html = """
    <div><strong class="lbl">Cores:</strong><span class="item">8</span></div>
    <ul>
      <li>Short</li>
      <li>Supports PCIe 5.0 storage</li>
      <li><a href="/nav">Computer Parts and More</a></li>
    </ul>
    <table><tr><th>Boost Clock</th><td>5.4 GHz</td></tr>
           <tr><td>This label is far too long to be a real specification label</td><td>x</td></tr></table>
    """
    specs = extract_specs(Page(html))
    assert specs == [
        SpecEntry(label="Cores", value="8"),
        SpecEntry(label="Feature", value="Supports PCIe 5.0 storage"),
        SpecEntry(label="Boost Clock", value="5.4 GHz"),
    ]


def test_sale_pair_is_read_together():
    html = """
    <span id="pricing" content="399.99">$399.99</span>
    <strike><span class="sr-only">Original price </span>$449.99</strike> <span class="savings">Save $50.00</span>
    """
    fields = extract(html)
    assert fields.original_price == "$449.99"
    assert fields.savings == "$50.00"


def test_savings_derived_from_prices_when_not_stated():
    html = """
    <strike><span class="sr-only">Original price </span>$1,049.99</strike>
    <span id="pricing" content="999.98">$999.98</span>
    """
    fields = extract(html)
    assert fields.price == "$999.98"
    assert fields.original_price == "$1049.99"
    assert fields.savings == "$50.01"


def test_savings_not_invented_without_original_price():
    fields = extract('<span id="pricing">$19.99</span>')
    assert fields.price == "$19.99"
    assert fields.savings is None


def test_out_of_stock_overrides_stale_count():
    html = '<span class="inventoryCnt">5 Out of Stock</span><span class="storeName">Tustin</span>'
    stock = extract(html).stock
    assert stock.in_stock is False
    assert stock.stock_count == 0
    assert stock.stock_text == "0 in Stock"


@pytest.mark.parametrize("text,expected", [
    ("25+ in Stock", StockInfo(stock_text="25+ in Stock", stock_count=25, in_stock=True)),
    ("3 in Stock", StockInfo(stock_text="3 in Stock", stock_count=3, in_stock=True)),
    ("In Stock", StockInfo(stock_text="1 in Stock", stock_count=1, in_stock=True)),
    ("0 in Stock", StockInfo(stock_text="0 in Stock", stock_count=0, in_stock=False)),
    ("SOLD OUT", StockInfo(stock_text="0 in Stock", stock_count=0, in_stock=False)),
    ("", StockInfo()),
])
def test_parse_stock(text, expected):
    assert parse_stock(text) == expected


def test_stock_needs_store_qualifier():
    assert extract('<span class="inventoryCnt">7 in Stock</span>').stock == StockInfo()


def test_reviews_recovered_independently():
    html = '<script>{"ratingValue": 4.5, "name": "x"} {"reviewCount": "7"}</script>'
    assert extract(html).reviews == Reviews(rating=4.5, count=7)


@pytest.mark.parametrize("markup, count", [
    ('<span itemprop="reviewCount" content="-3"></span>', 0),
    ('<span itemprop="reviewCount">lots</span>', 0),
    ('<span itemprop="reviewCount">1,204</span>', 1204),
])
def test_itemprop_review_count_only_takes_whole_numbers(markup, count):
    assert extract(markup).reviews.count == count


def test_name_falls_back_to_meta_title_without_store_suffix():
    html = '<html><head><meta property="og:title" content="Widget Pro - Micro Center"></head></html>'
    assert extract(html).name == "Widget Pro"


def test_name_falls_back_to_title_tag():
    assert extract("<title>Widget Pro | Micro Center</title>").name == "Widget Pro"


def test_retailer_is_never_the_brand():
    html = '<div data-brand="Micro Center"></div><span class="brand">Inland</span><h1>SSD 1TB</h1>'
    assert extract(html).brand == "Inland"


def test_display_name_prefixes_missing_brand():
    assert display_name("Ryzen 7 7800X3D", "AMD") == "AMD Ryzen 7 7800X3D"
    assert display_name("AMD Ryzen 7", "amd") == "AMD Ryzen 7"
    assert display_name("", "AMD") == "AMD"


def test_actual_sku_fallback_chain():
    assert extract_sku(Page('<div data-sku="111111"></div>')) == "111111"
    assert extract_sku(Page('<script>{"sku": "222222"}</script>')) == "222222"
    assert extract_sku(Page("<p>nothing</p>")) is None


@pytest.mark.parametrize("html", ["", "<<<>>>", "<html><body><h1></h1></body>", None])
def test_malformed_pages_degrade_to_empty_fields(html):
    fields = extract(html)
    assert fields.name == ""
    assert fields.price is None
    assert fields.stock == StockInfo()
    assert fields.reviews == Reviews()
    assert fields.specs == []
    assert fields.protection == []
