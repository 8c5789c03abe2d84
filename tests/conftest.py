"""
Shared fixtures: canned retailer markup and a scripted fetcher, so no test
touches the network.
"""
import pytest

from microscan.config import Settings
from microscan.fetcher import FetchedPage, FetchError

SITE = "https://www.microcenter.com"

DETAIL_HTML = """
<html>
<head>
  <title>Example CPU - Micro Center</title>
  <meta property="og:title" content="Example CPU | Micro Center">
  <script type="application/ld+json">
    {"@type": "Product", "aggregateRating": {"@type": "AggregateRating", "ratingValue": "4.8", "reviewCount": "120"}}
  </script>
  <script>
    var productData = {"z_features":"Group:features,Feature:cores,Value:8 | Group:features,Feature:cores,Value:8 | Group:connectivity,Feature:socket_type,Value:AM5 | Group:warranty,Feature:parts,Value:3 years | Group:warranty,Feature:plan,Value:2 Year Protection Plan available | Group:cooling,Feature:cooler_included,Value:No"};
  </script>
</head>
<body>
  <nav><button id="navInstall" data-name="PC Build Installation Service" data-price="99.99">Services</button></nav>
  <div class="product-header" data-brand="Example">
    <h2 class="productTitle">Example CPU</h2>
  </div>
  <div class="pricing"><span id="pricing" content="399.99">$399.99</span></div>
  <div class="inventory">
    <span class="inventoryCnt">25+ <span class="msgInStock">in Stock</span></span><span class="storeName">at Tustin Store</span>
  </div>
  <p><span>Located In Aisle 12<span class="otherLocation">, Aisle 14</span></span></p>
  <div class="specs">
    <div><strong class="lbl">SKU:</strong> <span class="item">679294</span></div>
    <div><strong class="lbl">Mfr Part #:</strong> <span class="item">100-100000910WOF</span></div>
    <div><strong class="lbl">UPC:</strong> <span class="item">730143314572</span></div>
  </div>
  <form>
    <input type="checkbox" id="apInstall1" data-name="CPU Installation Service" data-price="29.99">
    <input type="radio" name="plan" id="pp1" data-name="2 Year Replacement Plan" data-price="49.99">
    <input type="radio" name="plan" id="pp2" data-name="3 Year Protection Plan" data-price="69.99">
    <input type="radio" name="plan" id="pp1b" data-name="2 Year Replacement Plan" data-price="49.99">
    <input type="radio" name="plan" id="none" data-name="No Plan Thanks" data-price="0">
  </form>
</body>
</html>
"""

SEARCH_HTML = """
<html><body>
  <header><a href="/product/999/gift-cards">Gift Cards</a></header>
  <div class="searchInfoBar">1 Results for "679294"</div>
  Sort by: <select><option>Best Match</option></select>
  <ul class="result_list">
    <li class="product_wrapper">
      <a class="image productClickItemV2" data-id="12345" data-name="Example CPU" href="/product/12345/example-cpu">Example CPU</a>
      <p class="sku">SKU: 679294</p>
    </li>
  </ul>
</body></html>
"""

NO_MATCH_HTML = """
<html><body><div class="msg"><h2>Oh no!</h2><p>We couldn't find any matches for "123456".</p></div></body></html>
"""

BLOCKED_HTML = "<html><head><title>Access Denied</title></head><body>You don't have permission.</body></html>"

CHALLENGE_HTML = """
<html><head><title>Just a moment...</title></head>
<body><div id="cf-challenge">Checking your browser before accessing microcenter.com.</div>
<script src="/cdn-cgi/challenge-platform/h/b/orchestrate/jsch/v1"></script></body></html>
"""


def detail_with_sku(sku: str) -> str:
    return DETAIL_HTML.replace('<span class="item">679294</span>', f'<span class="item">{sku}</span>')


def search_html_for(code: str) -> str:
    return SEARCH_HTML.replace("679294", code)


class FakeFetcher:
    """Answers get() from (url fragment, body or exception, final url) routes."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, referer=None):
        self.calls.append(url)
        for fragment, body, final_url in self.routes:
            if fragment in url:
                if isinstance(body, Exception):
                    raise body
                return FetchedPage(url=final_url or url, status=200, text=body)
        raise FetchError(f"HTTP 404 for {url}", url, 404)


@pytest.fixture
def settings():
    return Settings(min_request_interval_s=0)


@pytest.fixture
def fake_fetcher():
    return FakeFetcher
