import logging
import re

from .schema import FreeText, InternalCode, ProductUrl, SkuCode, UpcCode

logger = logging.getLogger(__name__)

RETAILER_DOMAIN = "microcenter.com"

_SKU_RE = re.compile(r"[0-9]{6}")


def clean(raw: str) -> str:
    """Drop non-printable code points (scanner noise) and surrounding whitespace."""
    return "".join(ch for ch in raw if ch.isprintable()).strip()


def classify(raw: str, domain: str = RETAILER_DOMAIN):
    """
    Map scanned or typed text to an Identifier. Never fails.

    Order matters: URLs are usually longer than 10 characters and would
    otherwise be taken for UPCs.
    """
    text = clean(raw or "")

    if domain.lower() in text.lower():
        ident = ProductUrl(value=text)
    elif _SKU_RE.fullmatch(text):
        ident = SkuCode(value=text)
    elif 7 <= len(text) <= 10 and _SKU_RE.match(text):
        ident = InternalCode(raw_value=text, extracted_sku=text[:6])
    elif len(text) > 10:
        ident = UpcCode(value=text)
    else:
        ident = FreeText(value=text)

    logger.debug("classified %r as %s", text, ident.kind)
    return ident
