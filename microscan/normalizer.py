import re
from typing import Dict, List

from .adapters.adapter_microcenter import display_name
from .schema import ProductFields, ProductRecord

PRIORITY_GROUPS = ["Display", "Features", "Connectivity", "Physical specifications", "Warranty"]
IDENTITY_LABELS = {"SKU", "Mfr Part #", "UPC", "Brand"}
PLAN_DETAIL_RE = re.compile(r"\d+\s*Year\s*(?:Replacement|Protection)\s*Plan", re.I)
PLAN_DETAILS_HEADER = "Protection Plan Details"
DEFAULT_GROUP = "Other"


def _section(lines: List[str], title: str, entries: List[str]):
    if entries:
        lines.append(f"\n{title}")
        lines.extend(f"• {e}" for e in entries)


def display_specs(sku: str, product_id: str, fields: ProductFields) -> List[str]:
    """
    Flatten specs into display lines: identity first, then the priority
    groups, the catalog's own plan text, then remaining groups as met.
    """
    lines = [f"SKU: {sku}", f"Product ID: {product_id}"]
    if fields.brand:
        lines.append(f"Brand: {fields.brand}")
    if fields.mfr_part:
        lines.append(f"Mfr Part#: {fields.mfr_part}")
    if fields.upc:
        lines.append(f"UPC: {fields.upc}")

    by_group: Dict[str, List[str]] = {}
    plan_details: List[str] = []
    for spec in fields.specs:
        if spec.label in IDENTITY_LABELS:
            continue
        entry = f"{spec.label}: {spec.value}"
        # plan text from the catalog is not one of the purchasable offers
        if PLAN_DETAIL_RE.search(spec.label) or PLAN_DETAIL_RE.search(spec.value):
            plan_details.append(entry)
            continue
        by_group.setdefault(spec.group or DEFAULT_GROUP, []).append(entry)

    for group in PRIORITY_GROUPS:
        _section(lines, group, by_group.pop(group, []))
    _section(lines, PLAN_DETAILS_HEADER, plan_details)
    for group, entries in by_group.items():
        _section(lines, group, entries)
    return lines


def normalize(fields: ProductFields, sku: str, product_id: str, url: str,
              image_urls: List[str]) -> ProductRecord:
    name = display_name(fields.name, fields.brand) or f"Product {sku}"
    return ProductRecord(
        sku=sku,
        product_id=product_id,
        url=url,
        name=name,
        brand=fields.brand,
        price=fields.price,
        original_price=fields.original_price,
        savings=fields.savings,
        stock=fields.stock,
        location=fields.location,
        mfr_part=fields.mfr_part,
        upc=fields.upc,
        image_urls=image_urls,
        specs=fields.specs,
        display_specs=display_specs(sku, product_id, fields),
        reviews=fields.reviews,
        installation=fields.installation,
        protection=fields.protection,
    )
