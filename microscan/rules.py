import html as htmllib
import logging
import re
from functools import cached_property
from typing import Callable, Iterable, Optional, TypeVar

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Page:
    """Raw markup plus a lazily parsed soup, shared by every rule in a chain."""

    def __init__(self, html: str, url: Optional[str] = None):
        self.html = html or ""
        self.url = url

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "lxml")

    def search(self, pattern, flags=re.I) -> Optional[re.Match]:
        return re.search(pattern, self.html, flags)


Rule = Callable[[Page], Optional[T]]


def first_match(rules: Iterable[Rule], page: Page, field: str = "") -> Optional[T]:
    """
    Evaluate rules in order and return the first non-empty result.
    A rule that trips over unexpected markup counts as a miss.
    """
    for rule in rules:
        try:
            value = rule(page)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            logger.debug("%s: rule %s failed: %s", field, rule.__name__, exc)
            continue
        if value:
            logger.debug("%s: matched by %s", field, rule.__name__)
            return value
    logger.debug("%s: no rule matched", field)
    return None


def regex_rule(pattern: str, group: int = 1, name: Optional[str] = None) -> Rule:
    """Rule returning one capture group of a pattern searched in the raw markup."""
    compiled = re.compile(pattern, re.I)

    def rule(page: Page) -> Optional[str]:
        m = compiled.search(page.html)
        return clean_text(m.group(group)) if m else None

    rule.__name__ = name or f"regex<{pattern[:30]}>"
    return rule


def clean_text(text: Optional[str]) -> str:
    if not text:
        return ""
    text = htmllib.unescape(text).replace("\xa0", " ")
    return re.sub(r"\s+", " ", text).strip()


def node_text(node) -> str:
    return clean_text(node.get_text(" ", strip=True)) if node is not None else ""
