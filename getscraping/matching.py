import logging
from typing import Protocol
from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError
from lxml import etree, html as lxml_html

logger = logging.getLogger(__name__)

XPATH_PREFIXES = ("/", "./", "(")


class SelectorMatcher(Protocol):
    def find_first_match(self, body: str, selector: str) -> bool: ...


class SoupSelectorMatcher:
    """
    Checks whether an HTML body contains at least one element matching a
    selector.

    - XPath (starts with "/", "./" or "(") is evaluated with lxml
    - Anything else is a CSS selector, evaluated with BeautifulSoup
    - A selector that fails to compile is treated as no match
    """

    def find_first_match(self, body: str, selector: str) -> bool:
        if not body or not selector:
            return False
        if selector.startswith(XPATH_PREFIXES):
            return self._match_xpath(body, selector)
        return self._match_css(body, selector)

    def _match_css(self, body: str, selector: str) -> bool:
        soup = BeautifulSoup(body, "lxml")
        try:
            return soup.select_one(selector) is not None
        except (SelectorSyntaxError, NotImplementedError) as e:
            logger.warning("Invalid CSS selector %r: %s", selector, e)
            return False

    def _match_xpath(self, body: str, selector: str) -> bool:
        try:
            tree = lxml_html.fromstring(body)
        except (etree.ParserError, ValueError):
            return False
        try:
            found = tree.xpath(selector)
        except etree.XPathError as e:
            logger.warning("Invalid XPath selector %r: %s", selector, e)
            return False
        if isinstance(found, list):
            return len(found) > 0
        # count(), boolean() and friends return scalars
        return bool(found)
