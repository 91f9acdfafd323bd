"""Supplier feed parsers.

Each supplier publishes its catalogue as an XML document with its own tag
vocabulary. A parser downloads the document, validates it, converts it to a
generic nested dict and maps the vendor fields onto NormalizedProduct.
"""

import re
import xml.etree.ElementTree as ET
from decimal import Decimal, InvalidOperation
from html.entities import name2codepoint
from typing import Any, Dict, FrozenSet, List, Optional, Type, Union

import requests  # type: ignore[import-untyped]

from feedsync.config import COLOR_OPTION_NAME, HEADERS, REQUEST_TIMEOUT
from feedsync.errors import FetchError, ParseError, UnknownParserType, XmlValidationError
from feedsync.logging_config import get_logger
from feedsync.models import NormalizedProduct

__all__ = [
    "FeedParser",
    "AdamHomeParser",
    "HomelineParser",
    "PARSERS",
    "clean_cdata",
    "element_to_dict",
    "inner_markup",
    "replace_html_entities",
    "ensure_list",
    "parse_xml_document",
    "create_parser",
]

logger = get_logger("parsers")

CDATA_RE = re.compile(r"^\s*<!\[CDATA\[(.*?)\]\]>\s*$", re.DOTALL)

ATTRIBUTE_PREFIX = "@_"
TEXT_KEY = "#text"

# Named HTML entities (&nbsp;, &euro;, ...) are rewritten as numeric references
# before parsing; CDATA sections are matched first so they pass through untouched
_ENTITY_PATTERN = r"(<!\[CDATA\[.*?\]\]>)|&([A-Za-z][A-Za-z0-9]*);"
ENTITY_RE = re.compile(_ENTITY_PATTERN, re.DOTALL)
ENTITY_RE_BYTES = re.compile(_ENTITY_PATTERN.encode("ascii"), re.DOTALL)
XML_ENTITIES = frozenset({"amp", "lt", "gt", "quot", "apos"})


def clean_cdata(value: Any) -> str:
    """Remove a CDATA wrapper from a text value and trim it.

    Already-clean strings come back unchanged (apart from trimming).
    """
    if value is None or value == "":
        return ""
    text = value if isinstance(value, str) else str(value)
    return CDATA_RE.sub(r"\1", text).strip()


def ensure_list(value: Any) -> List[Any]:
    """Coerce a single parsed node into a one-element list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _numeric_reference(name: str) -> Optional[str]:
    if name in XML_ENTITIES or name not in name2codepoint:
        return None
    return f"&#{name2codepoint[name]};"


def replace_html_entities(xml_text: Union[str, bytes]) -> Union[str, bytes]:
    """Rewrite named HTML entities as numeric character references.

    XML itself only defines amp, lt, gt, quot and apos; supplier feeds also
    carry HTML names such as &nbsp; that an XML parser would reject.
    Unknown names are left alone so they still fail validation.
    """
    if isinstance(xml_text, bytes):
        def replace_bytes(match):
            if match.group(1) is None:
                reference = _numeric_reference(match.group(2).decode("ascii"))
                if reference is not None:
                    return reference.encode("ascii")
            return match.group(0)

        return ENTITY_RE_BYTES.sub(replace_bytes, xml_text)

    def replace_text(match):
        if match.group(1) is None:
            reference = _numeric_reference(match.group(2))
            if reference is not None:
                return reference
        return match.group(0)

    return ENTITY_RE.sub(replace_text, xml_text)


def inner_markup(element: ET.Element) -> str:
    """Everything between an element's tags, child markup and tail text included."""
    parts = [element.text or ""]
    parts.extend(ET.tostring(child, encoding="unicode") for child in element)
    return "".join(parts).strip()


def _is_mixed(element: ET.Element, children: List[ET.Element]) -> bool:
    if not children:
        return False
    if (element.text or "").strip():
        return True
    return any((child.tail or "").strip() for child in children)


def element_to_dict(element: ET.Element, markup_tags: FrozenSet[str] = frozenset()) -> Any:
    """Convert an element into plain Python values.

    Text-only elements become strings; elements with children or
    attributes become dicts keyed by child tag. Repeated child tags are
    collected into lists and attributes are stored under '@_name'.

    Elements named in ``markup_tags`` and elements mixing text with child
    elements (inline HTML outside CDATA) are kept as their inner markup.
    """
    children = list(element)
    text = (element.text or "").strip()

    if element.tag in markup_tags or _is_mixed(element, children):
        return inner_markup(element)

    if not children and not element.attrib:
        return text

    node: Dict[str, Any] = {}
    for name, value in element.attrib.items():
        node[f"{ATTRIBUTE_PREFIX}{name}"] = value

    for child in children:
        value = element_to_dict(child, markup_tags)
        if child.tag in node:
            existing = node[child.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                node[child.tag] = [existing, value]
        else:
            node[child.tag] = value

    if text:
        node[TEXT_KEY] = text
    return node


def parse_xml_document(
    xml_text: Union[str, bytes],
    markup_tags: FrozenSet[str] = frozenset(),
) -> Dict[str, Any]:
    """Validate an XML document and return it as {root_tag: content}.

    Named HTML entities are decoded; anything else that is not well-formed
    XML is rejected.

    Raises:
        XmlValidationError: If the document is not well-formed
    """
    try:
        root = ET.fromstring(replace_html_entities(xml_text))
    except ET.ParseError as e:
        line = e.position[0] if getattr(e, "position", None) else None
        message = f"XML Validation Error: {e}"
        if line is not None and "line" not in str(e):
            message += f" at line {line}"
        raise XmlValidationError(message, line=line) from e

    return {root.tag: element_to_dict(root, markup_tags)}


def _to_decimal(value: Any) -> Decimal:
    text = clean_cdata(value)
    if not text:
        return Decimal("0")
    try:
        result = Decimal(text.replace(",", "."))
    except InvalidOperation:
        return Decimal("0")
    return result if result.is_finite() else Decimal("0")


def _text(node: Any) -> str:
    """Text of a node that may carry attributes ({'#text': ...})."""
    if isinstance(node, dict):
        return clean_cdata(node.get(TEXT_KEY))
    return clean_cdata(node)


class FeedParser:
    """Base class for supplier feed parsers."""

    parser_type = ""
    # Free-text fields whose inline HTML is kept as markup
    markup_tags: FrozenSet[str] = frozenset({"description"})

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = REQUEST_TIMEOUT):
        self.session = session
        self.timeout = timeout

    def fetch_xml(self, url: str) -> bytes:
        """Download the feed, bypassing every cache along the way.

        Raw bytes are returned so the XML declaration decides the encoding.

        Raises:
            FetchError: On transport failures and non-2xx responses
        """
        getter = self.session.get if self.session is not None else requests.get
        try:
            resp = getter(url, headers=HEADERS, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error fetching {url}: {e}")
            raise FetchError(f"Failed to fetch {url}: {e}") from e

        if not 200 <= resp.status_code < 300:
            logger.error(f"HTTP {resp.status_code} fetching {url}")
            raise FetchError(f"HTTP {resp.status_code}: {resp.reason}", status_code=resp.status_code)

        return resp.content

    def fetch_and_parse_xml(self, url: str) -> List[NormalizedProduct]:
        """Fetch a feed and return its available products in feed order."""
        xml_text = self.fetch_xml(url)
        try:
            document = parse_xml_document(xml_text, self.markup_tags)
            products = self.parse_document(document)
        except (XmlValidationError, ParseError) as e:
            logger.error(f"{self.parser_type} feed at {url} rejected: {e}")
            raise
        logger.info(f"Parsed {len(products)} available products from {url}")
        return products

    def parse_document(self, document: Dict[str, Any]) -> List[NormalizedProduct]:
        products = [self.parse_item(item) for item in self.extract_items(document)]
        return [p for p in products if self.is_available(p)]

    def extract_items(self, document: Dict[str, Any]) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def parse_item(self, item: Dict[str, Any]) -> NormalizedProduct:
        raise NotImplementedError

    def is_available(self, product: NormalizedProduct) -> bool:
        raise NotImplementedError


class AdamHomeParser(FeedParser):
    """RSS-style feed: rss/channel/item with a human-readable availability."""

    parser_type = "adamhome"

    def extract_items(self, document: Dict[str, Any]) -> List[Dict[str, Any]]:
        rss = document.get("rss")
        if not isinstance(rss, dict) or "channel" not in rss:
            raise ParseError("Unexpected feed structure: expected <rss><channel>")
        channel = rss["channel"]
        if not isinstance(channel, dict):
            # <channel/> without children is an empty feed
            return []
        return [item for item in ensure_list(channel.get("item")) if isinstance(item, dict)]

    def parse_item(self, item: Dict[str, Any]) -> NormalizedProduct:
        return NormalizedProduct(
            title=clean_cdata(item.get("title")),
            description=clean_cdata(item.get("description")),
            model=clean_cdata(item.get("model_number")),
            image=_text(item.get("image_link")),
            colors=self.extract_colors(item),
            size=clean_cdata(item.get("size")),
            stock=clean_cdata(item.get("availability")),
            price_with_tax=_to_decimal(item.get("price_with_vat")),
            price_without_tax=_to_decimal(item.get("price_without_vat")),
            category=clean_cdata(item.get("category")),
            link=_text(item.get("link")),
        )

    @staticmethod
    def extract_colors(item: Dict[str, Any]) -> str:
        """Join the value names of the color option block, or 'N/A'."""
        for option in ensure_list(item.get("option")):
            if not isinstance(option, dict):
                continue
            if clean_cdata(option.get("option_name")) != COLOR_OPTION_NAME:
                continue
            names = [
                clean_cdata(value.get("option_value_name"))
                for value in ensure_list(option.get("option_value"))
                if isinstance(value, dict)
            ]
            return ", ".join(names)
        return "N/A"

    def is_available(self, product: NormalizedProduct) -> bool:
        stock = product.stock.lower()
        return "in stock" in stock or "available" in stock


class HomelineParser(FeedParser):
    """Flat product feed: root/products/product with a Y/N stock flag."""

    parser_type = "homeline"

    def extract_items(self, document: Dict[str, Any]) -> List[Dict[str, Any]]:
        root = document.get("root")
        if not isinstance(root, dict) or "products" not in root:
            raise ParseError("Unexpected feed structure: expected <root><products>")
        products = root["products"]
        if not isinstance(products, dict):
            return []
        return [item for item in ensure_list(products.get("product")) if isinstance(item, dict)]

    def parse_item(self, item: Dict[str, Any]) -> NormalizedProduct:
        return NormalizedProduct(
            title=clean_cdata(item.get("name")),
            description=clean_cdata(item.get("description")),
            model=clean_cdata(item.get("mpn")),
            image=clean_cdata(item.get("image")),
            colors=clean_cdata(item.get("product_attribute_color")) or "N/A",
            size=clean_cdata(item.get("product_attribute_size")),
            stock=clean_cdata(item.get("InStock")),
            # price_with_vat is the sale price, price_without_discount the list price
            price_with_tax=_to_decimal(item.get("price_with_vat")),
            price_without_tax=_to_decimal(item.get("price_without_discount")),
            category=clean_cdata(item.get("category")),
            link=clean_cdata(item.get("link")),
        )

    def is_available(self, product: NormalizedProduct) -> bool:
        return product.stock == "Y" and bool(product.model.strip())


PARSERS: Dict[str, Type[FeedParser]] = {
    AdamHomeParser.parser_type: AdamHomeParser,
    HomelineParser.parser_type: HomelineParser,
}


def create_parser(parser_type: str, session: Optional[requests.Session] = None) -> FeedParser:
    """Instantiate the parser registered for a parser type (case-insensitive).

    Raises:
        UnknownParserType: If no parser is registered under that name
    """
    parser_cls = PARSERS.get((parser_type or "").strip().lower())
    if parser_cls is None:
        raise UnknownParserType(f"Unknown parser type: {parser_type}")
    return parser_cls(session=session)
