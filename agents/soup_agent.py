"""
Soup Agent Module
CSS/DOM engine built on BeautifulSoup trees and soupsieve selector matching.
"""

import logging
import re
from typing import Dict, List, Optional

import soupsieve as sv
from bs4 import BeautifulSoup, Comment, Doctype, NavigableString, Tag
from bs4.element import Declaration as SoupDeclaration, ProcessingInstruction

from agents.base import (
    AgentDocument, AgentElement, AgentNode, Attribute, COMMENT_NODE, OTHER_NODE, TEXT_NODE, UserAgent,
)
from core.cascade import applicable_rules, compute_style
from core.html_parser import HTMLParser, ParsedDocument
from core.stylesheet import ComputedStyleSnapshot, StyleDeclaration, StyleSheet
from utils.net_cache import CachingFetcher

logger = logging.getLogger(__name__)

_LENGTH_RE = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*(%?)')

# Elements whose width/height attributes map to the width/height properties
DIMENSION_ELEMENTS = {
    'img', 'table', 'td', 'th', 'col', 'colgroup', 'iframe', 'video',
    'canvas', 'embed', 'object', 'hr', 'input', 'applet',
}
BGCOLOR_ELEMENTS = {'body', 'table', 'tr', 'td', 'th', 'thead', 'tbody', 'tfoot'}
ALIGN_ELEMENTS = {
    'p', 'div', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'td', 'th', 'tr',
    'thead', 'tbody', 'tfoot', 'caption', 'col', 'colgroup', 'legend',
}
VALIGN_ELEMENTS = {'td', 'th', 'tr', 'thead', 'tbody', 'tfoot', 'col', 'colgroup'}
BACKGROUND_ELEMENTS = {'body', 'table', 'td', 'th', 'tr'}
SIDES = ('top', 'right', 'bottom', 'left')


def _hint_length(value: str) -> Optional[str]:
    match = _LENGTH_RE.match(value or '')
    if match is None:
        return None
    number, percent = match.groups()
    return f"{number}{percent or 'px'}"


def presentational_hints(tag: Tag) -> StyleDeclaration:
    """Map legacy presentational attributes of an element to declarations."""
    hints = StyleDeclaration()
    name = tag.name.lower()
    attrs = tag.attrs

    if name in BGCOLOR_ELEMENTS and attrs.get('bgcolor'):
        hints.set_property('background-color', attrs['bgcolor'].strip())
    if name == 'font' and attrs.get('color'):
        hints.set_property('color', attrs['color'].strip())
    if name == 'font' and attrs.get('face'):
        hints.set_property('font-family', attrs['face'].strip())
    if name == 'body' and attrs.get('text'):
        hints.set_property('color', attrs['text'].strip())
    if name in DIMENSION_ELEMENTS:
        for attribute in ('width', 'height'):
            length = _hint_length(attrs.get(attribute))
            if length is not None:
                hints.set_property(attribute, length)
    align = (attrs.get('align') or '').strip().lower()
    if align:
        if name in ('img', 'table', 'iframe', 'object') and align in ('left', 'right'):
            hints.set_property('float', align)
        elif name in ALIGN_ELEMENTS and align in ('left', 'right', 'center', 'justify'):
            hints.set_property('text-align', align)
    valign = (attrs.get('valign') or '').strip().lower()
    if name in VALIGN_ELEMENTS and valign in ('top', 'middle', 'bottom', 'baseline'):
        hints.set_property('vertical-align', valign)
    if name in ('table', 'img') and 'border' in attrs:
        width = _hint_length(attrs.get('border') or '1') or '1px'
        style = 'outset' if name == 'table' else 'solid'
        for side in SIDES:
            hints.set_property(f"border-{side}-width", width)
            hints.set_property(f"border-{side}-style", style)
    if name in BACKGROUND_ELEMENTS and attrs.get('background'):
        url = attrs['background'].strip().replace('"', '\\"')
        hints.set_property('background-image', f'url("{url}")')
    if 'hidden' in attrs:
        hints.set_property('display', 'none')
    return hints


def _split_name(name: str, prefix: Optional[str] = None):
    if prefix is None and ':' in name:
        prefix, name = name.split(':', 1)
    return prefix or None, name


class SoupText(AgentNode):

    def __init__(self, string: NavigableString):
        self.string = string

    @property
    def node_type(self) -> str:
        if isinstance(self.string, Comment):
            return COMMENT_NODE
        if isinstance(self.string, (Doctype, SoupDeclaration, ProcessingInstruction)):
            return OTHER_NODE
        return TEXT_NODE

    @property
    def node_name(self) -> str:
        return '#' + self.node_type

    @property
    def text(self) -> str:
        return str(self.string)


class SoupElement(AgentElement):

    def __init__(self, document: 'SoupDocument', tag: Tag):
        self.document = document
        self.tag = tag
        self._prefix, self._local_name = _split_name(tag.name.lower(), tag.prefix)

    @property
    def local_name(self) -> str:
        return self._local_name

    @property
    def prefix(self) -> Optional[str]:
        return self._prefix

    @property
    def namespace_uri(self) -> Optional[str]:
        return getattr(self.tag, 'namespace', None)

    @property
    def parent(self) -> Optional['SoupElement']:
        parent = self.tag.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return self.document.wrap(parent)

    def attributes(self) -> List[Attribute]:
        attributes = []
        for key, value in self.tag.attrs.items():
            if isinstance(value, list):
                value = ' '.join(value)
            prefix, local_name = _split_name(key)
            attributes.append(Attribute(local_name, value, prefix))
        return attributes

    def child_nodes(self) -> List[AgentNode]:
        return [self.document.wrap(child) for child in self.tag.children]

    def hints(self) -> Optional[StyleDeclaration]:
        if not self.document.agent.presentational_hints:
            return None
        return presentational_hints(self.tag)

    def has_presentational_hints(self) -> bool:
        hints = self.hints()
        return hints is not None and len(hints) > 0

    def get_computed_style(self, pseudo_element: Optional[str] = None) -> ComputedStyleSnapshot:
        return self.document.computed_style(self, pseudo_element)

    def matches(self, selector) -> bool:
        text = selector if isinstance(selector, str) else selector.text
        try:
            return sv.match(text, self.tag)
        except sv.SelectorSyntaxError as e:
            logger.debug(f"Selector '{text}' not supported by soupsieve: {e}")
            return False


class SoupDocument(AgentDocument):

    def __init__(self, agent: 'SoupAgent', parsed: ParsedDocument):
        self.agent = agent
        self.parsed = parsed
        self._nodes: Dict[int, AgentNode] = {}
        self._styles: Dict[tuple, ComputedStyleSnapshot] = {}
        self._sheets: Optional[List[StyleSheet]] = None
        self._rules = None

    @property
    def soup(self) -> BeautifulSoup:
        return self.parsed.soup

    @property
    def base_url(self) -> Optional[str]:
        return self.parsed.base_url

    @property
    def document_element(self) -> SoupElement:
        root = self.soup.find('html')
        if root is None:
            root = self.soup.find(True)
        if root is None:
            raise ValueError('Document has no elements')
        return self.wrap(root)

    def wrap(self, node):
        wrapper = self._nodes.get(id(node))
        if wrapper is None:
            wrapper = SoupElement(self, node) if isinstance(node, Tag) else SoupText(node)
            self._nodes[id(node)] = wrapper
        return wrapper

    def get_style_sheets(self) -> List[StyleSheet]:
        if self._sheets is None:
            self._sheets = self.parsed.build_style_sheets()
        return self._sheets

    def computed_style(self, element: SoupElement, pseudo_element: Optional[str] = None) -> ComputedStyleSnapshot:
        key = (id(element.tag), pseudo_element)
        if key in self._styles:
            return self._styles[key]
        if self._rules is None:
            self._rules = applicable_rules(self.get_style_sheets())

        # Ancestors first, without recursion
        chain = []
        ancestor = element.parent
        while ancestor is not None and (id(ancestor.tag), None) not in self._styles:
            chain.append(ancestor)
            ancestor = ancestor.parent
        for pending in reversed(chain):
            self._styles[(id(pending.tag), None)] = self._compute(pending, None)
        style = self._compute(element, pseudo_element)
        self._styles[key] = style
        return style

    def _compute(self, element: SoupElement, pseudo_element: Optional[str]) -> ComputedStyleSnapshot:
        parent = element.parent
        if pseudo_element is not None:
            parent_style = self._styles.get((id(element.tag), None)) or self.computed_style(element)
        else:
            parent_style = self._styles.get((id(parent.tag), None)) if parent is not None else None
        return compute_style(
            element, (), parent_style,
            hints=element.hints(),
            inline_style=element.inline_style(),
            pseudo_element=pseudo_element,
            base_url=self.base_url,
            rules=self._rules,
        )


class SoupAgent(UserAgent):
    """BeautifulSoup backend with presentational hints."""

    def __init__(self, fetcher=None, features: str = 'html.parser', name: Optional[str] = None,
                 presentational_hints: bool = True):
        self.fetcher = fetcher if fetcher is not None else CachingFetcher()
        self.features = features
        self.name = name or f"soup[{features}]"
        self.presentational_hints = presentational_hints

    def fetch(self, url: str) -> bytes:
        return self.fetcher(url)

    def parse(self, content, base_url: Optional[str] = None) -> SoupDocument:
        parser = HTMLParser(self.fetcher, self.features)
        return SoupDocument(self, parser.parse(content, base_url))
