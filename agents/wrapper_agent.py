"""
Wrapper Agent Module
DOM wrapper backend: a view over an already parsed BeautifulSoup tree.

The view hides comments and whitespace-only text, rebuilds its own style
sheet objects from the text of the wrapped document's sheets and computes
styles without presentational hints.
"""

import logging
from typing import Dict, List, Optional

import soupsieve as sv
from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from agents.base import AgentDocument, AgentElement, AgentNode, Attribute, OTHER_NODE, TEXT_NODE, UserAgent
from core.cascade import applicable_rules, compute_style
from core.stylesheet import ComputedStyleSnapshot, StyleSheet

logger = logging.getLogger(__name__)


class WrappedText(AgentNode):

    def __init__(self, string: NavigableString):
        self.string = string

    @property
    def node_type(self) -> str:
        return TEXT_NODE if type(self.string) is NavigableString else OTHER_NODE

    @property
    def node_name(self) -> str:
        return '#text'

    @property
    def text(self) -> str:
        return str(self.string)


class WrappedElement(AgentElement):

    def __init__(self, document: 'WrappedDocument', tag: Tag):
        self.document = document
        self.tag = tag

    @property
    def local_name(self) -> str:
        name = self.tag.name
        return name.split(':', 1)[1] if ':' in name and self.tag.prefix is None else name

    @property
    def prefix(self) -> Optional[str]:
        if self.tag.prefix:
            return self.tag.prefix
        if ':' in self.tag.name:
            return self.tag.name.split(':', 1)[0]
        return ''

    @property
    def parent(self) -> Optional['WrappedElement']:
        parent = self.tag.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return self.document.wrap(parent)

    def attributes(self) -> List[Attribute]:
        attributes = []
        for key, value in self.tag.attrs.items():
            if isinstance(value, list):
                value = ' '.join(value)
            attributes.append(Attribute(key, value))
        return attributes

    def child_nodes(self) -> List[AgentNode]:
        children = []
        for child in self.tag.children:
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString) and not child.strip():
                continue
            children.append(self.document.wrap(child))
        return children

    def get_computed_style(self, pseudo_element: Optional[str] = None) -> ComputedStyleSnapshot:
        return self.document.computed_style(self, pseudo_element)

    def matches(self, selector) -> bool:
        text = selector if isinstance(selector, str) else selector.text
        try:
            return sv.match(text, self.tag)
        except sv.SelectorSyntaxError:
            return False


class WrappedDocument(AgentDocument):

    def __init__(self, source):
        self.source = source
        self._nodes: Dict[int, AgentNode] = {}
        self._styles: Dict[tuple, ComputedStyleSnapshot] = {}
        self._sheets: Optional[List[StyleSheet]] = None
        self._rules = None

    @property
    def base_url(self) -> Optional[str]:
        return self.source.base_url

    @property
    def document_element(self) -> WrappedElement:
        return self.wrap(self.source.document_element.tag)

    def wrap(self, node):
        wrapper = self._nodes.get(id(node))
        if wrapper is None:
            wrapper = WrappedElement(self, node) if isinstance(node, Tag) else WrappedText(node)
            self._nodes[id(node)] = wrapper
        return wrapper

    def get_style_sheets(self) -> List[StyleSheet]:
        if self._sheets is None:
            self._sheets = [
                StyleSheet.parse(sheet.text, href=sheet.href, owner_node=sheet.owner_node, media=sheet.media)
                for sheet in self.source.get_style_sheets()
            ]
        return self._sheets

    def computed_style(self, element: WrappedElement, pseudo_element: Optional[str] = None) -> ComputedStyleSnapshot:
        key = (id(element.tag), pseudo_element)
        style = self._styles.get(key)
        if style is not None:
            return style
        if self._rules is None:
            self._rules = applicable_rules(self.get_style_sheets())
        if pseudo_element is not None:
            parent_style = self.computed_style(element)
        else:
            # Ancestors top-down
            chain = []
            ancestor = element.parent
            while ancestor is not None and (id(ancestor.tag), None) not in self._styles:
                chain.append(ancestor)
                ancestor = ancestor.parent
            for pending in reversed(chain):
                self._styles[(id(pending.tag), None)] = self._compute(pending, None, self._parent_style(pending))
            parent_style = self._parent_style(element)
        style = self._compute(element, pseudo_element, parent_style)
        self._styles[key] = style
        return style

    def _parent_style(self, element: WrappedElement) -> Optional[ComputedStyleSnapshot]:
        parent = element.parent
        return self._styles.get((id(parent.tag), None)) if parent is not None else None

    def _compute(self, element: WrappedElement, pseudo_element, parent_style) -> ComputedStyleSnapshot:
        return compute_style(
            element, (), parent_style,
            inline_style=element.inline_style(),
            pseudo_element=pseudo_element,
            base_url=self.base_url,
            rules=self._rules,
        )


class WrapperAgent(UserAgent):
    """Backend exposing a wrapped view of documents parsed by another agent."""

    name = 'DOM wrapper'

    def __init__(self, source_agent: UserAgent):
        self.source_agent = source_agent

    def fetch(self, url: str) -> bytes:
        return self.source_agent.fetch(url)

    def parse(self, content, base_url: Optional[str] = None) -> WrappedDocument:
        return WrappedDocument(self.source_agent.parse(content, base_url))

    def open_document(self, url: str, reference_document: Optional[AgentDocument] = None) -> WrappedDocument:
        """Wrap ``reference_document`` when given, otherwise load the URL through the source agent."""
        if reference_document is None:
            reference_document = self.source_agent.read_url(url)
        logger.debug(f"[{self.name}] Wrapping document {url}")
        return WrappedDocument(reference_document)

    def read_url(self, url: str) -> WrappedDocument:
        return self.open_document(url)
