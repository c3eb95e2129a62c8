"""
Agents Base Module
Abstract interfaces of the CSS/DOM engines compared by the oracle.

Implementations are independent of each other: each one only promises the
capabilities declared here.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List, Optional

from core.errors import DocumentLoadError
from core.stylesheet import ComputedStyleSnapshot, StyleDeclaration, StyleSheet

logger = logging.getLogger(__name__)

ELEMENT_NODE = 'element'
TEXT_NODE = 'text'
COMMENT_NODE = 'comment'
OTHER_NODE = 'other'


@dataclass(frozen=True)
class Attribute:
    local_name: str
    value: str
    prefix: Optional[str] = None
    namespace_uri: Optional[str] = None

    @property
    def name(self) -> str:
        return f"{self.prefix}:{self.local_name}" if self.prefix else self.local_name


class AgentNode(ABC):

    @property
    @abstractmethod
    def node_type(self) -> str:
        """One of 'element', 'text', 'comment' or 'other'."""

    @property
    @abstractmethod
    def node_name(self) -> str:
        pass

    @property
    def text(self) -> str:
        return ''

    def is_whitespace_text(self) -> bool:
        return self.node_type == TEXT_NODE and not self.text.strip()


class AgentElement(AgentNode):

    @property
    def node_type(self) -> str:
        return ELEMENT_NODE

    @property
    def node_name(self) -> str:
        return self.tag_name

    @property
    @abstractmethod
    def local_name(self) -> str:
        pass

    @property
    def prefix(self) -> Optional[str]:
        return None

    @property
    def namespace_uri(self) -> Optional[str]:
        return None

    @property
    def tag_name(self) -> str:
        return f"{self.prefix}:{self.local_name}" if self.prefix else self.local_name

    @property
    def element_id(self) -> Optional[str]:
        for attribute in self.attributes():
            if attribute.local_name == 'id' and not attribute.prefix:
                return attribute.value
        return None

    @property
    @abstractmethod
    def parent(self) -> Optional['AgentElement']:
        pass

    @abstractmethod
    def attributes(self) -> List[Attribute]:
        pass

    @abstractmethod
    def child_nodes(self) -> List[AgentNode]:
        pass

    def child_elements(self) -> List['AgentElement']:
        return [node for node in self.child_nodes() if node.node_type == ELEMENT_NODE]

    def get_attribute(self, name: str) -> Optional[str]:
        for attribute in self.attributes():
            if attribute.name == name:
                return attribute.value
        return None

    def inline_style(self) -> Optional[StyleDeclaration]:
        """The parsed style attribute, its parse errors kept in ``errors``."""
        text = self.get_attribute('style')
        if not text:
            return None
        return StyleDeclaration.parse(text)

    @abstractmethod
    def get_computed_style(self, pseudo_element: Optional[str] = None) -> ComputedStyleSnapshot:
        """Computed style of the element.

        Raises:
            StyleComputationError: when the style cannot be computed.
        """

    @abstractmethod
    def matches(self, selector) -> bool:
        """Whether a Selector (or selector text) matches this element."""

    def has_presentational_hints(self) -> bool:
        return False

    def start_tag(self) -> str:
        attributes = ''.join(f' {a.name}="{a.value}"' for a in self.attributes())
        return f"<{self.tag_name}{attributes}>"

    def __str__(self):
        return self.start_tag()


class AgentDocument(ABC):

    @property
    @abstractmethod
    def document_element(self) -> AgentElement:
        pass

    @property
    def base_url(self) -> Optional[str]:
        return None

    @abstractmethod
    def get_style_sheets(self) -> List[StyleSheet]:
        pass

    def iter_elements(self) -> Iterator[AgentElement]:
        """Elements in document order."""
        stack = [self.document_element]
        while stack:
            element = stack.pop()
            yield element
            stack.extend(reversed(element.child_elements()))

    def count_elements(self) -> int:
        return sum(1 for _ in self.iter_elements())


class UserAgent(ABC):
    """A CSS/DOM engine able to fetch, parse and compute styles."""

    name = 'agent'

    @abstractmethod
    def fetch(self, url: str) -> bytes:
        pass

    @abstractmethod
    def parse(self, content, base_url: Optional[str] = None) -> AgentDocument:
        pass

    def read_url(self, url: str) -> AgentDocument:
        logger.info(f"[{self.name}] Loading {url}")
        try:
            content = self.fetch(url)
        except (OSError, ValueError) as e:
            # ValueError: malformed or scheme-less URL
            raise DocumentLoadError(url, e) from e
        try:
            return self.parse(content, url)
        except Exception as e:
            logger.error(f"[{self.name}] Error parsing {url}: {e}", exc_info=True)
            raise DocumentLoadError(url, e) from e
