"""
Tree Walker Module
Aligns two element trees produced by different backends and drives the
per-element style comparison, depth first.
"""

import difflib
import logging
from typing import Dict, List, Optional, Tuple

from agents.base import COMMENT_NODE, ELEMENT_NODE, TEXT_NODE
from comparator.attribution import StyleAttributor, StyleComparison
from core.errors import StyleComputationError

logger = logging.getLogger(__name__)


class NodeWrapper:
    """Wrapper class to make nodes comparable and hashable."""

    def __init__(self, node):
        self.node = node
        self.hash_key = self._create_hash_key(node)

    def _create_hash_key(self, node) -> str:
        if node.node_type == ELEMENT_NODE:
            return f"element|{node.local_name.lower()}"
        if node.node_type == TEXT_NODE:
            return f"text|{' '.join(node.text.split())}"
        return f"{node.node_type}|{node.text.strip()}"

    def describe(self) -> str:
        if self.node.node_type == ELEMENT_NODE:
            return self.node.start_tag()
        text = ' '.join(self.node.text.split())
        if len(text) > 60:
            text = text[:57] + '...'
        return f"#{self.node.node_type} '{text}'"

    def __eq__(self, other):
        if not isinstance(other, NodeWrapper):
            return False
        return self.hash_key == other.hash_key

    def __hash__(self):
        return hash(self.hash_key)


def _significant_nodes(nodes) -> List:
    return [node for node in nodes if not node.is_whitespace_text() and node.node_type != COMMENT_NODE]


def _attribute_key(attribute) -> Tuple[str, str]:
    prefix = attribute.prefix or ''
    local_name = attribute.local_name.lower()
    if not prefix and ':' in local_name:
        prefix, local_name = local_name.split(':', 1)
    return prefix.lower(), local_name


class TreeWalker:
    """Compares two element trees, reporting to ``reporter``.

    Args:
        reporter: sink receiving the findings.
        attributor: selector attribution for residual style differences.
        backend_name: name of the right-hand backend, used in messages.
        compare_attributes: also compare element attributes.
        ignore_non_css_hints: suppress left-only properties when the two
            elements differ in presentational hint support.
        verify_styles: compare computed styles of aligned elements.
    """

    def __init__(self, reporter, attributor: Optional[StyleAttributor], backend_name: str,
                 compare_attributes: bool = False, ignore_non_css_hints: bool = False,
                 verify_styles: bool = True):
        self.reporter = reporter
        self.attributor = attributor
        self.backend_name = backend_name
        self.compare_attributes = compare_attributes
        self.ignore_non_css_hints = ignore_non_css_hints
        self.verify_styles = verify_styles
        self.element_count = 0

    def check_tree(self, left, right) -> bool:
        """Compare the two subtrees. True when no mismatch was found.

        Raises:
            StyleComputationError: after closing the reporter.
        """
        self.element_count += 1
        matched = True
        if self.verify_styles:
            comparison = StyleComparison(left, right, self.attributor, self.ignore_non_css_hints, self.backend_name)
            try:
                matched = comparison.compare(self.reporter)
            except StyleComputationError as e:
                logger.error(f"[{self.backend_name}] Fatal style error on {left}: {e}", exc_info=True)
                self.reporter.close()
                raise

        left_children = left.child_nodes()
        right_children = right.child_nodes()
        left_count = sum(1 for node in left_children if node.node_type == ELEMENT_NODE)
        right_count = sum(1 for node in right_children if node.node_type == ELEMENT_NODE)
        if left_count != right_count:
            logger.debug(f"[{self.backend_name}] Element count mismatch under {left}: "
                         f"{left_count} vs {right_count}")
            self.compare_child_lists(left, left_children, right_children)
            return False

        # Right-hand cursor; delta = j - i is the current alignment offset
        j = 0
        for i, node in enumerate(left_children):
            if node.node_type != ELEMENT_NODE:
                continue
            while j < len(right_children) and right_children[j].node_type != ELEMENT_NODE:
                j += 1
            if j >= len(right_children):
                self.reporter.different_nodes(left, [f"missing in {self.backend_name}: {node.start_tag()}"],
                                              backend_name=self.backend_name)
                return False
            other = right_children[j]
            if j != i:
                logger.debug(f"[{self.backend_name}] Aligned <{node.local_name}> with offset {j - i}")
            j += 1
            if node.local_name.lower() != other.local_name.lower():
                self.reporter.different_nodes(left, [f"{node.start_tag()} vs {other.start_tag()}"],
                                              backend_name=self.backend_name)
                matched = False
                continue
            if self.compare_attributes and not self.check_attributes(node, other):
                matched = False
            matched = self.check_tree(node, other) and matched
        return matched

    def check_attributes(self, left, right) -> bool:
        """Compare attributes by lower-cased local name and prefix, skipping ``class``."""
        left_attributes: Dict[Tuple[str, str], str] = {}
        for attribute in left.attributes():
            key = _attribute_key(attribute)
            if key != ('', 'class'):
                left_attributes[key] = attribute.value
        right_attributes: Dict[Tuple[str, str], str] = {}
        for attribute in right.attributes():
            key = _attribute_key(attribute)
            if key != ('', 'class'):
                right_attributes[key] = attribute.value

        different = []
        for key in sorted(set(left_attributes) | set(right_attributes)):
            if left_attributes.get(key) != right_attributes.get(key):
                prefix, local_name = key
                different.append(f"{prefix}:{local_name}" if prefix else local_name)
        if different:
            self.reporter.different_attributes(left, right, different, backend_name=self.backend_name)
            return False
        return True

    def compare_child_lists(self, parent, left_children, right_children) -> List[str]:
        """Best-effort diff of two child lists, ignoring whitespace-only text and comments."""
        wrapped_left = [NodeWrapper(node) for node in _significant_nodes(left_children)]
        wrapped_right = [NodeWrapper(node) for node in _significant_nodes(right_children)]
        matcher = difflib.SequenceMatcher(None, wrapped_left, wrapped_right, autojunk=False)
        node_diff = []
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag in ('delete', 'replace'):
                node_diff.extend(f"missing in {self.backend_name}: {w.describe()}" for w in wrapped_left[i1:i2])
            if tag in ('insert', 'replace'):
                node_diff.extend(f"extra in {self.backend_name}: {w.describe()}" for w in wrapped_right[j1:j2])
        if not node_diff:
            node_diff.append(f"element counts differ: {len(left_children)} vs {len(right_children)} nodes")
        self.reporter.different_nodes(parent, node_diff, backend_name=self.backend_name)
        return node_diff
