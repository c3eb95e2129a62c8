"""
Cascade Module
Computes the style of an element from its sheets, inline style and parent.
"""

import logging
import re
from typing import Iterable, List, Optional, Tuple

from core import property_db
from core.errors import StyleComputationError
from core.html_parser import media_applies
from core.stylesheet import (
    ComputedStyleSnapshot, Declaration, GroupingRule, StyleDeclaration, StyleRule, StyleSheet,
)
from core.value_parser import parse_value
from core.values import IdentValue

logger = logging.getLogger(__name__)

# Precedence levels, lowest first
HINT_LEVEL = 0
AUTHOR_LEVEL = 1
INLINE_LEVEL = 2
AUTHOR_IMPORTANT_LEVEL = 3
INLINE_IMPORTANT_LEVEL = 4

_VAR_RE = re.compile(r'var\(\s*(--[\w-]+)\s*(?:,\s*([^()]*(?:\([^()]*\)[^()]*)*))?\)')

# Grouping rules whose children take part in the cascade
CASCADING_GROUPS = {'media', 'supports', 'layer', 'container'}


def _pseudo_target(selector, pseudo_element: Optional[str]) -> Optional[str]:
    """Selector text to match against the element, or None when not applicable."""
    last = selector.ast[-1]
    pseudo = [s for s in last if s[0] == 'pseudo-element']
    if pseudo_element is None:
        return None if pseudo else selector.text
    if len(pseudo) != 1 or pseudo[0][1] != pseudo_element.lstrip(':').lower():
        return None
    match = re.search(r'::?' + re.escape(pseudo[0][1]) + r'\s*$', selector.text, re.IGNORECASE)
    if match is None:
        return None
    target = selector.text[:match.start()].rstrip()
    if not target or target[-1] in '>+~':
        target += '*'
    return target


def _collect_rules(rules: Iterable, out: List[StyleRule]):
    for rule in rules:
        if isinstance(rule, StyleRule):
            out.append(rule)
        elif isinstance(rule, GroupingRule) and rule.at_keyword in CASCADING_GROUPS:
            if rule.at_keyword == 'media' and not media_applies(rule.prelude):
                continue
            _collect_rules(rule.rules, out)


def applicable_rules(sheets: Iterable[StyleSheet]) -> List[StyleRule]:
    """Style rules of every sheet whose media applies, in source order."""
    rules = []
    for sheet in sheets:
        if media_applies(sheet.media):
            _collect_rules(sheet.rules, rules)
    return rules


def _matching_declarations(element, rules: List[StyleRule], pseudo_element: Optional[str]):
    found = []
    for order, rule in enumerate(rules):
        best = None
        for selector in rule.selectors:
            target = _pseudo_target(selector, pseudo_element)
            if target is not None and element.matches(target):
                if best is None or selector.specificity > best:
                    best = selector.specificity
        if best is None:
            continue
        for declaration in rule.style.declarations():
            level = AUTHOR_IMPORTANT_LEVEL if declaration.important else AUTHOR_LEVEL
            found.append(((level, best, order), declaration))
    return found


def resolve_vars(text: str, style: StyleDeclaration, seen=None) -> str:
    """Substitute var() references with custom property values of the style."""
    if seen is None:
        seen = set()

    def repl(match):
        name, fallback = match.group(1), match.group(2)
        if name in seen:
            return match.group(0)
        value = style.get_property_value(name)
        if value is not None:
            return resolve_vars(value.css_text, style, seen | {name})
        if fallback is not None:
            return resolve_vars(fallback.strip(), style, seen)
        return match.group(0)

    return _VAR_RE.sub(repl, text)


def compute_style(element, sheets: Iterable[StyleSheet], parent_style: Optional[StyleDeclaration] = None,
                  hints: Optional[StyleDeclaration] = None, inline_style: Optional[StyleDeclaration] = None,
                  pseudo_element: Optional[str] = None, base_url: Optional[str] = None,
                  rules: Optional[List[StyleRule]] = None) -> ComputedStyleSnapshot:
    """Cascade declarations into a ComputedStyleSnapshot for the element.

    Declarations are ordered by precedence level (hints, author, inline, then
    the important ones), specificity and source order. Inherited properties
    come from ``parent_style``; ``inherit``, ``initial``, ``unset`` and
    ``var()`` are resolved.

    Raises:
        StyleComputationError: when anything fails during the computation.
    """
    try:
        if rules is None:
            rules = applicable_rules(sheets)
        candidates: List[Tuple[tuple, Declaration]] = []
        if hints is not None:
            candidates.extend(((HINT_LEVEL, (0, 0, 0), i), d) for i, d in enumerate(hints.declarations()))
        candidates.extend(_matching_declarations(element, rules, pseudo_element))
        if inline_style is not None and pseudo_element is None:
            for i, declaration in enumerate(inline_style.declarations()):
                level = INLINE_IMPORTANT_LEVEL if declaration.important else INLINE_LEVEL
                candidates.append(((level, (0, 0, 0), i), declaration))
        candidates.sort(key=lambda candidate: candidate[0])

        snapshot = ComputedStyleSnapshot(element, pseudo_element, base_url)
        if parent_style is not None:
            for declaration in parent_style.declarations():
                if property_db.is_inherited(declaration.name):
                    snapshot.put(Declaration(declaration.name, declaration.value))
        for _, declaration in candidates:
            snapshot.put(declaration)

        for declaration in snapshot.declarations():
            value = _resolve_keyword(declaration, parent_style)
            if value is None:
                snapshot.remove_property(declaration.name)
                continue
            if 'var(' in value.css_text and not declaration.name.startswith('--'):
                value = parse_value(resolve_vars(value.css_text, snapshot), declaration.name)
            if value is not declaration.value:
                snapshot.put(Declaration(declaration.name, value, declaration.important))
        return snapshot
    except StyleComputationError:
        raise
    except Exception as e:
        logger.error(f"Error computing style for {element}: {e}", exc_info=True)
        raise StyleComputationError(str(element), e) from e


def _resolve_keyword(declaration: Declaration, parent_style: Optional[StyleDeclaration]):
    """Resolve the CSS-wide keywords; None drops the property."""
    value = declaration.value
    if not isinstance(value, IdentValue) or value.value not in ('inherit', 'initial', 'unset'):
        return value
    keyword = value.value
    if keyword == 'unset':
        keyword = 'inherit' if property_db.is_inherited(declaration.name) else 'initial'
    if keyword == 'inherit' and parent_style is not None:
        inherited = parent_style.get_property_value(declaration.name)
        if inherited is not None:
            return inherited
    initial = property_db.initial_value(declaration.name)
    if initial is None:
        return None
    return parse_value(initial)
