"""
Style Sheet Module
Object model for parsed style sheets, rules and declaration blocks.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

import tinycss2

from core.errors import SelectorError
from core.selectors import SelectorList, parse_selector_list
from core.value_parser import parse_value
from core.values import PropertyValue

logger = logging.getLogger(__name__)

# At-rules whose block holds rules
GROUPING_AT_RULES = {
    'media', 'supports', 'document', '-moz-document', 'layer', 'container',
    'scope', 'keyframes', '-webkit-keyframes', '-moz-keyframes',
}

# At-rules whose block holds declarations
DECLARATION_AT_RULES = {
    'font-face', 'page', 'counter-style', 'property', 'viewport',
    '-ms-viewport', 'font-palette-values',
}

KEYFRAMES_AT_RULES = {'keyframes', '-webkit-keyframes', '-moz-keyframes'}


@dataclass(frozen=True)
class SheetIssue:
    """A parse error or warning found in a style sheet."""
    message: str
    line: int = 0
    column: int = 0

    def __str__(self):
        if self.line:
            return f"[{self.line}:{self.column}] {self.message}"
        return self.message


@dataclass(frozen=True)
class Declaration:
    name: str
    value: PropertyValue
    important: bool = False

    @property
    def css_text(self) -> str:
        priority = ' !important' if self.important else ''
        return f"{self.name}: {self.value.css_text}{priority}"

    @property
    def minified_text(self) -> str:
        priority = '!important' if self.important else ''
        return f"{self.name}:{self.value.minified_text}{priority}"


def _property_name(name: str) -> str:
    # Custom property names are case-sensitive
    return name if name.startswith('--') else name.lower()


def _issue(node, message: str) -> SheetIssue:
    return SheetIssue(message, getattr(node, 'source_line', 0), getattr(node, 'source_column', 0))


class StyleDeclaration:
    """Ordered mapping of property name to Declaration."""

    def __init__(self, parent_rule=None):
        self._declarations: Dict[str, Declaration] = {}
        self.parent_rule = parent_rule
        self.errors: List[SheetIssue] = []

    @classmethod
    def parse(cls, source: Union[str, Sequence], parent_rule=None) -> 'StyleDeclaration':
        """Parse a declaration list, recording errors instead of raising."""
        style = cls(parent_rule)
        nodes = tinycss2.parse_declaration_list(source, skip_comments=True, skip_whitespace=True)
        for node in nodes:
            if node.type == 'error':
                style.errors.append(_issue(node, f"Declaration parse error: {node.message}"))
            elif node.type == 'declaration':
                if not [t for t in node.value if t.type not in ('whitespace', 'comment')]:
                    style.errors.append(_issue(node, f"Empty value for property '{node.name}'"))
                    continue
                style.set_property(node.name, parse_value(node.value, node.lower_name), node.important)
            else:
                style.errors.append(_issue(node, f"Unexpected {node.type} in declaration block"))
        return style

    def set_property(self, name: str, value: Union[str, PropertyValue], important: bool = False):
        """Set a property, keeping an important declaration over a normal one."""
        name = _property_name(name)
        if isinstance(value, str):
            value = parse_value(value, name)
        current = self._declarations.get(name)
        if current is not None and current.important and not important:
            return
        self._declarations[name] = Declaration(name, value, important)

    def put(self, declaration: Declaration):
        """Store a declaration unconditionally, replacing any previous one."""
        self._declarations[declaration.name] = declaration

    def remove_property(self, name: str):
        self._declarations.pop(_property_name(name), None)

    def get_declaration(self, name: str) -> Optional[Declaration]:
        return self._declarations.get(_property_name(name))

    def get_property_value(self, name: str) -> Optional[PropertyValue]:
        declaration = self.get_declaration(name)
        return declaration.value if declaration is not None else None

    def get_property_priority(self, name: str) -> str:
        declaration = self.get_declaration(name)
        return 'important' if declaration is not None and declaration.important else ''

    def declarations(self) -> List[Declaration]:
        return list(self._declarations.values())

    def property_names(self) -> List[str]:
        return list(self._declarations)

    def __contains__(self, name: str) -> bool:
        return _property_name(name) in self._declarations

    def __iter__(self) -> Iterator[str]:
        return iter(self._declarations)

    def __len__(self) -> int:
        return len(self._declarations)

    def __eq__(self, other):
        if not isinstance(other, StyleDeclaration):
            return NotImplemented
        return self._declarations == other._declarations

    __hash__ = None

    @property
    def base_url(self) -> Optional[str]:
        rule = self.parent_rule
        sheet = rule.parent_sheet if rule is not None else None
        return sheet.href if sheet is not None else None

    @property
    def css_text(self) -> str:
        return ''.join(f"{d.css_text}; " for d in self._declarations.values()).rstrip()

    @property
    def minified_text(self) -> str:
        return ';'.join(d.minified_text for d in self._declarations.values())

    def __repr__(self):
        return f"<{type(self).__name__} {self.css_text!r}>"


class ComputedStyleSnapshot(StyleDeclaration):
    """Computed style of one element in one backend."""

    def __init__(self, element=None, pseudo_element: Optional[str] = None, base_url: Optional[str] = None):
        super().__init__()
        self.element = element
        self.pseudo_element = pseudo_element
        self._base_url = base_url

    @property
    def base_url(self) -> Optional[str]:
        return self._base_url


class CSSRule:
    """Common parent for every rule kind."""

    def __init__(self, parent_sheet=None, parent_rule=None):
        self.parent_sheet = parent_sheet
        self.parent_rule = parent_rule

    @property
    def css_text(self) -> str:
        raise NotImplementedError

    @property
    def minified_text(self) -> str:
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__} {self.css_text[:60]!r}>"


class StyleRule(CSSRule):

    def __init__(self, selectors: SelectorList, style: StyleDeclaration, parent_sheet=None, parent_rule=None):
        super().__init__(parent_sheet, parent_rule)
        self.selectors = selectors
        self.style = style
        style.parent_rule = self

    @property
    def css_text(self) -> str:
        return f"{self.selectors.css_text} {{{self.style.css_text}}}"

    @property
    def minified_text(self) -> str:
        return f"{self.selectors.minified_text}{{{self.style.minified_text}}}"


def _minify_prelude(prelude: str) -> str:
    return ' '.join(prelude.split())


class DeclarationRule(CSSRule):
    """@font-face, @page and keyframe blocks: a prelude and declarations."""

    def __init__(self, at_keyword: Optional[str], prelude: str, style: StyleDeclaration,
                 parent_sheet=None, parent_rule=None):
        super().__init__(parent_sheet, parent_rule)
        self.at_keyword = at_keyword
        self.prelude = prelude
        self.style = style
        style.parent_rule = self

    def _head(self, minify: bool) -> str:
        prelude = _minify_prelude(self.prelude) if minify else self.prelude
        if self.at_keyword is None:
            return prelude
        return f"@{self.at_keyword} {prelude}" if prelude else f"@{self.at_keyword}"

    @property
    def css_text(self) -> str:
        return f"{self._head(False)} {{{self.style.css_text}}}"

    @property
    def minified_text(self) -> str:
        return f"{self._head(True)}{{{self.style.minified_text}}}"


class GroupingRule(CSSRule):
    """@media, @supports, @keyframes and the other rule containers."""

    def __init__(self, at_keyword: str, prelude: str, parent_sheet=None, parent_rule=None):
        super().__init__(parent_sheet, parent_rule)
        self.at_keyword = at_keyword
        self.prelude = prelude
        self.rules: List[CSSRule] = []

    @property
    def css_text(self) -> str:
        body = '\n'.join(f"  {rule.css_text}" for rule in self.rules)
        return f"@{self.at_keyword} {self.prelude} {{\n{body}\n}}"

    @property
    def minified_text(self) -> str:
        body = ''.join(rule.minified_text for rule in self.rules)
        return f"@{self.at_keyword} {_minify_prelude(self.prelude)}{{{body}}}"


class OtherRule(CSSRule):
    """Any other at-rule, kept as text (@import, @charset, @namespace...)."""

    def __init__(self, at_keyword: str, prelude: str, text: str, parent_sheet=None, parent_rule=None):
        super().__init__(parent_sheet, parent_rule)
        self.at_keyword = at_keyword
        self.prelude = prelude
        self.text = text

    @property
    def css_text(self) -> str:
        return self.text

    @property
    def minified_text(self) -> str:
        return self.text


def _build_rule(node, sheet, issues: List[SheetIssue], parent=None, in_keyframes: bool = False):
    """Convert one tinycss2 node into a rule, or None when it is dropped."""
    if node.type == 'error':
        issues.append(_issue(node, f"Rule parse error: {node.message}"))
        return None

    if node.type == 'qualified-rule':
        style = StyleDeclaration.parse(node.content)
        issues.extend(style.errors)
        if in_keyframes:
            prelude = tinycss2.serialize(node.prelude).strip()
            return DeclarationRule(None, prelude, style, sheet, parent)
        try:
            selectors = parse_selector_list(node.prelude)
        except SelectorError as e:
            issues.append(_issue(node, f"Invalid selector '{tinycss2.serialize(node.prelude).strip()}': {e}"))
            return None
        return StyleRule(selectors, style, sheet, parent)

    if node.type == 'at-rule':
        keyword = node.lower_at_keyword
        prelude = tinycss2.serialize(node.prelude).strip()
        if keyword in GROUPING_AT_RULES and node.content is not None:
            rule = GroupingRule(keyword, prelude, sheet, parent)
            children = tinycss2.parse_rule_list(node.content, skip_comments=True, skip_whitespace=True)
            for child in children:
                child_rule = _build_rule(child, sheet, issues, rule, keyword in KEYFRAMES_AT_RULES)
                if child_rule is not None:
                    rule.rules.append(child_rule)
            return rule
        if keyword in DECLARATION_AT_RULES and node.content is not None:
            style = StyleDeclaration.parse(node.content)
            issues.extend(style.errors)
            return DeclarationRule(keyword, prelude, style, sheet, parent)
        return OtherRule(keyword, prelude, tinycss2.serialize([node]).strip(), sheet, parent)

    issues.append(_issue(node, f"Unexpected {node.type} at rule level"))
    return None


class StyleSheet:
    """A parsed style sheet with the issues found while parsing it."""

    def __init__(self, href: Optional[str] = None, owner_node=None, media: Optional[str] = None):
        self.href = href
        self.owner_node = owner_node
        self.media = media
        self.rules: List[CSSRule] = []
        self.errors: List[SheetIssue] = []
        self.warnings: List[SheetIssue] = []
        self.text = ''

    @classmethod
    def parse(cls, text: str, href: Optional[str] = None, owner_node=None,
              media: Optional[str] = None) -> 'StyleSheet':
        sheet = cls(href, owner_node, media)
        sheet.text = text
        nodes = tinycss2.parse_stylesheet(text, skip_comments=True, skip_whitespace=True)
        for node in nodes:
            rule = _build_rule(node, sheet, sheet.errors)
            if rule is None:
                continue
            if isinstance(rule, OtherRule) and rule.at_keyword == 'import':
                sheet.warnings.append(_issue(node, f"Imported sheet not loaded: {rule.prelude}"))
            sheet.rules.append(rule)
        logger.debug(f"Parsed sheet {href or '(embedded)'}: {len(sheet.rules)} rules, "
                     f"{len(sheet.errors)} errors, {len(sheet.warnings)} warnings")
        return sheet

    def has_errors(self) -> bool:
        return bool(self.errors)

    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def css_text(self) -> str:
        return '\n'.join(rule.css_text for rule in self.rules)

    def __len__(self):
        return len(self.rules)

    def __repr__(self):
        return f"<StyleSheet {self.href or '(embedded)'} rules={len(self.rules)}>"


def reparse_rule(text: str, sheet: Optional[StyleSheet] = None,
                 in_keyframes: bool = False) -> Tuple[Optional[CSSRule], List[SheetIssue]]:
    """Parse a single serialized rule, returning it with the issues found.

    The rule is None when the text does not hold a rule that survives parsing.
    """
    node = tinycss2.parse_one_rule(text, skip_comments=True)
    issues: List[SheetIssue] = []
    rule = _build_rule(node, sheet, issues, in_keyframes=in_keyframes)
    return rule, issues

