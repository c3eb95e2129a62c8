"""
Rule Round-trip Module
Serializes parsed rules, re-parses the serialized text and checks the
result against the original rule.

Declarations are compared through the value equivalence engine, selector
lists by AST equality. Both the canonical and the minified serialization are
checked.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from core.equivalence import ValueComparator
from core.stylesheet import (
    CSSRule, DeclarationRule, GroupingRule, OtherRule, StyleDeclaration, StyleRule, StyleSheet, reparse_rule,
)

logger = logging.getLogger(__name__)

MISSING_PROPERTY = 'missing-property'
EXTRA_PROPERTY = 'extra-property'
DIFFERENT_VALUE = 'different-value'
SELECTOR_MISMATCH = 'selector-mismatch'
PREAMBLE_MISMATCH = 'preamble-mismatch'
REPARSE_ERROR = 'reparse-error'
REPARSE_ERRORS = 'reparse-errors'
MINIFIED_MISSING_PROPERTY = 'minified-missing-property'
MINIFIED_EXTRA_PROPERTY = 'minified-extra-property'
MINIFIED_DIFFERENT_VALUE = 'minified-different-value'
MINIFIED_PARSE_ERRORS = 'minified-parse-errors'

# Reporter call receiving each diagnostic kind
REPORTER_METHODS = {
    MISSING_PROPERTY: 'reparsed_missing_property',
    EXTRA_PROPERTY: 'reparsed_extra_property',
    DIFFERENT_VALUE: 'reparsed_different_values',
    SELECTOR_MISMATCH: 'rule_reparse_issue',
    PREAMBLE_MISMATCH: 'rule_reparse_issue',
    REPARSE_ERROR: 'rule_reparse_error',
    REPARSE_ERRORS: 'rule_reparse_error',
    MINIFIED_MISSING_PROPERTY: 'minified_missing_property',
    MINIFIED_EXTRA_PROPERTY: 'minified_extra_property',
    MINIFIED_DIFFERENT_VALUE: 'minified_different_values',
    MINIFIED_PARSE_ERRORS: 'minified_parse_errors',
}

_DECLARATION_KINDS = (MISSING_PROPERTY, EXTRA_PROPERTY, DIFFERENT_VALUE)
_MINIFIED_KINDS = (MINIFIED_MISSING_PROPERTY, MINIFIED_EXTRA_PROPERTY, MINIFIED_DIFFERENT_VALUE)


@dataclass
class Diagnostic:
    kind: str
    rule_index: int
    property: Optional[str] = None
    original_text: str = ''
    reparsed_text: str = ''
    detail: str = ''


@dataclass
class RoundTripResult:
    ok: bool = True
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def extend(self, diagnostics: Sequence[Diagnostic]):
        if diagnostics:
            self.diagnostics.extend(diagnostics)
            self.ok = False


def _ignored_property(name: str) -> bool:
    # IE star hacks and names mangled by a decoding error
    return name.startswith('*') or '\ufffd' in name


def _prelude_key(prelude: str) -> str:
    return ' '.join(prelude.split()).lower()


class RuleRoundTripChecker:
    """Checks that rules survive a serialize and re-parse cycle.

    Args:
        reporter: optional sink receiving the diagnostics of ``check_sheet``.
    """

    def __init__(self, reporter=None):
        self.reporter = reporter

    def compare_declarations(self, style: StyleDeclaration, reparsed: StyleDeclaration, rule_index: int,
                             original_text: str, reparsed_text: str, base_url: Optional[str] = None,
                             kinds=_DECLARATION_KINDS) -> List[Diagnostic]:
        """Property by property comparison of two declaration blocks."""
        missing_kind, extra_kind, different_kind = kinds
        comparator = ValueComparator(style, base_url=base_url, other_style=reparsed)
        diagnostics = []
        for declaration in style.declarations():
            other = reparsed.get_declaration(declaration.name)
            if other is None:
                if not _ignored_property(declaration.name):
                    diagnostics.append(Diagnostic(missing_kind, rule_index, declaration.name, original_text,
                                                  reparsed_text, declaration.value.css_text))
                continue
            if (declaration.important != other.important or
                    not comparator.is_equivalent(declaration.name, declaration.value, other.value)):
                diagnostics.append(Diagnostic(
                    different_kind, rule_index, declaration.name, original_text, reparsed_text,
                    f"'{declaration.css_text}' vs '{other.css_text}'"))
        for declaration in reparsed.declarations():
            if declaration.name not in style:
                diagnostics.append(Diagnostic(extra_kind, rule_index, declaration.name, original_text,
                                              reparsed_text, declaration.value.css_text))
        return diagnostics

    def _check_minified_style(self, rule, rule_index: int, base_url: Optional[str]) -> List[Diagnostic]:
        original_text = rule.css_text
        minified = rule.style.minified_text
        reparsed = StyleDeclaration.parse(minified)
        if reparsed.errors:
            detail = '; '.join(str(issue) for issue in reparsed.errors)
            return [Diagnostic(MINIFIED_PARSE_ERRORS, rule_index, None, original_text, minified, detail)]
        return self.compare_declarations(rule.style, reparsed, rule_index, original_text, minified,
                                         base_url, _MINIFIED_KINDS)

    def _reparse(self, rule: CSSRule, text: str, rule_index: int, sheet):
        """Re-parse ``text`` into a rule of the same kind.

        Returns the reparsed rule (or None) and the diagnostics produced.
        """
        in_keyframes = isinstance(rule, DeclarationRule) and rule.at_keyword is None
        try:
            reparsed, issues = reparse_rule(text, sheet, in_keyframes)
        except Exception as e:
            logger.debug(f"Re-parse of rule {rule_index} raised: {e}", exc_info=True)
            return None, [Diagnostic(REPARSE_ERROR, rule_index, None, rule.css_text, text, str(e))]

        if reparsed is None:
            detail = '; '.join(str(issue) for issue in issues) or 'rule dropped'
            return None, [Diagnostic(REPARSE_ERROR, rule_index, None, rule.css_text, text, detail)]
        if type(reparsed) is not type(rule):
            return None, [Diagnostic(REPARSE_ERROR, rule_index, None, rule.css_text, text,
                                     f"became {type(reparsed).__name__}")]
        diagnostics = []
        if issues:
            diagnostics.append(Diagnostic(REPARSE_ERRORS, rule_index, None, rule.css_text, text,
                                          '; '.join(str(issue) for issue in issues)))
        return reparsed, diagnostics

    def _check_serialization(self, rule: CSSRule, text: str, rule_index: int, sheet,
                             base_url: Optional[str]) -> List[Diagnostic]:
        reparsed, diagnostics = self._reparse(rule, text, rule_index, sheet)
        if reparsed is None:
            return diagnostics

        if isinstance(rule, StyleRule):
            if rule.selectors.ast != reparsed.selectors.ast:
                diagnostics.append(Diagnostic(SELECTOR_MISMATCH, rule_index, None, rule.css_text, text,
                                              f"'{rule.selectors.css_text}' vs '{reparsed.selectors.css_text}'"))
            diagnostics.extend(self.compare_declarations(rule.style, reparsed.style, rule_index,
                                                         rule.css_text, text, base_url))
        elif isinstance(rule, DeclarationRule):
            if (rule.at_keyword != reparsed.at_keyword or
                    _prelude_key(rule.prelude) != _prelude_key(reparsed.prelude)):
                diagnostics.append(Diagnostic(PREAMBLE_MISMATCH, rule_index, None, rule.css_text, text,
                                              f"'{rule.prelude}' vs '{reparsed.prelude}'"))
            diagnostics.extend(self.compare_declarations(rule.style, reparsed.style, rule_index,
                                                         rule.css_text, text, base_url))
        elif isinstance(rule, GroupingRule):
            if (rule.at_keyword != reparsed.at_keyword or
                    _prelude_key(rule.prelude) != _prelude_key(reparsed.prelude)):
                diagnostics.append(Diagnostic(PREAMBLE_MISMATCH, rule_index, None, rule.css_text, text,
                                              f"'{rule.prelude}' vs '{reparsed.prelude}'"))
            if len(rule.rules) != len(reparsed.rules):
                diagnostics.append(Diagnostic(REPARSE_ERROR, rule_index, None, rule.css_text, text,
                                              f"{len(rule.rules)} child rules became {len(reparsed.rules)}"))
        elif rule.minified_text != reparsed.minified_text:
            diagnostics.append(Diagnostic(PREAMBLE_MISMATCH, rule_index, None, rule.css_text, text,
                                          f"'{rule.minified_text}' vs '{reparsed.minified_text}'"))
        return diagnostics

    def check_rule(self, rule: CSSRule, sheet_index: int = 0, rule_index: int = 0) -> RoundTripResult:
        """Round-trip one rule through both serializations. Never raises."""
        result = RoundTripResult()
        if isinstance(rule, OtherRule) and rule.at_keyword == 'namespace':
            return result

        sheet = rule.parent_sheet
        base_url = sheet.href if sheet is not None else None
        if isinstance(rule, StyleRule):
            result.extend(self._check_minified_style(rule, rule_index, base_url))

        texts = [rule.css_text]
        if rule.minified_text != rule.css_text:
            texts.append(rule.minified_text)
        for text in texts:
            result.extend(self._check_serialization(rule, text, rule_index, sheet, base_url))

        if isinstance(rule, GroupingRule):
            for child in rule.rules:
                result.extend(self.check_rule(child, sheet_index, rule_index).diagnostics)

        if not result.ok:
            logger.debug(f"Rule {rule_index} of sheet {sheet_index} failed round trip: "
                         f"{len(result.diagnostics)} diagnostics")
        return result

    def report(self, sheet, diagnostic: Diagnostic):
        if self.reporter is None:
            return
        getattr(self.reporter, REPORTER_METHODS[diagnostic.kind])(sheet, diagnostic)

    def check_sheet(self, sheet: StyleSheet, sheet_index: int = 0) -> List[Diagnostic]:
        """Check every top-level rule of a sheet, reporting each diagnostic."""
        diagnostics = []
        for rule_index, rule in enumerate(sheet.rules):
            result = self.check_rule(rule, sheet_index, rule_index)
            for diagnostic in result.diagnostics:
                self.report(sheet, diagnostic)
            diagnostics.extend(result.diagnostics)
        logger.info(f"Round trip of sheet {sheet_index} ({sheet.href or 'embedded'}): "
                    f"{len(sheet.rules)} rules, {len(diagnostics)} diagnostics")
        return diagnostics

    def check_sheets(self, sheets: Sequence[StyleSheet]) -> bool:
        """True when every rule of every sheet survives the round trip."""
        ok = True
        for sheet_index, sheet in enumerate(sheets):
            if self.check_sheet(sheet, sheet_index):
                ok = False
        return ok
