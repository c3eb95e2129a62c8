"""
Attribution Module
Traces residual style differences to the selectors able to produce them.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from comparator.style_diff import diff_styles
from core import property_db
from core.cascade import CASCADING_GROUPS
from core.equivalence import ValueComparator
from core.errors import StyleComputationError
from core.selectors import Selector
from core.stylesheet import Declaration, GroupingRule, StyleRule, StyleSheet
from core.value_parser import parse_value

logger = logging.getLogger(__name__)

LEFT = 'left'
RIGHT = 'right'

NO_MATCHING_SELECTOR = 'no matching selector'


def _walk_style_rules(rules, out: List[StyleRule]):
    for rule in rules:
        if isinstance(rule, StyleRule):
            out.append(rule)
        elif isinstance(rule, GroupingRule) and rule.at_keyword in CASCADING_GROUPS:
            _walk_style_rules(rule.rules, out)


class StyleSheetIndex:
    """Reverse index from property name to the style rules setting it.

    Built on first use and read-only afterwards. One index serves a single
    document comparison.
    """

    def __init__(self, sheets: Sequence[StyleSheet]):
        self.sheets = list(sheets)
        self._index: Optional[List[Dict[str, List[Tuple[StyleRule, Declaration]]]]] = None

    @property
    def sheet_count(self) -> int:
        return len(self.sheets)

    def _build(self):
        index = []
        for sheet in self.sheets:
            by_property: Dict[str, List[Tuple[StyleRule, Declaration]]] = {}
            rules: List[StyleRule] = []
            _walk_style_rules(sheet.rules, rules)
            for rule in rules:
                for declaration in rule.style.declarations():
                    by_property.setdefault(declaration.name, []).append((rule, declaration))
            index.append(by_property)
        logger.debug(f"Built selector index over {len(index)} sheets")
        return index

    def _entries(self, sheet_index: int, property_name: str) -> List[Tuple[StyleRule, Declaration]]:
        if self._index is None:
            self._index = self._build()
        return self._index[sheet_index].get(property_name, [])

    def selectors_for_property(self, sheet_index: int, property_name: str) -> List[Selector]:
        selectors = []
        for rule, _ in self._entries(sheet_index, property_name):
            selectors.extend(rule.selectors)
        return selectors

    def selectors_for_property_value(self, sheet_index: int, property_name: str, value) -> List[Selector]:
        """Selectors of rules declaring the property with a value equivalent to ``value``."""
        selectors = []
        for rule, declaration in self._entries(sheet_index, property_name):
            comparator = ValueComparator(rule.style, base_url=self.sheets[sheet_index].href)
            if comparator.is_equivalent(property_name, declaration.value, value):
                selectors.extend(rule.selectors)
        return selectors


@dataclass
class AttributionReport:
    """Selectors of one sheet that set a property on the element of one side.

    ``matched`` holds the selectors matching the elements of both sides,
    ``unmatched`` those matching only this side's element.
    """
    side: str
    sheet_index: int
    property: str
    value: object = None
    matched: List[Selector] = field(default_factory=list)
    unmatched: List[Selector] = field(default_factory=list)

    @property
    def explains(self) -> bool:
        return bool(self.unmatched)


class StyleAttributor:
    """Attributes one-sided or differing properties to selector matching."""

    def __init__(self, left_index: Optional[StyleSheetIndex], right_index: Optional[StyleSheetIndex] = None):
        self.left_index = left_index
        self.right_index = right_index

    def _report(self, side, sheet_index, element, other_element, property_name, value, selectors):
        matched = []
        unmatched = []
        for selector in selectors:
            if not element.matches(selector):
                continue
            if other_element is not None and other_element.matches(selector):
                matched.append(selector)
            else:
                unmatched.append(selector)
        if not matched and not unmatched:
            return None
        return AttributionReport(side, sheet_index, property_name, value, matched, unmatched)

    def attribute(self, side: str, element, other_element, property_name: str, value=None) -> List[AttributionReport]:
        """Search the side's sheets for selectors explaining the property.

        The value-specific lookup runs first. When it explains nothing, the
        property-only lookup is tried, keeping only the reports that explain.
        """
        index = self.left_index if side == LEFT else self.right_index
        if index is None:
            return []

        reports = []
        if value is not None:
            for sheet_index in range(index.sheet_count):
                selectors = index.selectors_for_property_value(sheet_index, property_name, value)
                report = self._report(side, sheet_index, element, other_element, property_name, value, selectors)
                if report is not None:
                    reports.append(report)
        if any(report.explains for report in reports):
            return reports

        explaining = []
        for sheet_index in range(index.sheet_count):
            selectors = index.selectors_for_property(sheet_index, property_name)
            report = self._report(side, sheet_index, element, other_element, property_name, value, selectors)
            if report is not None and report.explains:
                explaining.append(report)
        return explaining or reports


class StyleComparison:
    """Computed style comparison of one aligned element pair."""

    def __init__(self, left_elem, right_elem, attributor: Optional[StyleAttributor] = None,
                 ignore_non_css_hints: bool = False, backend_name: Optional[str] = None):
        self.left_elem = left_elem
        self.right_elem = right_elem
        self.attributor = attributor
        self.ignore_non_css_hints = ignore_non_css_hints
        self.backend_name = backend_name

    def _is_initial(self, comparator: ValueComparator, property_name: str, value) -> bool:
        initial = property_db.initial_value(property_name)
        return initial is not None and comparator.is_equivalent(property_name, value, parse_value(initial))

    def _attribute(self, side, element, other_element, property_name, value) -> List[AttributionReport]:
        if self.attributor is None:
            return []
        return self.attributor.attribute(side, element, other_element, property_name, value)

    def _report_one_sided(self, reporter, side, element, other_element, property_name, value):
        reports = [r for r in self._attribute(side, element, other_element, property_name, value) if r.explains]
        if not reports:
            reporter.unexplained_property(element, side, property_name, value, NO_MATCHING_SELECTOR,
                                          backend_name=self.backend_name)
            return
        for report in reports:
            if side == LEFT:
                reporter.unmatched_left_selector(element, property_name, value, report.unmatched,
                                                 report.sheet_index, backend_name=self.backend_name)
            else:
                reporter.unmatched_right_selector(element, property_name, value, report.unmatched,
                                                  report.sheet_index, backend_name=self.backend_name)

    def compare(self, reporter) -> bool:
        """Diff the computed styles and report what survives equivalence.

        Returns:
            True when no difference was reported.

        Raises:
            StyleComputationError: when either style cannot be computed.
        """
        try:
            left_style = self.left_elem.get_computed_style(None)
            right_style = self.right_elem.get_computed_style(None)
        except StyleComputationError:
            raise
        except Exception as e:
            raise StyleComputationError(str(self.left_elem), e) from e

        diff = diff_styles(left_style, right_style)
        if not diff.has_differences():
            return True

        comparator = ValueComparator(left_style, base_url=left_style.base_url, other_style=right_style)
        clean = True
        hints_differ = (self.ignore_non_css_hints and
                        self.left_elem.has_presentational_hints() != self.right_elem.has_presentational_hints())

        for name in diff.only_left:
            value = left_style.get_property_value(name)
            if self._is_initial(comparator, name, value):
                continue
            if hints_differ:
                logger.debug(f"Ignoring left-only '{name}' on {self.left_elem}: presentational hints differ")
                continue
            self._report_one_sided(reporter, LEFT, self.left_elem, self.right_elem, name, value)
            clean = False

        for name in diff.only_right:
            value = right_style.get_property_value(name)
            if self._is_initial(comparator, name, value):
                continue
            self._report_one_sided(reporter, RIGHT, self.right_elem, self.left_elem, name, value)
            clean = False

        for name in diff.different:
            left_value = left_style.get_property_value(name)
            right_value = right_style.get_property_value(name)
            if comparator.is_equivalent(name, left_value, right_value):
                continue
            reports = self._attribute(LEFT, self.left_elem, self.right_elem, name, left_value)
            reports += self._attribute(RIGHT, self.right_elem, self.left_elem, name, right_value)
            reporter.different_computed_values(self.left_elem, self.right_elem, name, left_value, right_value,
                                               reports, backend_name=self.backend_name)
            clean = False
        return clean
