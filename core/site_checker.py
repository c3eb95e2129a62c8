"""
Site Checker Module
Coordinates the comparison of one document across the configured backends.

For every site the left backend's document is loaded first. Its sheets are
checked for parse issues and serialization round trips, and its inline
styles and media attributes are validated. Then the element tree is walked
against the document of each right backend.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from agents.base import AgentDocument, UserAgent
from agents.wrapper_agent import WrapperAgent
from comparator.attribution import StyleAttributor, StyleSheetIndex
from comparator.rule_roundtrip import RuleRoundTripChecker
from comparator.tree_walker import TreeWalker
from core.config import CheckerConfig
from core.errors import OracleError
from core.html_parser import media_query_errors

logger = logging.getLogger(__name__)


@dataclass
class SiteResult:
    url: str
    passed: bool
    failures: List[str] = field(default_factory=list)
    findings_count: int = 0
    error: Optional[str] = None

    def to_dict(self):
        return {
            'url': self.url,
            'passed': self.passed,
            'failures': list(self.failures),
            'findings_count': self.findings_count,
            'error': self.error,
        }


def _missing_sheets(larger, smaller) -> List:
    hrefs = {sheet.href for sheet in smaller if sheet.href}
    missing = [sheet for sheet in larger if sheet.href and sheet.href not in hrefs]
    return missing or list(larger[len(smaller):])


class SiteChecker:
    """Compares the documents of a left backend against each right backend.

    Args:
        config: checker configuration.
        reporter: site error reporter receiving every finding.
        left_agent: reference backend.
        right_agents: backends compared against the reference.
    """

    def __init__(self, config: CheckerConfig, reporter, left_agent: UserAgent,
                 right_agents: Sequence[UserAgent]):
        self.config = config
        self.reporter = reporter
        self.left_agent = left_agent
        self.right_agents = list(right_agents)
        self.round_trip = RuleRoundTripChecker(reporter)

    def compare_sheets(self, left_sheets, right_sheets) -> bool:
        """Report a difference in the number of style sheets."""
        if len(left_sheets) == len(right_sheets):
            return True
        if len(left_sheets) > len(right_sheets):
            self.reporter.left_has_more_sheets(_missing_sheets(left_sheets, right_sheets), len(right_sheets))
        else:
            self.reporter.right_has_more_sheets(_missing_sheets(right_sheets, left_sheets), len(left_sheets))
        return False

    def report_sheet_issues(self, sheets) -> bool:
        """Report parse errors and warnings. True when no sheet has errors."""
        clean = True
        for sheet_index, sheet in enumerate(sheets):
            if sheet.has_errors():
                self.reporter.sheet_errors(sheet, sheet_index)
                clean = False
            if sheet.has_warnings():
                self.reporter.sheet_warnings(sheet, sheet_index)
                if self.config.fail_on_warning:
                    self.reporter.fail(f"Sheet {sheet_index} ({sheet.href or 'embedded'}) has warnings")
                    clean = False
        return clean

    def report_document_issues(self, document: AgentDocument) -> bool:
        """Report invalid inline styles and media attributes. True when there are none."""
        clean = True
        for element in document.iter_elements():
            style = element.inline_style()
            if style is not None and style.errors:
                self.reporter.inline_style_error(element, element.get_attribute('style'), style.errors)
                clean = False
            if element.local_name in ('style', 'link'):
                media = element.get_attribute('media')
                errors = media_query_errors(media)
                if errors:
                    self.reporter.media_query_error(element, media, errors)
                    clean = False
        return clean

    def _open_right_document(self, agent: UserAgent, url: str, left_document: AgentDocument) -> AgentDocument:
        if isinstance(agent, WrapperAgent):
            return agent.open_document(url, left_document)
        return agent.read_url(url)

    def check(self, url: str) -> SiteResult:
        """Compare one site.

        Raises:
            OracleError: on a fatal error, after the reporter has been closed.
        """
        reporter = self.reporter
        with reporter:
            reporter.start_site_report(url)
            left_document = self.left_agent.read_url(url)
            left_sheets = left_document.get_style_sheets()
            reporter.sheets = left_sheets

            self.report_sheet_issues(left_sheets)
            self.report_document_issues(left_document)
            self.round_trip.check_sheets(left_sheets)

            node_count = left_document.count_elements()
            verify_styles = node_count <= self.config.max_nodes
            if not verify_styles:
                logger.warning(f"{url} has {node_count} elements (limit {self.config.max_nodes}), "
                               f"skipping computed style verification")

            left_index = StyleSheetIndex(left_sheets)
            for agent in self.right_agents:
                reporter.set_side_descriptions(self.left_agent.name, agent.name)
                right_document = self._open_right_document(agent, url, left_document)
                right_sheets = right_document.get_style_sheets()
                self.compare_sheets(left_sheets, right_sheets)

                attributor = StyleAttributor(left_index, StyleSheetIndex(right_sheets))
                walker = TreeWalker(
                    reporter, attributor, agent.name,
                    compare_attributes=self.config.compare_attributes,
                    ignore_non_css_hints=isinstance(agent, WrapperAgent),
                    verify_styles=verify_styles,
                )
                walker.check_tree(left_document.document_element, right_document.document_element)
                logger.info(f"[{agent.name}] Walked {walker.element_count} elements of {url}")

            return SiteResult(url, not reporter.has_failures(), list(reporter.failures), reporter.findings)

    def check_site(self, url: str) -> SiteResult:
        """Like ``check``, turning fatal errors into a failed result."""
        try:
            result = self.check(url)
        except OracleError as e:
            logger.error(f"Fatal error checking {url}: {e}", exc_info=True)
            return SiteResult(url, False, list(self.reporter.failures) + [str(e)],
                              self.reporter.findings, error=str(e))
        if result.passed:
            logger.info(f"{url}: passed")
        else:
            logger.error(f"{url}: failed with {result.findings_count} findings")
        return result

    def check_sites(self, urls: Sequence[str]) -> List[SiteResult]:
        return [self.check_site(url) for url in urls]
