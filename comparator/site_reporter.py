"""
Site Reporter Module
Sinks receiving the findings of a site comparison.

Every finding category has its own call. Reporters are context managers and
release their resources on every exit path; ``close`` may be called more
than once.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, List, Optional, Sequence

from utils.file_utils import append_line, ensure_directory, rotate_file
from utils.net_cache import NetCache, encode_string

logger = logging.getLogger(__name__)

GLOBAL_FAIL_LOG = 'fail.log'


def value_text(value) -> str:
    if value is None:
        return ''
    return getattr(value, 'css_text', str(value))


def describe_element(element) -> str:
    """Start tag plus id or parent name of an element."""
    if element is None:
        return '(none)'
    text = element.start_tag()
    if not element.element_id:
        parent = element.parent
        if parent is not None:
            text += f" parent={parent.node_name}"
    return text


def selector_list_text(selectors: Sequence) -> str:
    return ', '.join(str(selector) for selector in selectors)


class SiteErrorReporter(ABC):
    """Interface of the reporting sink of one site comparison."""

    @abstractmethod
    def start_site_report(self, url: str) -> None:
        pass

    @abstractmethod
    def set_side_descriptions(self, left: str, right: str) -> None:
        pass

    @abstractmethod
    def left_has_more_sheets(self, missing_sheets: List, smaller_count: int) -> None:
        pass

    @abstractmethod
    def right_has_more_sheets(self, missing_sheets: List, smaller_count: int) -> None:
        pass

    @abstractmethod
    def sheet_errors(self, sheet, sheet_index: int) -> None:
        pass

    @abstractmethod
    def sheet_warnings(self, sheet, sheet_index: int) -> None:
        pass

    @abstractmethod
    def inline_style_error(self, element, style_text: str, errors: List) -> None:
        pass

    @abstractmethod
    def media_query_error(self, element, media: str, errors: List[str]) -> None:
        pass

    @abstractmethod
    def minified_missing_property(self, sheet, diagnostic) -> None:
        pass

    @abstractmethod
    def minified_extra_property(self, sheet, diagnostic) -> None:
        pass

    @abstractmethod
    def minified_different_values(self, sheet, diagnostic) -> None:
        pass

    @abstractmethod
    def minified_parse_errors(self, sheet, diagnostic) -> None:
        pass

    @abstractmethod
    def reparsed_missing_property(self, sheet, diagnostic) -> None:
        pass

    @abstractmethod
    def reparsed_extra_property(self, sheet, diagnostic) -> None:
        pass

    @abstractmethod
    def reparsed_different_values(self, sheet, diagnostic) -> None:
        pass

    @abstractmethod
    def rule_reparse_issue(self, sheet, diagnostic) -> None:
        pass

    @abstractmethod
    def rule_reparse_error(self, sheet, diagnostic) -> None:
        pass

    @abstractmethod
    def different_nodes(self, parent, node_diff: List[str], backend_name: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def different_attributes(self, element, other_element, attribute_names: List[str],
                             backend_name: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def unmatched_left_selector(self, element, property_name: str, value, unmatched: List,
                                sheet_index: int, backend_name: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def unmatched_right_selector(self, element, property_name: str, value, unmatched: List,
                                 sheet_index: int, backend_name: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def unexplained_property(self, element, side: str, property_name: str, value, attribution: str,
                             backend_name: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def different_computed_values(self, element, other_element, property_name: str, value, other_value,
                                  reports: List, backend_name: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def fail(self, message: str, element=None, properties: Optional[Sequence[str]] = None,
             backend_name: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def has_failures(self) -> bool:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class BaseSiteErrorReporter(SiteErrorReporter):
    """Message formatting shared by the concrete reporters."""

    def __init__(self):
        self.left_side = 'left'
        self.right_side = 'right'
        self.site_url: Optional[str] = None
        self.sheets: List = []
        # Index of the sheet the last sheet-related message referred to
        self.last_sheet_index = -1
        self.failures: List[str] = []
        self.findings = 0

    @abstractmethod
    def write_error(self, message: str, exc_info=None) -> None:
        pass

    @abstractmethod
    def write_warning(self, message: str) -> None:
        pass

    @abstractmethod
    def write_minification_error(self, message: str) -> None:
        pass

    @abstractmethod
    def write_serialization_error(self, message: str, exc_info=None) -> None:
        pass

    @abstractmethod
    def select_target_sheet(self, sheet, sheet_index: int, warn: bool = False) -> None:
        """Announce the sheet subsequent messages refer to, once per change."""

    def start_site_report(self, url: str) -> None:
        self.site_url = url
        self.last_sheet_index = -1
        self.failures = []
        self.findings = 0

    def set_side_descriptions(self, left: str, right: str) -> None:
        self.left_side = left
        self.right_side = right

    def _finding(self):
        self.findings += 1

    def has_failures(self) -> bool:
        return bool(self.failures) or self.findings > 0

    def _missing_sheets(self, missing_sheets, smaller_count, more_side, other_side, sheet_index_marker):
        self._finding()
        self.write_error(f"{more_side} has more style sheets, "
                         f"{len(missing_sheets) + smaller_count} instead of {smaller_count}")
        for sheet in missing_sheets:
            message = f"Missing sheet in {other_side}, href {sheet.href}"
            owner = getattr(sheet, 'owner_node', None)
            if owner is not None:
                message += f", owner: {owner.name}"
            self.write_error(message)
            self.select_target_sheet(sheet, sheet_index_marker)

    def left_has_more_sheets(self, missing_sheets, smaller_count):
        self._missing_sheets(missing_sheets, smaller_count, self.left_side, self.right_side, -2)

    def right_has_more_sheets(self, missing_sheets, smaller_count):
        self._missing_sheets(missing_sheets, smaller_count, self.right_side, self.left_side, -3)

    def sheet_errors(self, sheet, sheet_index):
        self._finding()
        self.select_target_sheet(sheet, sheet_index)
        for issue in sheet.errors:
            self.write_error(f"Sheet error: {issue}")

    def sheet_warnings(self, sheet, sheet_index):
        self.select_target_sheet(sheet, sheet_index, warn=True)
        for issue in sheet.warnings:
            self.write_warning(f"Sheet warning: {issue}")

    def inline_style_error(self, element, style_text, errors):
        self._finding()
        self.write_error(f"Inline style error on element {describe_element(element)}:")
        for issue in errors:
            self.write_error(f"  {issue}")

    def media_query_error(self, element, media, errors):
        self._finding()
        self.write_error(f"Media query error [node={element.node_name}]: {media}")
        for message in errors:
            self.write_error(f"  {message}")

    def _rule_context(self, sheet, diagnostic) -> str:
        href = getattr(sheet, 'href', None)
        return f"rule {diagnostic.rule_index} in style sheet {href}"

    def minified_missing_property(self, sheet, diagnostic):
        self._finding()
        self.write_minification_error("******** Minification issue:")
        self.write_minification_error(
            f"Property {diagnostic.property} with value '{diagnostic.detail}' found only in non-minified "
            f"{self._rule_context(sheet, diagnostic)}:\n{diagnostic.original_text}\nMinified: {diagnostic.reparsed_text}")

    def minified_extra_property(self, sheet, diagnostic):
        self._finding()
        self.write_minification_error("******** Minification issue:")
        self.write_minification_error(
            f"Property {diagnostic.property} with value '{diagnostic.detail}' found only in minified "
            f"{self._rule_context(sheet, diagnostic)}:\n{diagnostic.original_text}\nMinified: {diagnostic.reparsed_text}")

    def minified_different_values(self, sheet, diagnostic):
        self._finding()
        self.write_minification_error("******** Minification issue:")
        self.write_minification_error(
            f"Different values found for property {diagnostic.property} ({diagnostic.detail}).\n"
            f"Rule: {self._rule_context(sheet, diagnostic)}:\n{diagnostic.original_text}\n"
            f"Minified: {diagnostic.reparsed_text}")

    def minified_parse_errors(self, sheet, diagnostic):
        self._finding()
        self.write_minification_error("******** Minification issue:")
        self.write_minification_error(f"Minified text has parse errors. Original: {diagnostic.original_text}")
        self.write_minification_error(f"Problem: {diagnostic.detail}\nMinified: {diagnostic.reparsed_text}")

    def reparsed_missing_property(self, sheet, diagnostic):
        self._finding()
        self.write_serialization_error(
            f"Re-parse check: property {diagnostic.property} with value '{diagnostic.detail}' found only in "
            f"initial {self._rule_context(sheet, diagnostic)}:\n{diagnostic.original_text}\n"
            f"Re-parsed: {diagnostic.reparsed_text}")

    def reparsed_extra_property(self, sheet, diagnostic):
        self._finding()
        self.write_serialization_error(
            f"Re-parse check: property {diagnostic.property} with value '{diagnostic.detail}' found only in "
            f"re-parsed {self._rule_context(sheet, diagnostic)}:\n{diagnostic.original_text}\n"
            f"Re-parsed: {diagnostic.reparsed_text}")

    def reparsed_different_values(self, sheet, diagnostic):
        self._finding()
        self.write_serialization_error(
            f"Re-parse check: different values found for property {diagnostic.property} ({diagnostic.detail}).\n"
            f"Rule: {self._rule_context(sheet, diagnostic)}:\n{diagnostic.original_text}\n"
            f"Re-parsed: {diagnostic.reparsed_text}")

    def rule_reparse_issue(self, sheet, diagnostic):
        self._finding()
        self.write_serialization_error(
            f"Failed to re-parse {self._rule_context(sheet, diagnostic)} ({diagnostic.kind}): "
            f"{diagnostic.original_text}\nbecame: {diagnostic.reparsed_text}")

    def rule_reparse_error(self, sheet, diagnostic):
        self._finding()
        self.write_serialization_error(
            f"Failed to re-parse {self._rule_context(sheet, diagnostic)}: {diagnostic.original_text}\n"
            f"Problem: {diagnostic.detail}\nResult: {diagnostic.reparsed_text}")

    def different_nodes(self, parent, node_diff, backend_name=None):
        self._finding()
        lines = [f"[{backend_name}] Found {len(node_diff)} different nodes for parent: {describe_element(parent)}"]
        lines.extend(f"Node #{i}: {entry}" for i, entry in enumerate(node_diff))
        self.write_error('\n'.join(lines))

    def different_attributes(self, element, other_element, attribute_names, backend_name=None):
        self._finding()
        self.write_error(f"[{backend_name}] Different attributes ({', '.join(attribute_names)}) "
                         f"for element {describe_element(element)} vs {describe_element(other_element)}")

    def _unmatched_selector(self, element, property_name, value, unmatched, sheet_index,
                            backend_name, side, other_side):
        self._finding()
        self.write_error(f"[{backend_name}] Failing due to issue in sheet {sheet_index}:")
        if 0 <= sheet_index < len(self.sheets):
            self.select_target_sheet(self.sheets[sheet_index], sheet_index)
        self.write_error(f"Failing due to issue with style on element: {describe_element(element)}")
        self.write_error(f"{other_side} comparison: on element <{element.tag_name}>, property {property_name} "
                         f"with value '{value_text(value)}' found only in {side} sheet {sheet_index}")
        for selector in unmatched:
            self.write_error(f"{other_side} does not match: {selector}")

    def unmatched_left_selector(self, element, property_name, value, unmatched, sheet_index, backend_name=None):
        self._unmatched_selector(element, property_name, value, unmatched, sheet_index,
                                 backend_name, self.left_side, self.right_side)

    def unmatched_right_selector(self, element, property_name, value, unmatched, sheet_index, backend_name=None):
        self._unmatched_selector(element, property_name, value, unmatched, sheet_index,
                                 backend_name, self.right_side, self.left_side)

    def unexplained_property(self, element, side, property_name, value, attribution, backend_name=None):
        self._finding()
        owner = self.left_side if side == 'left' else self.right_side
        self.write_error(f"[{backend_name}] Property {property_name} with value '{value_text(value)}' "
                         f"found only in {owner} for element {describe_element(element)} ({attribution})")

    def different_computed_values(self, element, other_element, property_name, value, other_value,
                                  reports, backend_name=None):
        self._finding()
        self.write_error(f"[{backend_name}] Failing due to issue with computed style for element: "
                         f"{describe_element(element)}")
        self.write_error(f"Different values found for property {property_name} "
                         f"('{value_text(value)}' vs '{value_text(other_value)}')")
        for report in reports:
            if report.explains:
                side = self.left_side if report.side == 'left' else self.right_side
                self.write_error(f"Selectors matching only in {side} (sheet {report.sheet_index}): "
                                 f"{selector_list_text(report.unmatched)}")

    def format_failure(self, message, element=None, properties=None, backend_name=None) -> str:
        text = f"[{backend_name}] {message}" if backend_name else message
        if element is not None:
            namespace = getattr(element, 'namespace_uri', None)
            text += f" at: {namespace + ':' if namespace else ''}{element.tag_name}"
            if element.element_id:
                text += f" id='{element.element_id}'"
            elif element.parent is not None:
                text += f" parent={element.parent.node_name}"
        if properties:
            text += ", properties: " + ' '.join(properties)
        return text

    def fail(self, message, element=None, properties=None, backend_name=None):
        text = self.format_failure(message, element, properties, backend_name)
        self.failures.append(text)
        self.write_error(text)


class LogSiteErrorReporter(BaseSiteErrorReporter):
    """Writes every finding through logging."""

    def write_error(self, message, exc_info=None):
        logger.error(message, exc_info=exc_info)

    def write_warning(self, message):
        logger.warning(message)

    def write_minification_error(self, message):
        logger.error(message)

    def write_serialization_error(self, message, exc_info=None):
        logger.error(message, exc_info=exc_info)

    def select_target_sheet(self, sheet, sheet_index, warn=False):
        if self.last_sheet_index != sheet_index:
            href = getattr(sheet, 'href', None) or '(embedded)'
            message = f"Sheet #{sheet_index}: {href}"
            if warn:
                logger.warning(message)
            else:
                logger.error(message)
            self.last_sheet_index = sheet_index

    def close(self):
        for handler in logging.getLogger().handlers:
            handler.flush()


class TreeSiteErrorReporter(BaseSiteErrorReporter):
    """Writes findings to per-site files in the cache's host directory.

    ``<hash10>.log`` receives the main findings, ``<hash10>-mini.err`` the
    minification issues and ``<hash10>-rule.err`` the rule serialization
    issues. Files are opened on first write.
    """

    def __init__(self, cache: NetCache):
        super().__init__()
        self.cache = cache
        self.host_dir: Optional[Path] = None
        self.filename: Optional[str] = None
        self._main: Optional[IO[str]] = None
        self._mini: Optional[IO[str]] = None
        self._serial: Optional[IO[str]] = None

    @staticmethod
    def get_global_file(cachedir: Path) -> Path:
        return Path(cachedir) / GLOBAL_FAIL_LOG

    @classmethod
    def rotate_global_file(cls, cachedir: Path) -> None:
        """Move the previous run's fail.log aside."""
        if rotate_file(cls.get_global_file(cachedir)):
            logger.info(f"Rotated {cls.get_global_file(cachedir)}")

    def start_site_report(self, url):
        self.close()
        super().start_site_report(url)
        self.host_dir = self.cache.get_host_directory(url)
        self.filename = encode_string(url)[:10]
        ensure_directory(self.host_dir)
        for path in (self.main_file, self.minification_file, self.serialization_file):
            path.unlink(missing_ok=True)

    @property
    def main_file(self) -> Path:
        return self.host_dir / f"{self.filename}.log"

    @property
    def minification_file(self) -> Path:
        return self.host_dir / f"{self.filename}-mini.err"

    @property
    def serialization_file(self) -> Path:
        return self.host_dir / f"{self.filename}-rule.err"

    def _open(self, path: Path) -> Optional[IO[str]]:
        try:
            return open(path, 'w', encoding='utf-8')
        except OSError as e:
            logger.error(f"Unable to write to {path}: {e}")
            return None

    def _print(self, stream: Optional[IO[str]], message: str, exc_info=None):
        if stream is None:
            logger.error(message, exc_info=exc_info)
            return
        stream.write(message + '\n')
        if exc_info:
            logger.debug(message, exc_info=exc_info)

    def write_error(self, message, exc_info=None):
        if self._main is None:
            self._main = self._open(self.main_file)
        self._print(self._main, message, exc_info)

    def write_warning(self, message):
        self.write_error(f"WARNING: {message}")

    def write_minification_error(self, message):
        if self._mini is None:
            self._mini = self._open(self.minification_file)
        self._print(self._mini, message)

    def write_serialization_error(self, message, exc_info=None):
        if self._serial is None:
            self._serial = self._open(self.serialization_file)
        self._print(self._serial, message, exc_info)

    def _internal_path(self, href: Optional[str]) -> str:
        if not href or '://' not in href:
            return '-'
        return f"{self.cache.get_host_directory(href).name}/{encode_string(href)}"

    def select_target_sheet(self, sheet, sheet_index, warn=False):
        if self.last_sheet_index == sheet_index:
            return
        owner = getattr(sheet, 'owner_node', None)
        if owner is not None and owner.name == 'style':
            text = owner.get_text().strip()
            if text:
                sheet_file = self.host_dir / f"{encode_string(text)[:8]}.css"
                try:
                    sheet_file.write_text(text, encoding='utf-8')
                except OSError as e:
                    logger.warning(f"Unable to dump embedded sheet to {sheet_file}: {e}")
                self.write_warning(f"Sheet: {sheet_file.resolve()}")
        else:
            href = getattr(sheet, 'href', None)
            self.write_warning(f"Sheet at {href}\npath: {self._internal_path(href)}")
        self.last_sheet_index = sheet_index

    def _rule_context(self, sheet, diagnostic):
        href = getattr(sheet, 'href', None)
        return f"{super()._rule_context(sheet, diagnostic)} (path: {self._internal_path(href)})"

    def fail(self, message, element=None, properties=None, backend_name=None):
        text = self.format_failure(message, element, properties, backend_name)
        global_file = self.get_global_file(self.cache.cachedir)
        try:
            append_line(global_file, f"{self.site_url}\n{text}\n")
        except OSError as e:
            logger.error(f"Unable to write to {global_file}: {e}")
        self.failures.append(text)
        self.write_error(text)

    def close(self):
        for attribute in ('_serial', '_main', '_mini'):
            stream = getattr(self, attribute)
            if stream is not None:
                try:
                    stream.flush()
                    stream.close()
                except OSError as e:
                    logger.error(f"Problems writing to {stream.name}: {e}")
                setattr(self, attribute, None)
