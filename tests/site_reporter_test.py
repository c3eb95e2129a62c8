import sys
import os
import logging
import pytest
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from agents.soup_agent import SoupAgent
from comparator.rule_roundtrip import Diagnostic
from comparator.site_reporter import (
    GLOBAL_FAIL_LOG, LogSiteErrorReporter, TreeSiteErrorReporter, describe_element,
)
from core.errors import StyleComputationError
from core.stylesheet import StyleSheet
from utils.net_cache import CachingFetcher, NetCache, encode_string

URL = 'http://example.com/index.html'


def body_and_paragraph():
    document = SoupAgent(CachingFetcher()).parse('<html><body><p id="main">a</p></body></html>', URL)
    body = document.document_element.child_elements()[0]
    return body, body.child_elements()[0]


def test_describe_element():
    body, paragraph = body_and_paragraph()
    assert describe_element(body) == '<body> parent=html'
    assert describe_element(paragraph) == '<p id="main">'
    assert describe_element(None) == '(none)'

def test_log_reporter_writes_through_logging(caplog):
    body, _ = body_and_paragraph()
    reporter = LogSiteErrorReporter()
    reporter.start_site_report(URL)
    assert not reporter.has_failures()

    with caplog.at_level(logging.ERROR, logger='comparator.site_reporter'):
        reporter.different_nodes(body, ['missing in right: <div>'], backend_name='right')
    assert 'Found 1 different nodes for parent: <body> parent=html' in caplog.text
    assert 'Node #0: missing in right: <div>' in caplog.text
    assert reporter.has_failures()

    reporter.start_site_report('http://example.com/other.html')
    assert not reporter.has_failures()

def test_failure_message_format():
    _, paragraph = body_and_paragraph()
    reporter = LogSiteErrorReporter()
    reporter.fail('Style mismatch', paragraph, ['color', 'margin'], backend_name='wrapper')
    assert reporter.failures == ["[wrapper] Style mismatch at: p id='main', properties: color margin"]

def test_side_descriptions_used_in_messages(caplog):
    _, paragraph = body_and_paragraph()
    reporter = LogSiteErrorReporter()
    reporter.set_side_descriptions('soup[html.parser]', 'DOM wrapper')
    with caplog.at_level(logging.ERROR, logger='comparator.site_reporter'):
        reporter.unexplained_property(paragraph, 'right', 'color', None, 'no matching selector')
    assert 'found only in DOM wrapper' in caplog.text

def test_tree_reporter_files(tmp_path):
    cache = NetCache(tmp_path)
    reporter = TreeSiteErrorReporter(cache)
    body, _ = body_and_paragraph()
    sheet = StyleSheet.parse('a { color: red }', href='http://example.com/site.css')

    with reporter:
        reporter.start_site_report(URL)
        reporter.different_nodes(body, ['extra in right: <p>'], backend_name='right')
        reporter.rule_reparse_error(sheet, Diagnostic('reparse-error', 0, None, 'a {color: red;}', 'a {}', 'boom'))
        reporter.minified_parse_errors(sheet, Diagnostic('minified-parse-errors', 0, None, 'a', 'a{', 'eof'))

    prefix = encode_string(URL)[:10]
    host_dir = tmp_path / 'example.com'
    assert 'Found 1 different nodes' in (host_dir / f"{prefix}.log").read_text()
    rule_log = (host_dir / f"{prefix}-rule.err").read_text()
    assert 'Failed to re-parse rule 0 in style sheet http://example.com/site.css' in rule_log
    assert 'Problem: boom' in rule_log
    assert 'Minified text has parse errors' in (host_dir / f"{prefix}-mini.err").read_text()
    assert reporter._main is None and reporter._serial is None and reporter._mini is None
    reporter.close()

def test_tree_reporter_closes_files_on_fatal_error(tmp_path):
    reporter = TreeSiteErrorReporter(NetCache(tmp_path))
    body, _ = body_and_paragraph()
    with pytest.raises(StyleComputationError):
        with reporter:
            reporter.start_site_report(URL)
            reporter.different_nodes(body, ['missing in right: <p>'])
            raise StyleComputationError('<p>')
    assert reporter._main is None
    main_file = tmp_path / 'example.com' / f"{encode_string(URL)[:10]}.log"
    assert 'missing in right: <p>' in main_file.read_text()

def test_tree_reporter_fail_log_and_rotation(tmp_path):
    reporter = TreeSiteErrorReporter(NetCache(tmp_path))
    with reporter:
        reporter.start_site_report(URL)
        reporter.fail('Sheet count mismatch')
    fail_log = tmp_path / GLOBAL_FAIL_LOG
    assert fail_log.read_text() == f"{URL}\nSheet count mismatch\n"

    TreeSiteErrorReporter.rotate_global_file(tmp_path)
    assert not fail_log.exists()
    assert (tmp_path / (GLOBAL_FAIL_LOG + '.old')).read_text().startswith(URL)

def test_tree_reporter_dumps_embedded_sheets(tmp_path):
    document = SoupAgent(CachingFetcher()).parse('<html><head><style>p { color: red }</style></head></html>', URL)
    sheet = document.get_style_sheets()[0]
    reporter = TreeSiteErrorReporter(NetCache(tmp_path))
    with reporter:
        reporter.start_site_report(URL)
        reporter.select_target_sheet(sheet, 0)
    dump = tmp_path / 'example.com' / f"{encode_string('p { color: red }')[:8]}.css"
    assert dump.read_text() == 'p { color: red }'

def test_inline_style_and_media_query_messages(caplog):
    document = SoupAgent(CachingFetcher()).parse(
        '<html><head><link rel="stylesheet" href="a.css" media="screen print"></head>'
        '<body><p style="color:">a</p></body></html>', URL)
    link = document.document_element.child_elements()[0].child_elements()[0]
    paragraph = document.document_element.child_elements()[1].child_elements()[0]
    reporter = LogSiteErrorReporter()
    reporter.start_site_report(URL)

    with caplog.at_level(logging.ERROR, logger='comparator.site_reporter'):
        reporter.inline_style_error(paragraph, 'color:', paragraph.inline_style().errors)
        reporter.media_query_error(link, 'screen print', ["Invalid media query 'screen print'"])
    assert 'Inline style error on element <p style="color:"> parent=body' in caplog.text
    assert "Empty value for property 'color'" in caplog.text
    assert 'Media query error [node=link]: screen print' in caplog.text
    assert reporter.findings == 2
