import sys
import os
import pytest
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from agents.soup_agent import SoupAgent
from agents.wrapper_agent import WrapperAgent
from comparator.tree_walker import NodeWrapper, TreeWalker
from core.errors import StyleComputationError
from utils.net_cache import CachingFetcher

INDENTED = """<html>
<head><style>p { color: red } .note { margin: 0 }</style></head>
<body>
  <!-- nav -->
  <div class="note">
    <p>first</p>
    <p>second</p>
  </div>
</body>
</html>"""

COMPACT = ('<html><head><style>p { color: red } .note { margin: 0 }</style></head>'
           '<body><div class="note"><p>first</p><p>second</p></div></body></html>')


def parse(html):
    return SoupAgent(CachingFetcher()).parse(html, 'http://host/index.html')


def test_whitespace_and_comments_do_not_break_alignment(recorder):
    left = parse(INDENTED)
    right = parse(COMPACT)
    walker = TreeWalker(recorder, None, 'compact')
    assert walker.check_tree(left.document_element, right.document_element)
    assert recorder.calls == []
    assert walker.element_count == left.count_elements()

def test_wrapper_view_aligns_with_its_source(recorder):
    left = parse(INDENTED)
    right = WrapperAgent(SoupAgent(CachingFetcher())).open_document('http://host/index.html', left)
    walker = TreeWalker(recorder, None, 'DOM wrapper', ignore_non_css_hints=True)
    assert walker.check_tree(left.document_element, right.document_element)
    assert recorder.calls == []

def test_missing_child_is_reported(recorder):
    left = parse('<html><body><div></div><p>text</p></body></html>')
    right = parse('<html><body><div></div></body></html>')
    walker = TreeWalker(recorder, None, 'right', verify_styles=False)
    assert not walker.check_tree(left.document_element, right.document_element)

    (name, args, kwargs), = recorder.called('different_nodes')
    assert args[0].local_name == 'body'
    assert args[1] == ['missing in right: <p>']
    assert kwargs == {'backend_name': 'right'}

def test_child_list_diff_reports_extra_nodes(recorder):
    left = parse('<div><span>a</span></div>')
    right = parse('<div><span>a</span><em>b</em></div>')
    walker = TreeWalker(recorder, None, 'right', verify_styles=False)
    left_div, right_div = left.document_element, right.document_element
    diff = walker.compare_child_lists(left_div, left_div.child_nodes(), right_div.child_nodes())
    assert diff == ['extra in right: <em>']

def test_different_tag_names_are_reported(recorder):
    left = parse('<div><span>a</span></div>')
    right = parse('<div><em>a</em></div>')
    walker = TreeWalker(recorder, None, 'right', verify_styles=False)
    assert not walker.check_tree(left.document_element, right.document_element)
    (_, args, _), = recorder.called('different_nodes')
    assert args[1] == ['<span> vs <em>']

def test_attributes_compared_except_class(recorder):
    left = parse('<div><a href="x.html" class="one">a</a></div>')
    right = parse('<div><a href="y.html" class="two">a</a></div>')
    walker = TreeWalker(recorder, None, 'right', compare_attributes=True, verify_styles=False)
    assert not walker.check_tree(left.document_element, right.document_element)
    (_, args, kwargs), = recorder.called('different_attributes')
    assert args[2] == ['href']

    recorder.calls.clear()
    same = parse('<div><a href="x.html" class="two">a</a></div>')
    assert walker.check_tree(left.document_element, same.document_element)
    assert recorder.calls == []

def test_style_difference_is_reported(recorder):
    left = parse('<html><body><p style="color: red">a</p></body></html>')
    right = parse('<html><body><p style="color: blue">a</p></body></html>')
    walker = TreeWalker(recorder, None, 'right')
    assert not walker.check_tree(left.document_element, right.document_element)
    (_, args, _), = recorder.called('different_computed_values')
    assert args[2] == 'color'

def test_style_failure_closes_reporter(recorder, monkeypatch):
    left = parse('<html><body><p>a</p></body></html>')
    right = parse('<html><body><p>a</p></body></html>')

    def fail(element, pseudo_element=None):
        raise StyleComputationError(str(element))
    monkeypatch.setattr(left, 'computed_style', fail)

    walker = TreeWalker(recorder, None, 'right')
    with pytest.raises(StyleComputationError):
        walker.check_tree(left.document_element, right.document_element)
    assert recorder.closed == 1

def test_node_wrapper_keys():
    document = parse('<div>  some\n text <b>x</b></div>')
    text, bold = document.document_element.child_nodes()
    assert NodeWrapper(text).hash_key == 'text|some text'
    assert NodeWrapper(bold).hash_key == 'element|b'
    assert NodeWrapper(bold).describe() == '<b>'
