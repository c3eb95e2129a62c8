import sys
import os
import pytest
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from core.errors import SelectorError
from core.selectors import parse_selector_list, specificity

def test_selector_list_ast():
    selectors = parse_selector_list('div.a > p, #x')
    assert len(selectors) == 2
    assert selectors[0].ast == ((('type', 'div'), ('class', 'a')), '>', (('type', 'p'),))
    assert selectors[1].ast == ((('id', 'x'),),)
    assert str(selectors[0]) == 'div.a > p'

def test_descendant_combinator_and_case():
    selectors = parse_selector_list('UL  li')
    assert selectors[0].ast == ((('type', 'ul'),), ' ', (('type', 'li'),))

def test_attribute_selectors():
    ast = parse_selector_list('a[href^="http"]')[0].ast
    assert ast == ((('type', 'a'), ('attr', 'href', '^=', 'http', None)),)
    ast = parse_selector_list('[title]')[0].ast
    assert ast == ((('attr', 'title', None, None, None),),)
    ast = parse_selector_list('[lang|=en i]')[0].ast
    assert ast == ((('attr', 'lang', '|=', 'en', 'i'),),)

def test_legacy_pseudo_element_is_normalized():
    assert parse_selector_list('a:before')[0] == parse_selector_list('a::before')[0]
    assert parse_selector_list('a:hover')[0] != parse_selector_list('a::hover')[0]

def test_equality_ignores_formatting():
    assert parse_selector_list('div>p').ast == parse_selector_list('div  >  p').ast

@pytest.mark.parametrize('text,expected', [
    ('#x', (1, 0, 0)),
    ('div.a > p', (0, 1, 2)),
    ('a:hover', (0, 1, 1)),
    ('p::first-line', (0, 0, 2)),
    (':where(.a) p', (0, 0, 1)),
    (':not(#x) p', (1, 0, 1)),
    (':is(.a, #b)', (1, 0, 0)),
    ('*', (0, 0, 0)),
])
def test_specificity(text, expected):
    selector = parse_selector_list(text)[0]
    assert selector.specificity == expected
    assert specificity(selector.ast) == expected

@pytest.mark.parametrize('text', ['', 'div >', '.', 'a[', '#1a', 'p, '])
def test_invalid_selectors(text):
    with pytest.raises(SelectorError):
        parse_selector_list(text)
