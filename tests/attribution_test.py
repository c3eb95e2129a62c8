import sys
import os
import pytest
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from comparator.attribution import NO_MATCHING_SELECTOR, StyleAttributor, StyleComparison, StyleSheetIndex
from comparator.style_diff import diff_styles
from core.errors import StyleComputationError
from core.stylesheet import ComputedStyleSnapshot, StyleDeclaration, StyleSheet
from core.values import ColorValue


class FakeElement:
    """Element double with a fixed computed style and matching selector texts."""

    def __init__(self, name, style_text='', selectors=(), error=None):
        self.name = name
        self.style = ComputedStyleSnapshot(self)
        for declaration in StyleDeclaration.parse(style_text).declarations():
            self.style.put(declaration)
        self.selectors = set(selectors)
        self.error = error

    def get_computed_style(self, pseudo_element=None):
        if self.error is not None:
            raise self.error
        return self.style

    def matches(self, selector):
        text = selector if isinstance(selector, str) else selector.text
        return text in self.selectors

    def has_presentational_hints(self):
        return False

    def __str__(self):
        return f"<{self.name}>"


def test_diff_styles_partitions_properties():
    left = StyleDeclaration.parse('color: red; margin: 0; width: 1px')
    right = StyleDeclaration.parse('color: red; width: 2px; padding: 0')
    diff = diff_styles(left, right)
    assert diff.only_left == ['margin']
    assert diff.only_right == ['padding']
    assert diff.different == ['width']
    assert diff.to_dict()['different'] == ['width']

def test_diff_styles_keeps_custom_identifier_case():
    left = StyleDeclaration.parse('animation-name: Spin; grid-area: Header')
    right = StyleDeclaration.parse('animation-name: spin; grid-area: header')
    assert diff_styles(left, right).different == ['animation-name', 'grid-area']
    same = StyleDeclaration.parse('ANIMATION-NAME: Spin; grid-area: Header')
    assert not diff_styles(left, same).has_differences()

def test_layer_count_difference_is_not_reported(recorder):
    left = FakeElement('div', 'background-image: url(a.png), url(b.png); background-repeat: repeat, repeat')
    right = FakeElement('div', 'background-image: url(a.png), url(b.png); background-repeat: repeat')
    comparison = StyleComparison(left, right, StyleAttributor(None, None))
    assert comparison.compare(recorder)
    assert recorder.calls == []

def test_right_only_property_without_selector_is_unexplained(recorder):
    left = FakeElement('p')
    right = FakeElement('p', 'color: red')
    right_index = StyleSheetIndex([StyleSheet.parse('p.x { color: red }')])
    comparison = StyleComparison(left, right, StyleAttributor(StyleSheetIndex([]), right_index))
    assert not comparison.compare(recorder)
    assert recorder.calls == [
        ('unexplained_property', (right, 'right', 'color', ColorValue(255, 0, 0), NO_MATCHING_SELECTOR),
         {'backend_name': None}),
    ]

def test_right_only_property_attributed_to_unmatched_selector(recorder):
    left = FakeElement('p')
    right = FakeElement('p', 'color: red', selectors={'p.x'})
    right_index = StyleSheetIndex([StyleSheet.parse('p.x { color: red }')])
    comparison = StyleComparison(left, right, StyleAttributor(StyleSheetIndex([]), right_index), backend_name='html5lib')
    assert not comparison.compare(recorder)

    (name, args, kwargs), = recorder.calls
    assert name == 'unmatched_right_selector'
    assert args[0] is right
    assert args[1] == 'color'
    assert [str(s) for s in args[3]] == ['p.x']
    assert args[4] == 0
    assert kwargs == {'backend_name': 'html5lib'}

def test_one_sided_initial_value_is_ignored(recorder):
    left = FakeElement('span', 'display: inline; margin-top: 0px')
    right = FakeElement('span')
    assert StyleComparison(left, right).compare(recorder)
    assert recorder.calls == []

def test_different_values_are_reported_with_attribution(recorder):
    left = FakeElement('a', 'color: red', selectors={'a'})
    right = FakeElement('a', 'color: blue', selectors={'a'})
    left_index = StyleSheetIndex([StyleSheet.parse('a { color: red }')])
    right_index = StyleSheetIndex([StyleSheet.parse('a { color: blue }')])
    comparison = StyleComparison(left, right, StyleAttributor(left_index, right_index))
    assert not comparison.compare(recorder)

    (name, args, kwargs), = recorder.called('different_computed_values')
    assert args[2] == 'color'
    reports = args[5]
    assert [(r.side, [str(s) for s in r.matched]) for r in reports] == [('left', ['a']), ('right', ['a'])]
    assert not any(r.explains for r in reports)

def test_equivalent_different_values_are_not_reported(recorder):
    left = FakeElement('a', 'color: #ff0000; width: 0px')
    right = FakeElement('a', 'color: red; width: 0')
    assert StyleComparison(left, right).compare(recorder)
    assert recorder.calls == []

def test_style_failure_is_wrapped():
    left = FakeElement('div', error=RuntimeError('boom'))
    right = FakeElement('div')
    with pytest.raises(StyleComputationError) as info:
        StyleComparison(left, right).compare(None)
    assert 'boom' in str(info.value)
    assert isinstance(info.value.cause, RuntimeError)

def test_index_looks_inside_media_rules():
    sheet = StyleSheet.parse('@media screen { .a { color: red } } .b { color: blue } .c { margin: 0 }')
    index = StyleSheetIndex([sheet])
    assert [str(s) for s in index.selectors_for_property(0, 'color')] == ['.a', '.b']
    assert [str(s) for s in index.selectors_for_property_value(0, 'color', ColorValue(0, 0, 255))] == ['.b']
    assert index.selectors_for_property(0, 'padding') == []
