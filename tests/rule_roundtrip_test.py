import sys
import os
import pytest
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from comparator.rule_roundtrip import RuleRoundTripChecker
from core.selectors import Selector, SelectorList, parse_selector_list
from core.stylesheet import Declaration, StyleDeclaration, StyleRule, StyleSheet
from core.values import OpaqueValue


@pytest.mark.parametrize('css', [
    'a > b.c { color: #ff0000; margin: 0px 1.5em; background: url("x.png") }',
    'p::first-line, div:not(.x) { font-family: "Open Sans", serif !important }',
    '@media screen and (min-width: 100px) { a { color: red } }',
    '@keyframes spin { from { opacity: 0 } to { opacity: 1 } }',
    '@font-face { font-family: X; src: url(x.woff) }',
    '@import url(other.css) screen;',
    'div { background: linear-gradient(rgba(0, 0, 0, 0.5), transparent), url(a.png); width: calc(100% - 2px) }',
])
def test_rules_survive_round_trip(css):
    sheet = StyleSheet.parse(css, href='http://host/style.css')
    assert not sheet.has_errors()
    checker = RuleRoundTripChecker()
    result = checker.check_rule(sheet.rules[0], 0, 0)
    assert result.ok, result.diagnostics
    assert result.diagnostics == []

def test_namespace_rule_is_skipped():
    sheet = StyleSheet.parse('@namespace svg url(http://www.w3.org/2000/svg);')
    result = RuleRoundTripChecker().check_rule(sheet.rules[0])
    assert result.ok

def test_priority_change_is_reported(recorder):
    sheet = StyleSheet.parse('a { margin: 1px }')
    rule = sheet.rules[0]
    rule.style.put(Declaration('margin', OpaqueValue('1px !important')))

    checker = RuleRoundTripChecker(recorder)
    diagnostics = checker.check_sheet(sheet, 0)
    kinds = [d.kind for d in diagnostics]
    assert kinds == ['minified-different-value', 'different-value', 'different-value']
    assert all(d.property == 'margin' for d in diagnostics)
    assert diagnostics[1].original_text == 'a {margin: 1px !important;}'
    assert recorder.names() == ['minified_different_values', 'reparsed_different_values',
                                'reparsed_different_values']
    assert not checker.check_sheets([sheet])

def test_selector_mismatch_is_reported():
    selector = Selector(parse_selector_list('p')[0].ast, 'div')
    rule = StyleRule(SelectorList((selector,)), StyleDeclaration.parse('color: red'))
    result = RuleRoundTripChecker().check_rule(rule)
    assert not result.ok
    assert 'selector-mismatch' in [d.kind for d in result.diagnostics]

def test_reparse_failure_is_a_diagnostic(recorder):
    selector = Selector(parse_selector_list('div')[0].ast, 'div >')
    sheet = StyleSheet()
    rule = StyleRule(SelectorList((selector,)), StyleDeclaration.parse('color: red'), sheet)
    sheet.rules.append(rule)

    diagnostics = RuleRoundTripChecker(recorder).check_sheet(sheet)
    assert [d.kind for d in diagnostics] == ['reparse-error', 'reparse-error']
    assert diagnostics[0].reparsed_text == 'div > {color: red;}'
    assert recorder.names() == ['rule_reparse_error', 'rule_reparse_error']

def test_missing_property_is_reported():
    style = StyleDeclaration.parse('color: red')
    reparsed = StyleDeclaration()
    diagnostics = RuleRoundTripChecker().compare_declarations(style, reparsed, 3, 'a {color: red;}', 'a {}')
    assert [(d.kind, d.rule_index, d.property) for d in diagnostics] == [('missing-property', 3, 'color')]

    extra = RuleRoundTripChecker().compare_declarations(reparsed, style, 3, 'a {}', 'a {color: red;}')
    assert [d.kind for d in extra] == ['extra-property']

def test_hack_properties_are_not_reported_missing():
    style = StyleDeclaration()
    style.set_property('*zoom', '1')
    diagnostics = RuleRoundTripChecker().compare_declarations(style, StyleDeclaration(), 0, '', '')
    assert diagnostics == []
