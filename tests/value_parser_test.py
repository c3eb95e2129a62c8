import sys
import os
import pytest
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from core.value_parser import parse_value, unescape_css
from core.values import (
    ColorValue, GradientValue, IdentValue, NumberValue, OpaqueValue, StringValue,
    UrlValue, ValueList, VarValue, format_number, layer_count,
)

def test_color_notations_parse_to_same_channels():
    assert parse_value('red') == ColorValue(255, 0, 0, 1)
    assert parse_value('#ff0000') == parse_value('#f00')
    assert parse_value('rgb(255, 0, 0)') == parse_value('red')

def test_color_keeps_source_text():
    color = parse_value('#F00')
    assert color.css_text == '#F00'
    assert color.minified_text == '#f00'

def test_modern_rgb_syntax_with_alpha():
    color = parse_value('rgb(255 0 0 / 50%)')
    assert isinstance(color, ColorValue)
    assert color.alpha == pytest.approx(0.5)
    assert color.red == pytest.approx(255)

def test_transparent_and_currentcolor_stay_identifiers():
    assert parse_value('transparent') == IdentValue('transparent')
    assert parse_value('currentColor') == IdentValue('currentcolor')

def test_identifier_is_lower_cased_but_keeps_text():
    value = parse_value('Block')
    assert value == IdentValue('block')
    assert value.css_text == 'Block'

def test_custom_identifiers_keep_their_case():
    assert parse_value('Spin', 'animation-name') == IdentValue('Spin')
    assert parse_value('Red', 'animation-name') == IdentValue('Red')
    assert parse_value('NONE', 'animation-name') == IdentValue('none')
    assert parse_value('Spin, Fade', 'animation-name') == ValueList((IdentValue('Spin'), IdentValue('Fade')), comma=True)
    assert list(parse_value('Span 2 / Footer', 'grid-row'))[0] == IdentValue('span')
    assert parse_value('Spin') == IdentValue('spin')

def test_space_and_comma_lists_are_tagged():
    space = parse_value('10px 20px')
    assert isinstance(space, ValueList)
    assert not space.comma
    assert list(space) == [NumberValue(10, 'px'), NumberValue(20, 'px')]

    comma = parse_value('repeat, no-repeat')
    assert isinstance(comma, ValueList)
    assert comma.comma
    assert layer_count(comma) == 2
    assert layer_count(parse_value('repeat')) == 1

def test_url_forms():
    assert parse_value('url(img/a.png)') == UrlValue('img/a.png')
    assert parse_value('url("img/a.png")') == UrlValue('img/a.png')

def test_string_value():
    assert parse_value('"Open Sans"') == StringValue('Open Sans')

def test_var_reference_with_fallback():
    value = parse_value('var(--gap, 10px)')
    assert value == VarValue('--gap', NumberValue(10, 'px'))
    assert parse_value('var(--gap)') == VarValue('--gap')

def test_gradient_arguments():
    value = parse_value('linear-gradient(red, blue)')
    assert isinstance(value, GradientValue)
    assert value.kind == 'linear-gradient'
    assert len(value.arguments) == 2

def test_empty_value_is_opaque():
    assert parse_value('') == OpaqueValue('')

def test_number_minification():
    assert parse_value('0px').minified_text == '0'
    assert parse_value('0.5em').minified_text == '.5em'
    assert parse_value('-0.25').minified_text == '-.25'
    assert format_number(1.50) == '1.5'

def test_unescape_css():
    assert unescape_css('\\41 b') == 'Ab'
    assert unescape_css('a\\:b') == 'a:b'
