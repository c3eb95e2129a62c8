import sys
import os
import itertools
import pytest
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from core.equivalence import ValueComparator, equivalent_url_forms
from core.stylesheet import StyleDeclaration
from core.value_parser import parse_value

EQUIVALENT_PAIRS = [
    ('background-color', 'hsl(207, 6%, 61%, 0.6)', 'rgb(59%, 61%, 63%, 0.6)'),
    ('background-color', 'rgba(0, 0, 0, 0)', 'transparent'),
    ('background-color', 'none', 'transparent'),
    ('color', '#ff0000', 'red'),
    ('color', 'rgb(255 0 0 / 1)', 'rgb(255, 0, 0)'),
    ('margin-top', '0', '0px'),
    ('margin-top', '0px', '-0px'),
    ('width', '1.0001px', '1px'),
    ('margin-left', 'initial', '0'),
    ('margin-left', 'unset', '0px'),
    ('font-family', 'Arial', '"Arial"'),
    ('font-family', 'Open Sans, serif', '"Open Sans", serif'),
    ('content', '"a\\62 c"', '"abc"'),
    ('background-image', 'linear-gradient(red, blue)', 'linear-gradient(#f00, rgb(0, 0, 255))'),
    ('width', 'var(--w, 1px)', 'var(--w, 1.0px)'),
    ('background-size', 'auto', 'auto auto'),
    ('background-position', 'left top', '0% 0%'),
    ('background-position', 'left 0px', 'left -0px'),
    ('background-position', 'top left', '0% 0%'),
    ('background-position', 'center', '50% 50%'),
    ('background-position', 'top', '50% 0%'),
    ('border-spacing', '10px', '10px 10px'),
]

DIFFERENT_PAIRS = [
    ('color', 'red', 'blue'),
    ('color', 'rgba(0, 0, 0, 0.5)', 'transparent'),
    ('background-color', 'rgba(0, 0, 0, 0.5)', 'transparent'),
    ('width', '1.002px', '1px'),
    ('width', '1px', '1em'),
    ('color', 'unset', 'canvastext'),
    ('background-image', 'linear-gradient(red, blue)', 'radial-gradient(red, blue)'),
    ('width', 'var(--w)', 'var(--h)'),
    ('width', 'var(--w, 1px)', 'var(--w)'),
    ('background-position', 'right bottom', '0% 0%'),
    ('font-family', 'Arial', 'Helvetica'),
    ('border-spacing', '10px', '10px 20px'),
]


@pytest.mark.parametrize('property_name,value,other', EQUIVALENT_PAIRS)
def test_equivalent_values(property_name, value, other):
    comparator = ValueComparator()
    assert comparator.is_equivalent(property_name, value, other)

@pytest.mark.parametrize('property_name,value,other', DIFFERENT_PAIRS)
def test_different_values(property_name, value, other):
    comparator = ValueComparator()
    assert not comparator.is_equivalent(property_name, value, other)

@pytest.mark.parametrize('property_name,value,other', EQUIVALENT_PAIRS + DIFFERENT_PAIRS)
def test_equivalence_is_symmetric(property_name, value, other):
    comparator = ValueComparator()
    assert comparator.is_equivalent(property_name, value, other) == \
        comparator.is_equivalent(property_name, other, value)

@pytest.mark.parametrize('property_name,value', [
    ('color', 'red'),
    ('background-repeat', 'repeat, no-repeat'),
    ('font-family', '"Open Sans", serif'),
    ('background-image', 'url(a.png), linear-gradient(red, blue)'),
    ('transform', 'rotate(45deg) scale(1.5)'),
    ('width', 'calc(100% - 10px)'),
])
def test_equivalence_is_reflexive(property_name, value):
    comparator = ValueComparator()
    assert comparator.is_equivalent(property_name, value, value)
    assert comparator.is_equivalent(property_name, parse_value(value), parse_value(value))

def test_urls_resolved_against_base():
    comparator = ValueComparator(base_url='http://host/css/style.css')
    forms = ['url(http://host/dir/file.png)', 'url(../dir/file.png)',
             'url(/dir/file.png)', 'url(//host/dir/file.png)']
    for value, other in itertools.combinations(forms, 2):
        assert comparator.is_equivalent('background-image', value, other), (value, other)
    assert not comparator.is_equivalent('background-image', 'url(/dir/file.png)', 'url(/other/file.png)')

def test_resolved_urls_that_differ_are_different():
    comparator = ValueComparator(base_url='http://host/css/s.css')
    assert not comparator.is_equivalent('background-image', 'url(http://cdn.other/dir/file.png)', 'url(/dir/file.png)')
    assert not comparator.is_equivalent('background-image', 'url(img/a.png)', 'url(/img/a.png)')
    assert not comparator.is_same_url('img/a.png', '/img/a.png')

def test_equivalent_url_forms_without_base():
    assert equivalent_url_forms('../dir/file.png', 'http://host/dir/file.png', 'http://host/css/')
    assert equivalent_url_forms('img/a.png', 'http://host/static/img/a.png', 'http://HOST/')
    assert equivalent_url_forms('img/a.png', 'static/img/a.png')
    assert not equivalent_url_forms('../dir/file.png', 'http://host/dir/file.png')
    assert not equivalent_url_forms('/dir/file.png', 'http://cdn.other/dir/file.png', 'http://host/')
    assert not equivalent_url_forms('a.png', 'b.png')
    assert not equivalent_url_forms('http://one/a.png', 'http://two/a.png')

def test_layered_cyclic_repetition():
    comparator = ValueComparator()
    assert comparator.is_same_layered_property('5px 5px', '5px 5px, 5px 5px', 2)
    assert not comparator.is_same_layered_property('auto', 'auto auto, auto auto', 2)
    assert comparator.is_same_layered_property('repeat, no-repeat', 'repeat, no-repeat, repeat, no-repeat', 2)
    assert not comparator.is_same_layered_property('repeat, no-repeat', 'repeat, repeat', 2)

def test_layered_property_uses_master_layer_count():
    style = StyleDeclaration.parse('background-image: url(a.png), url(b.png)')
    comparator = ValueComparator(style)
    assert comparator.master_length('background-image') == 2
    assert comparator.is_equivalent('background-repeat', 'repeat, repeat', 'repeat')
    assert not comparator.is_equivalent('background-repeat', 'repeat, repeat', 'no-repeat')

def test_master_length_from_mapping_and_default():
    comparator = ValueComparator({'animation-name': 'spin, fade, pulse'})
    assert comparator.master_length('animation-name') == 3
    assert ValueComparator().master_length('animation-name') == 10

def test_undecidable_input_is_different():
    comparator = ValueComparator()
    assert not comparator.is_equivalent('width', 'auto', None)

@pytest.mark.parametrize('value,other', [
    ('left top', '0% 0%, 0% 0%'),
    ('center', '50% 50%, 50% 50%'),
    ('center center', 'center, center'),
    ('center 10%', 'center 10%, center 10%'),
    ('left top, center right', '0% 0%, center right'),
])
def test_single_background_position_matches_each_layer(value, other):
    comparator = ValueComparator({'background-image': 'url(a.png), url(b.png)'})
    assert comparator.is_same_background_position(value, other)
    assert comparator.is_equivalent('background-position', value, other)
    assert comparator.is_equivalent('background-position', other, value)

def test_single_background_position_against_differing_layers():
    comparator = ValueComparator({'background-image': 'url(a.png), url(b.png)'})
    assert not comparator.is_same_background_position('left top', '0% 0%, 100% 0%')
    assert not comparator.is_equivalent('background-position', 'center', '50% 50%, 0% 0%')

def test_custom_identifiers_are_case_sensitive():
    comparator = ValueComparator()
    assert not comparator.is_equivalent('animation-name', 'Spin', 'spin')
    assert not comparator.is_equivalent('grid-area', 'Header', 'header')
    assert comparator.is_equivalent('animation-name', 'NONE', 'none')
    assert comparator.is_equivalent('display', 'Block', 'block')
    assert comparator.is_equivalent('animation', 'Spin 1s Linear', 'Spin 1s linear')
