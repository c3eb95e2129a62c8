"""
Value Parser Module
Converts tinycss2 component values into the closed set of value kinds.
"""

import logging
import math
import re
from typing import List, Optional, Sequence, Union

import tinycss2
from tinycss2 import color3
from tinycss2.ast import LiteralToken

from core import property_db
from core.values import (
    ColorValue, FunctionValue, GradientValue, IdentValue, NumberValue,
    OpaqueValue, StringValue, UrlValue, ValueList, VarValue,
)

logger = logging.getLogger(__name__)

# Keywords that tinycss2 resolves to colors but are compared as identifiers
COLOR_KEYWORDS = {'transparent', 'currentcolor'}

COLOR_FUNCTIONS = {'rgb', 'rgba', 'hsl', 'hsla'}

HUE_UNITS = {
    'deg': 1.0,
    'grad': 0.9,
    'rad': 180.0 / math.pi,
    'turn': 360.0,
}

_ESCAPE_RE = re.compile(r'\\([0-9a-fA-F]{1,6})[ \t\n]?|\\(.)', re.DOTALL)


def unescape_css(text: str) -> str:
    """Resolve CSS backslash escapes."""
    def repl(match):
        hexdigits, char = match.groups()
        if hexdigits is not None:
            codepoint = int(hexdigits, 16)
            if codepoint == 0 or codepoint > 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
                return '\ufffd'
            return chr(codepoint)
        return char
    return _ESCAPE_RE.sub(repl, text)


def _significant(tokens: Sequence) -> List:
    """Drop comments and surrounding whitespace."""
    tokens = [t for t in tokens if t.type != 'comment']
    while tokens and tokens[0].type == 'whitespace':
        tokens.pop(0)
    while tokens and tokens[-1].type == 'whitespace':
        tokens.pop()
    return tokens


def _split_commas(tokens: Sequence) -> List[List]:
    groups = [[]]
    for token in tokens:
        if token.type == 'literal' and token.value == ',':
            groups.append([])
        else:
            groups[-1].append(token)
    return groups


def _to_color(rgba, text: str) -> Optional[ColorValue]:
    if rgba is None or isinstance(rgba, str):
        return None
    red, green, blue, alpha = rgba
    return ColorValue(
        round(red * 255, 6), round(green * 255, 6), round(blue * 255, 6),
        round(alpha, 6), text=text,
    )


def _color_function(token, text: str) -> Optional[ColorValue]:
    """Parse rgb()/hsl() in either legacy comma or space/slash syntax.

    The arguments are rewritten in the legacy form understood by
    tinycss2.color3: hue as a plain number, alpha as a number, and channels
    as percentages whenever a numeric channel is not an integer.
    """
    name = token.lower_name
    args = [t for t in token.arguments if t.type not in ('whitespace', 'comment')
            and not (t.type == 'literal' and t.value == ',')]
    alpha_token = None
    for i, arg in enumerate(args):
        if arg.type == 'literal' and arg.value == '/':
            if len(args) != i + 2:
                return None
            alpha_token = args[i + 1]
            args = args[:i]
            break
    if len(args) == 4 and alpha_token is None:
        alpha_token = args.pop()
    if len(args) != 3:
        return None

    parts = []
    if name.startswith('rgb'):
        if any(a.type not in ('number', 'percentage') for a in args):
            return None
        integral = all(a.type == 'number' and a.is_integer for a in args)
        for a in args:
            if a.type == 'percentage':
                parts.append(f"{a.value}%")
            elif integral:
                parts.append(str(a.int_value))
            else:
                parts.append(f"{a.value / 2.55}%")
    else:
        hue = args[0]
        if hue.type == 'number':
            parts.append(str(hue.value))
        elif hue.type == 'dimension' and hue.lower_unit in HUE_UNITS:
            parts.append(str(hue.value * HUE_UNITS[hue.lower_unit]))
        else:
            return None
        for a in args[1:]:
            if a.type != 'percentage':
                return None
            parts.append(f"{a.value}%")

    if alpha_token is not None:
        if alpha_token.type == 'number':
            alpha = alpha_token.value
        elif alpha_token.type == 'percentage':
            alpha = alpha_token.value / 100
        else:
            return None
        parts.append(str(alpha))
        legacy_name = name[:3] + 'a'
    else:
        legacy_name = name[:3]
    legacy = f"{legacy_name}({', '.join(parts)})"
    return _to_color(color3.parse_color(legacy), text)


def _parse_arguments(tokens: Sequence) -> ValueList:
    items = []
    for group in _split_commas(_significant(tokens)):
        group = _significant(group)
        if group:
            items.append(_parse_space_list(group))
    return ValueList(tuple(items), comma=True)


def _parse_function(token, text: str):
    name = token.lower_name
    if name == 'url':
        args = _significant(token.arguments)
        if len(args) == 1 and args[0].type == 'string':
            return UrlValue(args[0].value, text=text)
        return OpaqueValue(text)
    if name == 'var':
        groups = _split_commas(token.arguments)
        head = _significant(groups[0])
        if len(head) != 1 or head[0].type != 'ident':
            return OpaqueValue(text)
        fallback = None
        if len(groups) > 1:
            rest = []
            for i, group in enumerate(groups[1:]):
                if i:
                    rest.append(LiteralToken(0, 0, ","))
                rest.extend(group)
            fallback = parse_value(rest)
        return VarValue(head[0].value, fallback, text=text)
    if name in COLOR_FUNCTIONS:
        color = _color_function(token, text)
        if color is not None:
            return color
    if name.endswith('gradient'):
        return GradientValue(name, _parse_arguments(token.arguments), text=text)
    return FunctionValue(name, _parse_arguments(token.arguments), text=text)


def _parse_component(token, keep_case: bool = False):
    text = tinycss2.serialize([token])
    if token.type == 'ident':
        if keep_case and token.lower_value not in property_db.CUSTOM_IDENT_KEYWORDS:
            return IdentValue(token.value, text=text)
        if token.lower_value not in COLOR_KEYWORDS:
            color = _to_color(color3.parse_color(token), text)
            if color is not None:
                return color
        return IdentValue(token.lower_value, text=text)
    if token.type == 'hash':
        color = _to_color(color3.parse_color(token), text)
        return color if color is not None else OpaqueValue(text)
    if token.type == 'url':
        return UrlValue(token.value, text=text)
    if token.type == 'string':
        return StringValue(token.value, text=text)
    if token.type == 'number':
        return NumberValue(token.value, '', text=text)
    if token.type == 'percentage':
        return NumberValue(token.value, '%', text=text)
    if token.type == 'dimension':
        return NumberValue(token.value, token.lower_unit, text=text)
    if token.type == 'function':
        return _parse_function(token, text)
    return OpaqueValue(text)


def _parse_space_list(tokens: Sequence, keep_case: bool = False):
    components = [t for t in tokens if t.type not in ('whitespace', 'comment')]
    values = tuple(_parse_component(t, keep_case) for t in components)
    if len(values) == 1:
        return values[0]
    return ValueList(values, comma=False)


def parse_value(source: Union[str, Sequence], property_name: Optional[str] = None):
    """Parse a property value from text or from tinycss2 component values.

    Identifiers are lower-cased, except the author-defined names of
    ``property_name`` when that property takes custom identifiers.

    Never raises: anything that cannot be modelled is returned as an
    OpaqueValue carrying the serialized text.
    """
    try:
        if isinstance(source, str):
            tokens = tinycss2.parse_component_value_list(source, skip_comments=True)
        else:
            tokens = list(source)
        keep_case = property_db.has_custom_idents(property_name)
        tokens = _significant(tokens)
        if not tokens:
            return OpaqueValue('')
        groups = _split_commas(tokens)
        if len(groups) == 1:
            return _parse_space_list(tokens, keep_case)
        items = []
        for group in groups:
            group = _significant(group)
            items.append(_parse_space_list(group, keep_case) if group else OpaqueValue(''))
        return ValueList(tuple(items), comma=True)
    except Exception as e:
        text = source if isinstance(source, str) else tinycss2.serialize(source)
        logger.debug(f"Unable to model value '{text}': {e}")
        return OpaqueValue(text.strip())
