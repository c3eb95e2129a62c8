"""
Equivalence Module
Decides whether two parsed property values are meaningfully different.

The comparator favours reporting a difference over hiding one: whenever a
heuristic cannot reach a verdict the pair is treated as different.
"""

import logging
import posixpath
from typing import Mapping, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from core import property_db
from core.value_parser import parse_value, unescape_css
from core.values import (
    ColorValue, FunctionValue, GradientValue, IdentValue, NumberValue,
    StringValue, UrlValue, ValueList, VarValue, is_comma_list, is_space_list,
)

logger = logging.getLogger(__name__)

# Keyword -> percentage along its axis
POSITION_KEYWORDS = {
    'left': 0.0,
    'top': 0.0,
    'center': 50.0,
    'right': 100.0,
    'bottom': 100.0,
}
VERTICAL_KEYWORDS = {'top', 'bottom'}
HORIZONTAL_KEYWORDS = {'left', 'right'}

CENTER = NumberValue(50.0, '%')


def _as_value(value, property_name: Optional[str] = None):
    if isinstance(value, str):
        return parse_value(value, property_name)
    return value


def _is_ident(value, *names) -> bool:
    return isinstance(value, IdentValue) and value.value in names


def _same_number(a: NumberValue, b: NumberValue) -> bool:
    if a.value == 0 and b.value == 0:
        # 0, 0px and -0px
        return True
    return a.unit == b.unit and round(a.value * 1000) == round(b.value * 1000)


def _similar_colors(a: ColorValue, b: ColorValue) -> bool:
    return (abs(a.red - b.red) < 1 and abs(a.green - b.green) < 1
            and abs(a.blue - b.blue) < 1 and abs(a.alpha - b.alpha) < 0.01)


def _normalize_url(url: str) -> Tuple[str, str, str, str]:
    parts = urlsplit(url)
    path = posixpath.normpath(parts.path) if parts.path else '/'
    if parts.path.endswith('/') and not path.endswith('/'):
        path += '/'
    return parts.scheme.lower(), parts.netloc.lower(), path, parts.query


def _strip_relative(path: str) -> str:
    while True:
        if path.startswith('../'):
            path = path[3:]
        elif path.startswith('./'):
            path = path[2:]
        elif path.startswith('/'):
            path = path[1:]
        else:
            return path


def equivalent_url_forms(url: str, other: str, base_url: Optional[str] = None) -> bool:
    """Relative/absolute form analysis of two URLs that cannot be resolved.

    An absolute URL only matches a relative one when its host is the host
    of ``base_url``; without a base it never does.
    """
    if url == other:
        return True
    parts = urlsplit(url)
    other_parts = urlsplit(other)
    if parts.query != other_parts.query:
        return False
    if parts.netloc and other_parts.netloc:
        return (parts.netloc.lower() == other_parts.netloc.lower()
                and posixpath.normpath(parts.path or '/') == posixpath.normpath(other_parts.path or '/'))
    host = parts.netloc or other_parts.netloc
    if host:
        base_host = urlsplit(base_url).netloc if base_url else ''
        if not base_host or host.lower() != base_host.lower():
            return False
    path = _strip_relative(parts.path)
    other_path = _strip_relative(other_parts.path)
    if not path or not other_path:
        return False
    if path == other_path:
        return True
    return path.endswith('/' + other_path) or other_path.endswith('/' + path)


class ValueComparator:
    """Equivalence of property values for one owning style.

    Args:
        style: declaration or snapshot the values belong to, used to look up
            the layer count of master properties.
        base_url: href of the owning sheet, used to resolve relative URLs.
        other_style: the opposite side's style, consulted when ``style`` does
            not set the master property.
    """

    def __init__(self, style=None, base_url: Optional[str] = None, other_style=None):
        self.style = style
        self.base_url = base_url
        self.other_style = other_style

    def is_equivalent(self, property_name: str, value, other) -> bool:
        """Return True when the two values are not meaningfully different.

        Symmetric by construction: the heuristics are tried in both orders.
        """
        try:
            value = _as_value(value, property_name)
            other = _as_value(other, property_name)
            return (self._not_different(property_name, value, other)
                    or self._not_different(property_name, other, value))
        except Exception as e:
            logger.debug(f"Equivalence of '{property_name}' undecided, treating as different: {e}")
            return False

    def _not_different(self, property_name: str, value, other) -> bool:
        if value == other or value.css_text == other.css_text:
            return True

        if self._resolves_to_initial(property_name, value, other):
            return True

        if property_name == 'background-position' and self.is_same_background_position(value, other):
            return True

        if property_db.is_layered(property_name):
            master = property_db.layer_master(property_name)
            if self.is_same_layered_property(value, other, self.master_length(master)):
                return True

        if property_name == 'background-size':
            if _is_ident(value, 'auto') and is_space_list(other) and len(other) == 2 \
                    and all(_is_ident(item, 'auto') for item in other):
                return True
        elif property_name == 'background-color' and _is_ident(value, 'none'):
            if _is_ident(other, 'transparent') or (isinstance(other, ColorValue) and other.alpha == 0):
                return True
        elif property_name == 'font-family' and self._same_font_families(value, other):
            return True

        verdict = self.kind_verdict(value, other)
        if verdict is not None:
            return verdict

        # Shorthand duplication such as '10px' vs '10px 10px'
        if is_space_list(value) and not isinstance(other, ValueList) and len(value) > 0:
            if all(self._same_item(item, other) for item in value):
                return True

        return unescape_css(value.css_text) == unescape_css(other.css_text)

    def _resolves_to_initial(self, property_name: str, value, other) -> bool:
        if not isinstance(value, IdentValue):
            return False
        if value.value == 'initial' or (value.value == 'unset' and not property_db.is_inherited(property_name)):
            initial = property_db.initial_value(property_name)
            if initial is None:
                return False
            initial = parse_value(initial)
            return initial == other or self.kind_verdict(initial, other) is True \
                or (is_space_list(initial) and all(self._same_item(i, other) for i in initial))
        return False

    def kind_verdict(self, value, other) -> Optional[bool]:
        """Kind-directed comparison.

        Returns True when not different, False when different and None when
        the kinds involved give no verdict.
        """
        if isinstance(value, ColorValue):
            if isinstance(other, ColorValue):
                return _similar_colors(value, other)
            if _is_ident(other, 'transparent'):
                return (value.red, value.green, value.blue, value.alpha) == (0, 0, 0, 0)
            return None
        if isinstance(value, IdentValue) and value.value == 'transparent' and isinstance(other, ColorValue):
            return self.kind_verdict(other, value)
        if isinstance(value, UrlValue) and isinstance(other, UrlValue):
            return self.is_same_url(value.url, other.url)
        if isinstance(value, StringValue) and isinstance(other, StringValue):
            return unescape_css(value.value) == unescape_css(other.value)
        if isinstance(value, GradientValue) and isinstance(other, GradientValue):
            if value.kind != other.kind or len(value.arguments) != len(other.arguments):
                return False
            return all(self._same_item(arg, other_arg)
                       for arg, other_arg in zip(value.arguments, other.arguments))
        if isinstance(value, VarValue) and isinstance(other, VarValue):
            if value.name != other.name:
                return False
            if value.fallback is None or other.fallback is None:
                return value.fallback is None and other.fallback is None
            return self._same_item(value.fallback, other.fallback)
        if isinstance(value, NumberValue) and isinstance(other, NumberValue):
            if _same_number(value, other):
                return True
            return False if value.unit == other.unit else None
        if isinstance(value, FunctionValue) and isinstance(other, FunctionValue):
            if value.name != other.name:
                return False
            return self.kind_verdict(value.arguments, other.arguments)
        if isinstance(value, ValueList) and isinstance(other, ValueList):
            if len(value) != len(other) or value.comma != other.comma:
                return False
            verdict = True
            for item, other_item in zip(value, other):
                result = self.kind_verdict(item, other_item)
                if result is False:
                    return False
                if result is None and item != other_item:
                    verdict = None
            return verdict
        if value == other:
            return True
        return None

    def _same_item(self, value, other) -> bool:
        """Strict comparison of two non-layered items, no broadcasting."""
        return value == other or self.kind_verdict(value, other) is True

    def is_same_url(self, url: str, other: str) -> bool:
        if url == other:
            return True
        if self.base_url:
            try:
                return _normalize_url(urljoin(self.base_url, url)) == _normalize_url(urljoin(self.base_url, other))
            except ValueError as e:
                logger.debug(f"Unable to resolve '{url}' or '{other}' against {self.base_url}: {e}")
                return False
        return equivalent_url_forms(url, other)

    def _lookup(self, style, property_name: str):
        if style is None:
            return None
        if hasattr(style, 'get_property_value'):
            value = style.get_property_value(property_name)
        elif isinstance(style, Mapping):
            value = style.get(property_name)
        else:
            return None
        return _as_value(value, property_name) if value is not None else None

    def master_length(self, master_property: Optional[str]) -> int:
        """Layer count of the master property, or a large default when it is unknown."""
        if master_property is None:
            return property_db.DEFAULT_MASTER_LENGTH
        for style in (self.style, self.other_style):
            master = self._lookup(style, master_property)
            if master is not None:
                return len(master) if is_comma_list(master) else 1
        return property_db.DEFAULT_MASTER_LENGTH

    def is_same_layered_property(self, value, other, master_length: int) -> bool:
        """Compare a layered value with its counterpart up to ``master_length`` layers.

        A comma list is sliced to the master length and the other side must
        hold at least as many layers, its extra layers repeating the first
        side cyclically. A bare value matches a comma list whose first
        ``master_length`` layers all equal it.
        """
        value = _as_value(value)
        other = _as_value(other)
        if master_length == 1:
            if is_comma_list(value):
                value = value[0]
            if is_comma_list(other):
                other = other[0]
            return self._same_item(value, other)

        if is_comma_list(value):
            layers = value.items[:master_length]
            if not is_comma_list(other) or len(other) < len(layers):
                return False
            for i, other_layer in enumerate(other):
                if not self._same_item(layers[i % len(layers)], other_layer):
                    return False
            return True

        if is_comma_list(other):
            return all(self._same_item(value, layer) for layer in other.items[:master_length])

        return self._same_item(value, other)

    def _position_pair(self, value) -> Optional[Tuple[NumberValue, NumberValue]]:
        """Map a one or two component position to an (x, y) pair."""
        if isinstance(value, (IdentValue, NumberValue)):
            components = [value]
        elif is_space_list(value) and len(value) == 2:
            components = list(value)
        else:
            return None
        if not all(isinstance(c, (IdentValue, NumberValue)) for c in components):
            return None
        if isinstance(components[0], IdentValue) and components[0].value not in POSITION_KEYWORDS:
            return None

        if len(components) == 1:
            only = components[0]
            if _is_ident(only, *VERTICAL_KEYWORDS):
                components = [IdentValue('center'), only]
            else:
                components = [only, IdentValue('center')]
        elif _is_ident(components[0], *VERTICAL_KEYWORDS) or _is_ident(components[1], *HORIZONTAL_KEYWORDS):
            components.reverse()

        pair = []
        for component in components:
            if isinstance(component, IdentValue):
                if component.value not in POSITION_KEYWORDS:
                    return None
                pair.append(NumberValue(POSITION_KEYWORDS[component.value], '%'))
            else:
                pair.append(component)
        return pair[0], pair[1]

    def _same_position_item(self, value, other) -> bool:
        if self._same_item(value, other):
            return True
        pair = self._position_pair(value)
        other_pair = self._position_pair(other)
        if pair is None or other_pair is None:
            return False
        return all(_same_number(a, b) for a, b in zip(pair, other_pair))

    def is_same_background_position(self, value, other) -> bool:
        """Layered comparison of two background positions.

        Keywords are mapped to percentages, so 'left top' matches '0% 0%',
        and a single position matches every layer of a list up to the
        background-image layer count.
        """
        value = _as_value(value)
        other = _as_value(other)
        master_length = self.master_length(property_db.layer_master('background-position'))
        if is_comma_list(value):
            if not is_comma_list(other):
                value, other = other, value
            else:
                layers = value.items[:master_length]
                if len(other) < len(layers):
                    return False
                return all(self._same_position_item(layers[i % len(layers)], other_layer)
                           for i, other_layer in enumerate(other))
        if is_comma_list(other):
            return all(self._same_position_item(value, layer) for layer in other.items[:master_length])
        return self._same_position_item(value, other)

    def _family_names(self, value):
        names = []
        for item in (value.items if is_comma_list(value) else (value,)):
            if isinstance(item, StringValue):
                names.append(unescape_css(item.value).lower())
            elif isinstance(item, (IdentValue, ColorValue)):
                names.append(unescape_css(item.css_text).lower())
            elif is_space_list(item) and all(isinstance(i, (IdentValue, ColorValue)) for i in item):
                names.append(' '.join(unescape_css(i.css_text) for i in item).lower())
            else:
                return None
        return names

    def _same_font_families(self, value, other) -> bool:
        names = self._family_names(value)
        return names is not None and names == self._family_names(other)
