"""
CSS Values Module
Closed set of parsed property value kinds compared by the equivalence engine.

Every kind keeps the text it was parsed from (excluded from equality) and can
serialize itself either canonically (``css_text``) or in compact form
(``minified_text``), the latter being what the round-trip checker re-parses.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

# Units whose zero value may be written without the unit
LENGTH_UNITS = {
    'px', 'em', 'rem', 'ex', 'ch', 'vw', 'vh', 'vmin', 'vmax',
    'cm', 'mm', 'q', 'in', 'pt', 'pc',
}


def format_number(value: float, minify: bool = False) -> str:
    """Serialize a float without exponent or superfluous zeros."""
    if value == int(value):
        text = str(int(value))
    else:
        text = f"{value:.6f}".rstrip('0').rstrip('.')
    if text == '-0':
        text = '0'
    if minify:
        if text.startswith('0.'):
            text = text[1:]
        elif text.startswith('-0.'):
            text = '-' + text[2:]
    return text


def quote_string(value: str) -> str:
    escaped = value.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\a ')
    return f'"{escaped}"'


@dataclass(frozen=True)
class ColorValue:
    red: float
    green: float
    blue: float
    alpha: float = 1.0
    text: str = field(default='', compare=False)

    def _channels(self, minify: bool) -> str:
        rgb = (self.red, self.green, self.blue)
        separator = ',' if minify else ', '
        if all(float(c).is_integer() for c in rgb):
            return separator.join(str(int(c)) for c in rgb)
        # Legacy rgb() only takes integers or percentages
        return separator.join(format_number(round(c / 2.55, 3), minify) + '%' for c in rgb)

    @property
    def css_text(self) -> str:
        if self.text:
            return self.text
        if self.alpha < 1:
            return f"rgba({self._channels(False)}, {format_number(round(self.alpha, 3))})"
        return f"rgb({self._channels(False)})"

    @property
    def minified_text(self) -> str:
        rgb = (self.red, self.green, self.blue)
        if self.alpha >= 1 and all(float(c).is_integer() for c in rgb):
            digits = ''.join(f"{int(c):02x}" for c in rgb)
            if all(digits[i] == digits[i + 1] for i in (0, 2, 4)):
                digits = digits[0] + digits[2] + digits[4]
            return '#' + digits
        if self.alpha < 1:
            return f"rgba({self._channels(True)},{format_number(round(self.alpha, 3), True)})"
        return f"rgb({self._channels(True)})"


@dataclass(frozen=True)
class UrlValue:
    url: str
    text: str = field(default='', compare=False)

    @property
    def css_text(self) -> str:
        return self.text or f"url({quote_string(self.url)})"

    @property
    def minified_text(self) -> str:
        if any(c in self.url for c in ' \t\n()\'"\\'):
            return f"url({quote_string(self.url)})"
        return f"url({self.url})"


@dataclass(frozen=True)
class StringValue:
    value: str
    text: str = field(default='', compare=False)

    @property
    def css_text(self) -> str:
        return self.text or quote_string(self.value)

    @property
    def minified_text(self) -> str:
        return quote_string(self.value)


@dataclass(frozen=True)
class IdentValue:
    """Identifier; keywords are stored lower-cased, custom identifiers keep their case."""
    value: str
    text: str = field(default='', compare=False)

    @property
    def css_text(self) -> str:
        return self.text or self.value

    @property
    def minified_text(self) -> str:
        return self.text or self.value


@dataclass(frozen=True)
class NumberValue:
    value: float
    unit: str = ''
    text: str = field(default='', compare=False)

    @property
    def css_text(self) -> str:
        return self.text or format_number(self.value) + self.unit

    @property
    def minified_text(self) -> str:
        if self.value == 0 and self.unit in LENGTH_UNITS:
            return '0'
        return format_number(self.value, True) + self.unit


@dataclass(frozen=True)
class ValueList:
    items: Tuple['PropertyValue', ...]
    comma: bool = False

    def __len__(self):
        return len(self.items)

    def __getitem__(self, index):
        return self.items[index]

    def __iter__(self):
        return iter(self.items)

    @property
    def css_text(self) -> str:
        separator = ', ' if self.comma else ' '
        return separator.join(item.css_text for item in self.items)

    @property
    def minified_text(self) -> str:
        separator = ',' if self.comma else ' '
        return separator.join(item.minified_text for item in self.items)


@dataclass(frozen=True)
class GradientValue:
    kind: str
    arguments: ValueList
    text: str = field(default='', compare=False)

    @property
    def css_text(self) -> str:
        return self.text or f"{self.kind}({self.arguments.css_text})"

    @property
    def minified_text(self) -> str:
        return f"{self.kind}({self.arguments.minified_text})"


@dataclass(frozen=True)
class VarValue:
    name: str
    fallback: Optional['PropertyValue'] = None
    text: str = field(default='', compare=False)

    @property
    def css_text(self) -> str:
        if self.text:
            return self.text
        if self.fallback is None:
            return f"var({self.name})"
        return f"var({self.name}, {self.fallback.css_text})"

    @property
    def minified_text(self) -> str:
        if self.fallback is None:
            return f"var({self.name})"
        return f"var({self.name},{self.fallback.minified_text})"


@dataclass(frozen=True)
class FunctionValue:
    name: str
    arguments: ValueList
    text: str = field(default='', compare=False)

    @property
    def css_text(self) -> str:
        return self.text or f"{self.name}({self.arguments.css_text})"

    @property
    def minified_text(self) -> str:
        return f"{self.name}({self.arguments.minified_text})"


@dataclass(frozen=True)
class OpaqueValue:
    text: str

    @property
    def css_text(self) -> str:
        return self.text

    @property
    def minified_text(self) -> str:
        return self.text


PropertyValue = Union[
    ColorValue, UrlValue, StringValue, IdentValue, NumberValue,
    GradientValue, VarValue, FunctionValue, ValueList, OpaqueValue,
]

SCALAR_TYPES = (ColorValue, UrlValue, StringValue, IdentValue, NumberValue,
                GradientValue, VarValue, FunctionValue, OpaqueValue)


def is_comma_list(value) -> bool:
    return isinstance(value, ValueList) and value.comma


def is_space_list(value) -> bool:
    return isinstance(value, ValueList) and not value.comma


def layer_count(value) -> int:
    """Number of comma-separated layers in a value."""
    if is_comma_list(value):
        return len(value)
    return 1
