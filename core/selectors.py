"""
Selectors Module
Parses selector preludes into a normalized AST and computes specificity.

The AST of a complex selector is a tuple alternating compound selectors and
combinators. A compound selector is a tuple of simple selectors, each one a
tuple whose first item is its kind:

    ('type', name) ('universal',) ('id', value) ('class', value)
    ('attr', name, operator, value, flag)
    ('pseudo-class', name, argument) ('pseudo-element', name, argument)
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple, Union

import tinycss2

from core.errors import SelectorError

logger = logging.getLogger(__name__)

COMBINATORS = {'>', '+', '~'}

# Pseudo-elements that may be written with a single colon
LEGACY_PSEUDO_ELEMENTS = {'before', 'after', 'first-line', 'first-letter'}

# Pseudo-classes whose argument is itself a selector list
SELECTOR_ARGUMENT_PSEUDOS = {'not', 'is', 'matches', 'any', 'where', 'has'}

ATTRIBUTE_OPERATORS = {'=', '~=', '|=', '^=', '$=', '*='}


def _skip_comments(tokens: Sequence) -> List:
    return [t for t in tokens if t.type != 'comment']


def _split_commas(tokens: Sequence) -> List[List]:
    groups = [[]]
    for token in tokens:
        if token.type == 'literal' and token.value == ',':
            groups.append([])
        else:
            groups[-1].append(token)
    return groups


def _compact_text(tokens: Sequence) -> str:
    """Serialize tokens without whitespace, lower-cased."""
    return ''.join(tinycss2.serialize([t]) for t in tokens
                   if t.type not in ('whitespace', 'comment')).lower()


def _attribute_operator(tokens: List, i: int):
    """Return (operator, next index) when an attribute operator starts at i."""
    if tokens[i].type != 'literal':
        return None, i
    if i + 1 < len(tokens) and tokens[i + 1].type == 'literal':
        pair = tokens[i].value + tokens[i + 1].value
        if pair in ATTRIBUTE_OPERATORS:
            return pair, i + 2
    if tokens[i].value in ATTRIBUTE_OPERATORS:
        return tokens[i].value, i + 1
    return None, i


def _parse_attribute(block) -> tuple:
    tokens = [t for t in block.content if t.type not in ('whitespace', 'comment')]
    source = tinycss2.serialize(block.content)

    name = ''
    operator = None
    i = 0
    while i < len(tokens):
        operator, i = _attribute_operator(tokens, i)
        if operator is not None:
            break
        token = tokens[i]
        if token.type == 'ident':
            name += token.lower_value
        elif token.type == 'literal' and token.value in ('|', '*'):
            name += token.value
        else:
            raise SelectorError(f"Invalid attribute selector: [{source}]")
        i += 1
    if not name or name.endswith(('|', '*')):
        raise SelectorError(f"Invalid attribute selector: [{source}]")
    if operator is None:
        return ('attr', name, None, None, None)

    if i >= len(tokens) or tokens[i].type not in ('ident', 'string'):
        raise SelectorError(f"Invalid attribute value in [{source}]")
    value = tokens[i].value
    i += 1
    flag = None
    if i < len(tokens):
        if tokens[i].type != 'ident' or tokens[i].lower_value not in ('i', 's') or i + 1 != len(tokens):
            raise SelectorError(f"Invalid attribute flag in [{source}]")
        flag = tokens[i].lower_value
    return ('attr', name, operator, value, flag)


def _parse_pseudo(token, element: bool) -> tuple:
    if token.type == 'ident':
        name = token.lower_value
        argument = None
    elif token.type == 'function':
        name = token.lower_name
        if name in SELECTOR_ARGUMENT_PSEUDOS:
            argument = parse_selector_list(token.arguments).ast
        else:
            argument = _compact_text(token.arguments)
    else:
        raise SelectorError(f"Invalid pseudo selector: {tinycss2.serialize([token])}")
    if not element and name in LEGACY_PSEUDO_ELEMENTS:
        element = True
    return ('pseudo-element' if element else 'pseudo-class', name, argument)


def _parse_compound(tokens: List, start: int) -> Tuple[tuple, int]:
    simple = []
    i = start
    while i < len(tokens):
        token = tokens[i]
        if token.type == 'ident':
            if simple:
                raise SelectorError(f"Unexpected type selector '{token.value}'")
            simple.append(('type', token.lower_value))
            i += 1
        elif token.type == 'literal' and token.value == '*':
            if simple:
                raise SelectorError("Unexpected universal selector")
            simple.append(('universal',))
            i += 1
        elif token.type == 'literal' and token.value == '|':
            # Namespace prefixes are kept verbatim in front of the type
            if i + 1 >= len(tokens) or tokens[i + 1].type not in ('ident', 'literal'):
                raise SelectorError("Dangling namespace separator")
            prefix = ''
            if simple and simple[-1][0] in ('type', 'universal'):
                previous = simple.pop()
                prefix = previous[1] if previous[0] == 'type' else '*'
            target = tokens[i + 1]
            name = target.lower_value if target.type == 'ident' else target.value
            simple.append(('type', f"{prefix}|{name}"))
            i += 2
        elif token.type == 'hash':
            if not token.is_identifier:
                raise SelectorError(f"Invalid id selector '#{token.value}'")
            simple.append(('id', token.value))
            i += 1
        elif token.type == 'literal' and token.value == '.':
            if i + 1 >= len(tokens) or tokens[i + 1].type != 'ident':
                raise SelectorError("Invalid class selector")
            simple.append(('class', tokens[i + 1].value))
            i += 2
        elif token.type == '[] block':
            simple.append(_parse_attribute(token))
            i += 1
        elif token.type == 'literal' and token.value == ':':
            element = False
            i += 1
            if i < len(tokens) and tokens[i].type == 'literal' and tokens[i].value == ':':
                element = True
                i += 1
            if i >= len(tokens):
                raise SelectorError("Dangling pseudo selector")
            simple.append(_parse_pseudo(tokens[i], element))
            i += 1
        else:
            break
    if not simple:
        raise SelectorError(f"Expected a compound selector at '{tinycss2.serialize(tokens[start:])}'")
    return tuple(simple), i


def _parse_complex(tokens: Sequence) -> tuple:
    tokens = _skip_comments(tokens)
    while tokens and tokens[0].type == 'whitespace':
        tokens.pop(0)
    while tokens and tokens[-1].type == 'whitespace':
        tokens.pop()
    if not tokens:
        raise SelectorError("Empty selector")

    ast = []
    i = 0
    compound, i = _parse_compound(tokens, i)
    ast.append(compound)
    while i < len(tokens):
        combinator = ' '
        while i < len(tokens) and tokens[i].type == 'whitespace':
            i += 1
        if i < len(tokens) and tokens[i].type == 'literal' and tokens[i].value in COMBINATORS:
            combinator = tokens[i].value
            i += 1
            while i < len(tokens) and tokens[i].type == 'whitespace':
                i += 1
        if i >= len(tokens):
            raise SelectorError(f"Dangling combinator '{combinator}'")
        compound, i = _parse_compound(tokens, i)
        ast.extend((combinator, compound))
    return tuple(ast)


@dataclass(frozen=True)
class Selector:
    """One complex selector. Equality is AST equality."""
    ast: tuple
    text: str = field(default='', compare=False)

    @property
    def specificity(self) -> Tuple[int, int, int]:
        return specificity(self.ast)

    def __str__(self):
        return self.text


@dataclass(frozen=True)
class SelectorList:
    selectors: Tuple[Selector, ...]

    def __len__(self):
        return len(self.selectors)

    def __iter__(self):
        return iter(self.selectors)

    def __getitem__(self, index):
        return self.selectors[index]

    @property
    def ast(self) -> tuple:
        return tuple(s.ast for s in self.selectors)

    @property
    def css_text(self) -> str:
        return ', '.join(s.text for s in self.selectors)

    @property
    def minified_text(self) -> str:
        return ','.join(s.text for s in self.selectors)


def parse_selector_list(source: Union[str, Sequence]) -> SelectorList:
    """Parse a selector list from text or prelude tokens.

    Raises:
        SelectorError: when any selector of the list is invalid.
    """
    if isinstance(source, str):
        source = tinycss2.parse_component_value_list(source, skip_comments=True)
    selectors = []
    for group in _split_commas(_skip_comments(source)):
        ast = _parse_complex(group)
        selectors.append(Selector(ast, tinycss2.serialize(group).strip()))
    return SelectorList(tuple(selectors))


def _simple_specificity(simple: tuple) -> Tuple[int, int, int]:
    kind = simple[0]
    if kind == 'id':
        return (1, 0, 0)
    if kind in ('class', 'attr'):
        return (0, 1, 0)
    if kind == 'type':
        return (0, 0, 1)
    if kind == 'pseudo-element':
        return (0, 0, 1)
    if kind == 'pseudo-class':
        name, argument = simple[1], simple[2]
        if name == 'where':
            return (0, 0, 0)
        if name in SELECTOR_ARGUMENT_PSEUDOS and argument:
            return max(specificity(ast) for ast in argument)
        return (0, 1, 0)
    return (0, 0, 0)


def specificity(ast: tuple) -> Tuple[int, int, int]:
    """(ids, classes, types) specificity of a complex selector AST."""
    a = b = c = 0
    for part in ast:
        if isinstance(part, str):
            continue
        for simple in part:
            sa, sb, sc = _simple_specificity(simple)
            a += sa
            b += sb
            c += sc
    return (a, b, c)
