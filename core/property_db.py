"""
Property Database Module
Initial values, inheritance and layer masters for the compared properties.
"""

from typing import Dict, Optional

INITIAL_VALUES: Dict[str, str] = {
    'animation-delay': '0s',
    'animation-direction': 'normal',
    'animation-duration': '0s',
    'animation-fill-mode': 'none',
    'animation-iteration-count': '1',
    'animation-name': 'none',
    'animation-play-state': 'running',
    'animation-timing-function': 'ease',
    'background-attachment': 'scroll',
    'background-clip': 'border-box',
    'background-color': 'transparent',
    'background-image': 'none',
    'background-origin': 'padding-box',
    'background-position': '0% 0%',
    'background-repeat': 'repeat',
    'background-size': 'auto auto',
    'border-collapse': 'separate',
    'border-image-outset': '0',
    'border-image-repeat': 'stretch',
    'border-image-slice': '100%',
    'border-image-source': 'none',
    'border-image-width': '1',
    'border-spacing': '0',
    'border-top-style': 'none',
    'border-right-style': 'none',
    'border-bottom-style': 'none',
    'border-left-style': 'none',
    'border-top-width': 'medium',
    'border-right-width': 'medium',
    'border-bottom-width': 'medium',
    'border-left-width': 'medium',
    'bottom': 'auto',
    'box-shadow': 'none',
    'box-sizing': 'content-box',
    'caption-side': 'top',
    'clear': 'none',
    'color': 'canvastext',
    'content': 'normal',
    'cursor': 'auto',
    'direction': 'ltr',
    'display': 'inline',
    'empty-cells': 'show',
    'flex-basis': 'auto',
    'flex-direction': 'row',
    'flex-grow': '0',
    'flex-shrink': '1',
    'flex-wrap': 'nowrap',
    'float': 'none',
    'font-size': 'medium',
    'font-style': 'normal',
    'font-variant': 'normal',
    'font-weight': 'normal',
    'grid-auto-flow': 'row',
    'grid-template-areas': 'none',
    'grid-template-columns': 'none',
    'grid-template-rows': 'none',
    'height': 'auto',
    'left': 'auto',
    'letter-spacing': 'normal',
    'line-height': 'normal',
    'list-style-position': 'outside',
    'list-style-type': 'disc',
    'margin-top': '0',
    'margin-right': '0',
    'margin-bottom': '0',
    'margin-left': '0',
    'max-height': 'none',
    'max-width': 'none',
    'min-height': 'auto',
    'min-width': 'auto',
    'opacity': '1',
    'order': '0',
    'outline-style': 'none',
    'overflow': 'visible',
    'padding-top': '0',
    'padding-right': '0',
    'padding-bottom': '0',
    'padding-left': '0',
    'position': 'static',
    'right': 'auto',
    'text-align': 'start',
    'text-decoration-line': 'none',
    'text-indent': '0',
    'text-overflow': 'clip',
    'text-shadow': 'none',
    'text-transform': 'none',
    'top': 'auto',
    'transform': 'none',
    'transition-delay': '0s',
    'transition-duration': '0s',
    'transition-property': 'all',
    'transition-timing-function': 'ease',
    'vertical-align': 'baseline',
    'visibility': 'visible',
    'white-space': 'normal',
    'width': 'auto',
    'word-spacing': 'normal',
    'z-index': 'auto',
}

INHERITED_PROPERTIES = {
    'border-collapse', 'border-spacing', 'caption-side', 'color', 'cursor',
    'direction', 'empty-cells', 'font', 'font-family', 'font-feature-settings',
    'font-kerning', 'font-size', 'font-size-adjust', 'font-stretch', 'font-style',
    'font-variant', 'font-weight', 'hyphens', 'letter-spacing', 'line-height',
    'list-style', 'list-style-image', 'list-style-position', 'list-style-type',
    'orphans', 'quotes', 'tab-size', 'text-align', 'text-indent', 'text-shadow',
    'text-transform', 'visibility', 'white-space', 'widows', 'word-break',
    'word-spacing', 'word-wrap', 'overflow-wrap', 'writing-mode',
}

# Property prefix -> property whose comma layers drive the family's layer count.
# None means the family repeats item-wise without a master.
LAYER_MASTERS: Dict[str, Optional[str]] = {
    'background-': 'background-image',
    'mask-': 'mask-image',
    'animation-': 'animation-name',
    'transition-': 'transition-property',
    'border-image-': 'border-image-source',
    'grid-': None,
}

# Layer count used when the master property is not available
DEFAULT_MASTER_LENGTH = 10


def initial_value(property_name: str) -> Optional[str]:
    """Return the initial value text of a property, or None when unknown."""
    return INITIAL_VALUES.get(property_name)


def is_inherited(property_name: str) -> bool:
    return property_name in INHERITED_PROPERTIES or property_name.startswith('--')


def layer_family(property_name: str) -> Optional[str]:
    for prefix in LAYER_MASTERS:
        if property_name.startswith(prefix):
            return prefix
    return None


def layer_master(property_name: str) -> Optional[str]:
    """Master property of a layered family, None when there is none."""
    family = layer_family(property_name)
    if family is None:
        return None
    return LAYER_MASTERS[family]


def is_layered(property_name: str) -> bool:
    return layer_family(property_name) is not None


# Properties naming author-defined things (animations, grid lines, counters)
# whose identifiers compare case-sensitively
CUSTOM_IDENT_PROPERTIES = {
    'animation', 'animation-name', 'container', 'container-name',
    'counter-increment', 'counter-reset', 'counter-set',
    'grid-area', 'grid-column', 'grid-column-end', 'grid-column-start',
    'grid-row', 'grid-row-end', 'grid-row-start', 'view-transition-name',
}

# Keywords that stay case-insensitive inside those properties
CUSTOM_IDENT_KEYWORDS = {
    'inherit', 'initial', 'unset', 'revert', 'revert-layer', 'none', 'auto', 'span',
    'normal', 'reverse', 'alternate', 'alternate-reverse', 'forwards', 'backwards',
    'both', 'infinite', 'running', 'paused', 'linear', 'ease', 'ease-in',
    'ease-out', 'ease-in-out', 'step-start', 'step-end',
}


def has_custom_idents(property_name: Optional[str]) -> bool:
    return property_name in CUSTOM_IDENT_PROPERTIES
