"""
Style Diff Module
Key-set difference between two computed style snapshots.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class StyleDiff:
    only_left: List[str] = field(default_factory=list)
    only_right: List[str] = field(default_factory=list)
    different: List[str] = field(default_factory=list)

    def has_differences(self) -> bool:
        return bool(self.only_left or self.only_right or self.different)

    def to_dict(self):
        return {
            'only_left': list(self.only_left),
            'only_right': list(self.only_right),
            'different': list(self.different),
        }


def diff_styles(left, right) -> StyleDiff:
    """Compare two declarations property by property.

    Entries equal on both sides (value and priority) are excluded.
    """
    diff = StyleDiff()
    right_names = set(right.property_names())
    for name in left.property_names():
        if name not in right_names:
            diff.only_left.append(name)
        elif left.get_declaration(name) != right.get_declaration(name):
            diff.different.append(name)
    left_names = set(left.property_names())
    diff.only_right = [name for name in right.property_names() if name not in left_names]
    return diff
