from __future__ import annotations

from .corpus import generate_include_tree, label_of

__all__ = ["generate_include_tree", "label_of"]
