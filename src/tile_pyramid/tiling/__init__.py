"""
Tiling Module

Web Mercator tile arithmetic and the per-point tile pyramid indexer:

- ``tile_key``: canonical ``"x-y-z"`` key encoding
- ``tile_math``: point -> tile projection and tile -> center inverse
- ``pyramid_indexer``: tile membership stack over a zoom range

Submodules are imported explicitly; ``models`` depends on ``tile_key`` and
``tile_math`` depends on ``models``.
"""

__all__ = ["tile_key", "tile_math", "pyramid_indexer"]
