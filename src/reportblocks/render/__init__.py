"""Read-only projection of block documents into presentation trees."""

from __future__ import annotations

from .renderer import RenderCallbacks, RenderedBlock, RenderedDocument, render, to_rich_tree

__all__ = ["RenderCallbacks", "RenderedBlock", "RenderedDocument", "render", "to_rich_tree"]
