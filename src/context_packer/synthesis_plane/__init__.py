"""Synthesis plane: markdown rendering of the context pack."""

from context_packer.synthesis_plane.pack_render import FileBlock, PackHeader, PackRenderer

__all__ = ["FileBlock", "PackHeader", "PackRenderer"]
