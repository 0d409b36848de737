"""MultiChat: unified live chat relay for streaming overlays."""

__version__ = "1.0.0"
