"""Chat reminder bot: natural-language intake and a periodic due sweep."""

__version__ = "1.0.0"
