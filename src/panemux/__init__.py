"""panemux — a small terminal multiplexer.

Runs commands in pseudo-terminals, keeps an emulated screen for each, and
paints the active one onto the real terminal with a line-diff renderer.
"""

__version__ = "0.1.0"
