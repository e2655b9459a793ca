"""Webhook runtime -- commands, chat relay, and response delivery."""

from .. import __version__

__all__ = ["__version__"]
