"""Rendezvous channel module for proxylens.

Acquires channels from a directory service and writes encrypted
envelopes to them.
"""

from .client import ChannelClient, ChannelHandle

__all__ = ["ChannelClient", "ChannelHandle"]
