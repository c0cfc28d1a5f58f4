"""proxylens - hand a login page to a paired device over a rendezvous channel."""

__version__ = "0.1.0"
