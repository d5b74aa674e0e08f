"""Orderflow: durable session store and conversation state machine.

Orderflow keeps per-user purchase flows (language, registration,
browsing, cart, checkout) alive across restarts while bounding the
memory and disk footprint of every session.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
