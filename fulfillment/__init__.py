"""Order fulfillment core for a hyperlocal marketplace."""

__version__ = "0.1.0"
