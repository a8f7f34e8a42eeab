"""Day-bucketed Zendesk ticket and call analytics."""

__version__ = "0.1.0"
