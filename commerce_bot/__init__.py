"""Conversational footwear store: chat dialogue in, orders out."""

__version__ = "0.1.0"
