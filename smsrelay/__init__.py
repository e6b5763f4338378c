"""Relay inbound SMS to an LLM and text the answer back in segments."""

__version__ = "0.1.0"
