"""packagent — a travel packing assistant driven by a two-tool LLM agent."""

__version__ = "0.1.0"
