"""MCP server exposing the Raindrop.io bookmark API as tools."""

__version__ = "1.0.2"
