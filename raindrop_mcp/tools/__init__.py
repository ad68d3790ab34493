"""Tool handlers, one module per Raindrop.io resource.

Every handler has the signature ``async (client, params) -> str``: it
receives the shared ``RaindropClient`` and the tool's validated input model
and returns the success text.  Failures propagate as exceptions.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from raindrop_mcp.raindrop_client import RaindropClient

ToolHandler = Callable[[RaindropClient, Any], Awaitable[str]]
