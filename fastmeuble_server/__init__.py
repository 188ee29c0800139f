"""Fast Meuble MCP Server - storefront and admin console tools for the Fast Meuble furniture store."""

__version__ = "0.1.0"
