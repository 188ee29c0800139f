"""Command-line interface for Fast Meuble MCP Server."""

import argparse
import asyncio


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Fast Meuble MCP Server - Shop the Fast Meuble furniture store and run its admin console"
    )
    parser.add_argument(
        "--mode",
        choices=["stdio", "http", "sse"],
        default="stdio",
        help="Server mode: stdio (for MCP clients), http (REST API) or sse (MCP over SSE)",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (http and sse modes, default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (default: 8000 for http, 8080 for sse)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable hot reloading (HTTP mode only, watches for file changes)",
    )

    args = parser.parse_args()

    if args.mode == "http":
        from .http_server import run_http_server

        port = args.port or 8000
        print(f"Starting Fast Meuble HTTP Server on {args.host}:{port}")
        print(f"API documentation available at http://{args.host}:{port}/docs")
        run_http_server(host=args.host, port=port, reload=args.reload)
    elif args.mode == "sse":
        from .sse_server import run_sse_server

        run_sse_server(host=args.host, port=args.port or 8080)
    else:
        # Run MCP server via stdio
        from .server import main as server_main

        asyncio.run(server_main())


if __name__ == "__main__":
    main()
