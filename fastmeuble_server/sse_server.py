"""SSE transport for the Fast Meuble MCP server."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from mcp.server.sse import SseServerTransport
from starlette.responses import Response

from . import server

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("fastmeuble-sse-server")

sse = SseServerTransport("/messages/")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared session on startup and release it on shutdown."""
    logger.info("Initializing Fast Meuble MCP SSE Server...")
    context = server.create_context()

    yield

    logger.info("Shutting down Fast Meuble MCP SSE Server...")
    context.close()


app = FastAPI(
    title="Fast Meuble MCP SSE Server",
    description="MCP protocol over Server-Sent Events",
    version="0.1.0",
    lifespan=lifespan,
)


async def handle_sse(request: Request) -> Response:
    """Open an MCP session; client messages arrive on POST /messages/."""
    logger.info("SSE client connected")
    async with sse.connect_sse(request.scope, request.receive, request._send) as (read_stream, write_stream):
        await server.app.run(read_stream, write_stream, server.app.create_initialization_options())
    logger.info("SSE client disconnected")
    return Response()


app.add_route("/sse", handle_sse, methods=["GET"])
app.mount("/messages/", app=sse.handle_post_message)


@app.get("/")
async def root():
    """Root endpoint with SSE information."""
    return {
        "name": "Fast Meuble MCP SSE Server",
        "version": "0.1.0",
        "transport": "SSE (Server-Sent Events)",
        "endpoints": {
            "sse": "GET /sse - SSE endpoint for MCP protocol",
            "messages": "POST /messages/?session_id=... - client messages",
            "health": "GET /health - Health check",
        },
    }


@app.get("/health")
async def health():
    """Health check."""
    return {
        "status": "healthy",
        "authenticated": server.context.auth_manager.is_authenticated(),
    }


def run_sse_server(host: str = "0.0.0.0", port: int = 8080):
    """Run the SSE server."""
    import uvicorn

    logger.info(f"Starting SSE server on {host}:{port}")
    logger.info(f"SSE endpoint: http://{host}:{port}/sse")

    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    run_sse_server()
