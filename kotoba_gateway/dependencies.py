"""Global dependencies for the application."""

from fastapi import Request

from kotoba_gateway.gateway.service import RequestGateway
from kotoba_gateway.vertex.manager import ConnectionManager


async def get_connection_manager(request: Request) -> ConnectionManager:
    """Dependency to get the connection manager created at startup.

    The manager owns the single Vertex AI connection and is shared by
    every request.

    Args:
        request: The FastAPI request object.

    Returns:
        The application's ConnectionManager instance.
    """
    return request.app.state.connection_manager


async def get_request_gateway(request: Request) -> RequestGateway:
    """Dependency to get the request gateway created at startup."""
    return request.app.state.request_gateway
