"""FastAPI router for the Vertex AI operation endpoints."""

from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from kotoba_gateway.dependencies import get_connection_manager, get_request_gateway
from kotoba_gateway.vertex.exceptions import ModelCallError, NotReadyError
from kotoba_gateway.vertex.manager import ConnectionManager
from kotoba_gateway.vertex.schemas import UNAVAILABLE_SUGGESTIONS, PermissionReport

from .schemas import (
    ChatBody,
    ExplainGrammarBody,
    ExplainKanjiBody,
    GenerateExamplesBody,
    OperationRequest,
    TranslateBody,
    OperationBody,
)
from .service import RequestGateway


router = APIRouter(prefix="/api/vertexai", tags=["vertexai"])

GatewayDep = Annotated[RequestGateway, Depends(get_request_gateway)]
ManagerDep = Annotated[ConnectionManager, Depends(get_connection_manager)]


def _fields(body: OperationBody | None) -> dict[str, Any]:
    # A missing body is treated like an empty one so the gateway reports
    # the missing required field.
    return body.to_fields() if body is not None else {}


async def _run(gateway: RequestGateway, operation: str, fields: dict[str, Any] | None = None) -> dict[str, Any]:
    result = await gateway.invoke(OperationRequest(operation=operation, fields=fields or {}))
    return result.to_payload()


@router.get("/status")
async def status_endpoint(manager: ManagerDep) -> dict[str, Any]:
    """Report connection state, configuration and permissions.

    This never starts a connection attempt. When the connection is not
    ready, or the diagnostic call fails, the permission check is reported
    as failed instead.
    """
    snapshot = manager.status()
    try:
        permissions = await manager.check_permissions()
    except NotReadyError as e:
        permissions = PermissionReport(
            has_permissions=False,
            error=e.message,
            suggestions=list(UNAVAILABLE_SUGGESTIONS),
        )
    except ModelCallError as e:
        # A failed diagnostic call is reported, not raised
        permissions = PermissionReport(has_permissions=False, error=e.message)

    return {
        "success": True,
        "status": "Vertex AI is running" if snapshot.initialized else "Vertex AI is not initialized",
        **snapshot.model_dump(mode="json", by_alias=True),
        "permissions": permissions.model_dump(by_alias=True),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/test")
async def test_endpoint(gateway: GatewayDep) -> dict[str, Any]:
    """Make a raw test call to the model."""
    payload = await _run(gateway, "test")
    payload["message"] = "Vertex AI connection successful"
    return payload


@router.post("/translate")
async def translate_endpoint(gateway: GatewayDep, body: TranslateBody | None = None) -> dict[str, Any]:
    """Translate text (Indonesian by default)."""
    return await _run(gateway, "translate", _fields(body))


@router.post("/explain-kanji")
async def explain_kanji_endpoint(gateway: GatewayDep, body: ExplainKanjiBody | None = None) -> dict[str, Any]:
    """Explain a kanji character in Indonesian."""
    return await _run(gateway, "explain-kanji", _fields(body))


@router.post("/explain-grammar")
async def explain_grammar_endpoint(gateway: GatewayDep, body: ExplainGrammarBody | None = None) -> dict[str, Any]:
    """Explain a Japanese grammar pattern in Indonesian."""
    return await _run(gateway, "explain-grammar", _fields(body))


@router.post("/chat")
async def chat_endpoint(gateway: GatewayDep, body: ChatBody | None = None) -> dict[str, Any]:
    """Answer a Japanese learning question."""
    return await _run(gateway, "chat", _fields(body))


@router.post("/generate-examples")
async def generate_examples_endpoint(gateway: GatewayDep, body: GenerateExamplesBody | None = None) -> dict[str, Any]:
    """Generate example sentences for a vocabulary word."""
    return await _run(gateway, "generate-examples", _fields(body))
