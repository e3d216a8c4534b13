import json
from typing import List

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from fastapi.requests import HTTPConnection
from fastapi.responses import JSONResponse, PlainTextResponse

from agents.tutor_agent import TutorAgent
from db.usage_repository import UsageRepository
from models.usage_models import ChatRequest, ChatResponse, EnvReport, ErrorResponse, UsageRecord
from realtime.broadcaster import ConnectionManager, NEW_USAGE_EVENT
from utils.errors import GenerationError, InputValidationError, PersistenceError
from utils.logging import get_request_stats, log_error
from utils.settings import Settings


router = APIRouter()

CHAT_FAILED = "Error al procesar la respuesta."
HISTORY_FAILED = "No se pudo obtener el historial."


def get_settings_dep(connection: HTTPConnection) -> Settings:
    return connection.app.state.settings

def get_usage_repo(connection: HTTPConnection) -> UsageRepository:
    return connection.app.state.usage_repo

def get_tutor_agent(connection: HTTPConnection) -> TutorAgent:
    return connection.app.state.tutor_agent

def get_broadcaster(connection: HTTPConnection) -> ConnectionManager:
    return connection.app.state.broadcaster


async def parse_chat_request(request: Request) -> ChatRequest:
    """Parse the chat body. Anything that is not a JSON object counts as empty.

    Raises InputValidationError when grado or tema is missing after trimming.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    data = ChatRequest.model_validate(payload)
    if not data.is_complete():
        raise InputValidationError()
    return data


@router.get("/", response_class=PlainTextResponse)
async def root():
    return "OK"

@router.get("/health")
async def health_check():
    return {"status": "healthy", "message": "Profe IA API is running"}

@router.get("/test-env", response_model=EnvReport)
async def test_env(settings: Settings = Depends(get_settings_dep)):
    return settings.presence_report()

@router.get("/logs/stats")
async def logging_stats():
    """Request, AI and broadcast counters since startup"""
    return {"logging_stats": get_request_stats()}


@router.post(
    "/api/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def chat(
    request: Request,
    agent: TutorAgent = Depends(get_tutor_agent),
    repo: UsageRepository = Depends(get_usage_repo),
    broadcaster: ConnectionManager = Depends(get_broadcaster),
):
    data = await parse_chat_request(request)

    try:
        respuesta = await agent.generate(data.grado, data.tema)
        record = await repo.create_record(data.grado, data.tema, respuesta)
    except (GenerationError, PersistenceError) as e:
        log_error(e, "/api/chat", {"grado": data.grado, "tema": data.tema[:100]})
        return JSONResponse(status_code=500, content={"error": CHAT_FAILED})

    await broadcaster.broadcast(NEW_USAGE_EVENT, record.model_dump(mode="json"))

    return ChatResponse(respuesta=record.respuesta)


@router.get(
    "/api/historial/{grado}",
    response_model=List[UsageRecord],
    responses={500: {"model": ErrorResponse}},
)
async def history(grado: str, repo: UsageRepository = Depends(get_usage_repo)):
    try:
        return await repo.find_by_grade(grado)
    except PersistenceError as e:
        log_error(e, "/api/historial", {"grado": grado})
        return JSONResponse(status_code=500, content={"error": HISTORY_FAILED})


@router.websocket("/ws")
async def subscribe(websocket: WebSocket, broadcaster: ConnectionManager = Depends(get_broadcaster)):
    await broadcaster.connect(websocket)
    try:
        while True:
            # Inbound messages carry no meaning; reading keeps the disconnect visible
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(websocket)
