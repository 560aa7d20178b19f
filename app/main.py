from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.schemas import ActionRequest, CreateChatRequest, LoginRequest, SendMessageRequest
from assistant.assistant import ACTIONS, GenerationClient, build_action_prompt
from assistant.core.errors import GenerationError, InvalidInputError, NotFoundError, StorageError
from assistant.core.memory import UserStore
from assistant.core.models import DEFAULT_CHAT_TITLE, Chat, Message, UserRecord, derive_title, utc_timestamp
from config.settings import Settings, get_settings


settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="[%(asctime)s] %(levelname)s - %(message)s",
)
logger = logging.getLogger("chatbot")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    logger.info(
        "Config: model=%s key_set=%s data_dir=%s port=%s",
        settings.gemini_model,
        bool(settings.gemini_api_key),
        settings.data_dir,
        settings.port,
    )
    yield


app = FastAPI(title="Gemini Chat Backend", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted(
        {".".join(str(p) for p in err.get("loc", ()) if p != "body") or "body" for err in exc.errors()}
    )
    logger.info("Rejected request to %s: invalid %s", request.url.path, fields)
    return JSONResponse(
        status_code=400,
        content={"detail": f"Missing or invalid request fields: {', '.join(fields)}"},
    )


_store: Optional[UserStore] = None
_client: Optional[GenerationClient] = None

ClientProvider = Callable[[], GenerationClient]


def get_store(settings: Settings = Depends(get_settings)) -> UserStore:
    global _store
    if _store is None:
        _store = UserStore(settings.data_dir)
    return _store


def get_generation_client(settings: Settings = Depends(get_settings)) -> ClientProvider:
    """Return a provider so the Gemini client is only built once a request passed validation."""

    def provide() -> GenerationClient:
        global _client
        if _client is None:
            _client = GenerationClient.from_settings(settings)
        return _client

    return provide


def _load(store: UserStore, username: str) -> UserRecord:
    try:
        return store.load(username)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        logger.exception("Loading user data failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to load user data")


def _save(store: UserStore, username: str, record: UserRecord) -> None:
    try:
        store.save(username, record)
    except StorageError as e:
        logger.exception("Saving user data failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to save user data")


def _find_chat(record: UserRecord, chat_id: str) -> Chat:
    try:
        return record.get_chat(chat_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Chat not found")


@app.post("/api/login")
def login(req: LoginRequest, store: UserStore = Depends(get_store)) -> Dict[str, Any]:
    if not req.username or not req.username.strip():
        raise HTTPException(status_code=400, detail="Username is required")

    record = _load(store, req.username)
    logger.info("Login: username=%s chats=%s", req.username, len(record.chats))
    return record.model_dump(by_alias=True)


@app.get("/api/chats/{username}")
def list_chats(username: str, store: UserStore = Depends(get_store)) -> List[Dict[str, Any]]:
    record = _load(store, username)
    return [chat.model_dump(by_alias=True) for chat in record.chats]


@app.post("/api/chats/{username}", status_code=201)
def create_chat(
    username: str,
    req: Optional[CreateChatRequest] = None,
    store: UserStore = Depends(get_store),
) -> Dict[str, Any]:
    record = _load(store, username)

    title = req.title if req and req.title else DEFAULT_CHAT_TITLE
    chat = Chat(title=title)
    record.chats.insert(0, chat)
    _save(store, username, record)

    logger.info("Created chat: username=%s chat_id=%s", username, chat.id)
    return chat.model_dump(by_alias=True)


@app.post("/api/chats/{username}/{chat_id}/messages")
def send_message(
    username: str,
    chat_id: str,
    req: SendMessageRequest,
    store: UserStore = Depends(get_store),
    client_provider: ClientProvider = Depends(get_generation_client),
) -> Dict[str, Any]:
    content = req.message or ""
    if not content.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    record = _load(store, username)
    chat = _find_chat(record, chat_id)

    is_first_message = not chat.messages
    user_message = Message(content=content, sender="user")
    chat.messages.append(user_message)

    logger.info(
        "Incoming message: username=%s chat_id=%s history_turns=%s message_len=%s",
        username,
        chat_id,
        len(chat.messages),
        len(content),
    )
    try:
        reply = client_provider().generate_chat(chat.messages)
    except GenerationError as e:
        logger.exception("Message processing failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to process message with Gemini API")

    ai_message = Message(content=reply, sender="ai")
    chat.messages.append(ai_message)
    if is_first_message:
        chat.title = derive_title(content)

    _save(store, username, record)

    logger.info("Model responded with %s chars", len(reply))
    return {
        "userMessage": user_message.model_dump(by_alias=True),
        "aiResponse": ai_message.model_dump(by_alias=True),
        "title": chat.title,
    }


@app.delete("/api/chats/{username}/{chat_id}")
def delete_chat(username: str, chat_id: str, store: UserStore = Depends(get_store)) -> Dict[str, Any]:
    record = _load(store, username)
    record.chats = [chat for chat in record.chats if chat.id != chat_id]
    _save(store, username, record)
    return {"success": True}


@app.delete("/api/chats/{username}")
def delete_all_chats(username: str, store: UserStore = Depends(get_store)) -> Dict[str, Any]:
    record = _load(store, username)
    record.chats = []
    _save(store, username, record)
    return {"success": True}


@app.post("/api/chats/{username}/{chat_id}/actions")
def apply_action(
    username: str,
    chat_id: str,
    req: ActionRequest,
    store: UserStore = Depends(get_store),
    client_provider: ClientProvider = Depends(get_generation_client),
) -> Dict[str, Any]:
    if not req.message_id or not req.action:
        raise HTTPException(status_code=400, detail="messageId and action are required")
    if req.action not in ACTIONS:
        raise HTTPException(status_code=400, detail="Invalid action. Use 'concise' or 'expand'.")

    record = _load(store, username)
    chat = _find_chat(record, chat_id)
    message = chat.find_message(req.message_id, sender="ai")
    if message is None:
        raise HTTPException(status_code=404, detail="AI message not found")

    prompt = build_action_prompt(req.action, message.content)
    logger.info("Applying action=%s to message_id=%s chat_id=%s", req.action, message.id, chat_id)
    try:
        new_content = client_provider().generate_chat([{"sender": "user", "content": prompt}])
    except GenerationError as e:
        logger.exception("Action processing failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to process action")

    message.content = new_content
    message.timestamp = utc_timestamp()
    _save(store, username, record)

    return {"message": message.model_dump(by_alias=True)}


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
