from fastapi import FastAPI, WebSocket, WebSocketDisconnect
import uvicorn
import asyncio
import json
import uuid
from functools import partial
import logging
from chat import ChatConfig, ChatError, ChatRepository, ChatService, ChatUser, EventNotifier
from chat.notifications import ChatEvent, EventAudience
from chat.verification import verify_user_id, verify_user_room
from command import CommandDispatcher
from command.factory import register_builtin_commands
from db import ChatStore

config = ChatConfig.from_env()

logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI()

# Register built-in commands
register_builtin_commands()

repository = ChatRepository(ChatStore(config.db_path) if config.persist else None)
service = ChatService(repository, config)

# In-memory store for connections and their client ids
client_map: dict[WebSocket, str] = {}

# Load the chat graph on startup
@app.on_event("startup")
async def startup_event():
    """Load persisted users and rooms and start the inactivity sweep."""
    try:
        await repository.load()
    except Exception as e:
        logger.error(f"Failed to load chat state: {e}")
        raise
    app.state.sweeper = asyncio.create_task(inactivity_loop())

@app.on_event("shutdown")
async def shutdown_event():
    sweeper = getattr(app.state, "sweeper", None)
    if sweeper is not None:
        sweeper.cancel()

@app.get("/health")
async def health():
    return {
        "status": "ok",
        "connections": len(client_map),
        "users": len(repository.users),
        "rooms": len(repository.rooms),
    }

def parse_frame(data: str) -> tuple[str, str | None, bool | None]:
    """Accept plain text, {"text": ..., "room": ...} or {"typing": bool, "room": ...}."""
    try:
        frame = json.loads(data)
    except json.JSONDecodeError:
        return data.strip(), None, None
    if not isinstance(frame, dict):
        return data.strip(), None, None
    typing = frame.get("typing")
    return (
        str(frame.get("text", "")).strip(),
        frame.get("room") or None,
        typing if isinstance(typing, bool) else None
    )

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    client_id = str(uuid.uuid4())
    client_map[websocket] = client_id

    notifier = EventNotifier(sink=partial(deliver_event, websocket), clock=service.clock)
    dispatcher = CommandDispatcher(repository, service, notifier, config)

    await websocket.send_text(json.dumps({
        "type": "info",
        "text": "Type /help to see the list of commands. Choose a name using \"/nick nickname\".",
        "client_id": client_id
    }))
    try:
        while True:
            data = await websocket.receive_text()
            text, room_name, typing = parse_frame(data)
            if typing is not None:
                await handle_typing(websocket, dispatcher, client_id, room_name, typing)
            elif text:
                await handle_input(websocket, dispatcher, client_id, text, room_name)
    except WebSocketDisconnect:
        client_map.pop(websocket, None)
        async with repository.transaction():
            user = repository.get_user_by_client_id(client_id)
            if user is not None:
                service.disconnect_user(user)
                await repository.commit_changes()
        logger.info(f"Client {client_id} disconnected")

def current_user_id(client_id: str) -> str | None:
    user = repository.get_user_by_client_id(client_id)
    return user.id if user else None

async def handle_input(websocket: WebSocket, dispatcher: CommandDispatcher, client_id: str, text: str, room_name: str | None):
    """Run a command, or post plain text to the active room."""
    try:
        response = await dispatcher.dispatch(text, current_user_id(client_id), client_id, room_name)

        if response.is_command:
            await websocket.send_text(json.dumps({
                "type": response.response_type,
                "text": response.message,
                "retryable": response.retryable
            }))
            return

        await post_message(dispatcher, client_id, room_name, text)
    except ChatError as e:
        await send_error(websocket, e)
    except Exception as e:
        logger.error(f"Error handling input from {client_id}: {e}", exc_info=True)
        await websocket.send_text(json.dumps({
            "type": "error",
            "text": "Something went wrong processing that message."
        }))

async def handle_typing(websocket: WebSocket, dispatcher: CommandDispatcher, client_id: str, room_name: str | None, is_typing: bool):
    try:
        await post_typing(dispatcher, client_id, room_name, is_typing)
    except ChatError as e:
        await send_error(websocket, e)

async def send_error(websocket: WebSocket, error: ChatError):
    await websocket.send_text(json.dumps({"type": "error", "text": error.message, "retryable": error.retryable}))

async def post_message(dispatcher: CommandDispatcher, client_id: str, room_name: str | None, text: str):
    async with repository.transaction():
        user = verify_user_id(repository, current_user_id(client_id))
        room = verify_user_room(repository, user, room_name)

        service.update_activity(user)
        service.add_message(user, room, text)
        await repository.commit_changes()

        await dispatcher.notifier.on_message(room, user, text)

async def post_typing(dispatcher: CommandDispatcher, client_id: str, room_name: str | None, is_typing: bool):
    async with repository.transaction():
        user = verify_user_id(repository, current_user_id(client_id))
        room = verify_user_room(repository, user, room_name)

        service.update_activity(user)
        await repository.commit_changes()

        await dispatcher.notifier.set_typing(user, room, is_typing)

async def sweep_inactive() -> list[ChatUser]:
    """Mark idle users inactive and tell every connection."""
    async with repository.transaction():
        idle = service.mark_inactive()
        if idle:
            await repository.commit_changes()
            broadcaster = EventNotifier(sink=partial(deliver_event, None), clock=service.clock)
            await broadcaster.mark_inactive(idle)
    return idle

async def inactivity_loop():
    while True:
        await asyncio.sleep(config.inactivity_check_seconds)
        try:
            await sweep_inactive()
        except ChatError as e:
            logger.warning(f"Inactivity sweep failed: {e.message}")

def sockets_for(user_name: str | None) -> list[WebSocket]:
    user = repository.get_user_by_name(user_name) if user_name else None
    if user is None or user.client_id is None:
        return []
    return [ws for ws, cid in client_map.items() if cid == user.client_id]

def room_sockets(room_names: list[str]) -> list[WebSocket]:
    member_ids: set[str] = set()
    for name in room_names:
        room = repository.get_room_by_name(name)
        if room is not None:
            member_ids |= room.users
    client_ids = {
        u.client_id for u in (repository.get_user_by_id(uid) for uid in member_ids)
        if u is not None and u.client_id
    }
    return [ws for ws, cid in client_map.items() if cid in client_ids]

async def deliver_event(caller: WebSocket | None, event: ChatEvent):
    """Send an event to the connections its audience covers."""
    callers = [caller] if caller is not None else []
    if event.audience == EventAudience.CALLER:
        recipients = callers
    elif event.audience == EventAudience.ALL:
        recipients = list(client_map.keys())
    elif event.audience == EventAudience.USER:
        recipients = [*callers, *sockets_for(event.to_user)]
    else:
        rooms = [event.room] if event.room else event.rooms
        recipients = [*callers, *room_sockets(rooms), *sockets_for(event.to_user)]

    payload = event.to_json()
    for ws in dict.fromkeys(recipients):
        await ws.send_text(payload)

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
