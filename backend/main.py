import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from pathlib import Path
from typing import Optional

import httpx
from fastapi import BackgroundTasks, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import FileResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.middleware.sessions import SessionMiddleware

import database
import settings
from auth import AuthError, LineOAuthService
from bot import LineApiError, LineClient, build_reminders, handle_events, push_reminder
from dates import now
from models import DeleteRequest, DoneRequest, EditRequest, PinRequest, Todo, UserInfo, WebhookBody

settings.configure_logging()
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
VIEWS_DIR = BASE_DIR / "views"
STATIC_DIR = BASE_DIR / "static"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    database.init_db()
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(SessionMiddleware, secret_key=settings.SESSION_SECRET, session_cookie="session")
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


@app.middleware("http")
async def no_cache(request: Request, call_next):
    response = await call_next(request)
    if not request.url.path.startswith("/static"):
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
    return response


@lru_cache
def get_line_client() -> LineClient:
    return LineClient(settings.LINE_BOT_SECRET, settings.LINE_BOT_TOKEN)


@lru_cache
def get_oauth_service() -> LineOAuthService:
    return LineOAuthService(
        settings.LINE_LOGIN_ID,
        settings.LINE_LOGIN_SECRET,
        settings.LINE_LOGIN_REDIRECT_URL
    )


def get_edit_url() -> str:
    return settings.EDIT_URL


def current_user(request: Request) -> str:
    """Session user id; 401 when nobody is logged in."""
    user_id = request.session.get("oauth_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="user not found")
    return user_id


# Dashboard pages and login flow

@app.get("/")
def index(request: Request):
    if request.session.get("oauth_token") is None:
        return FileResponse(VIEWS_DIR / "login.html")
    return FileResponse(VIEWS_DIR / "list.html")


@app.get("/login")
def login(request: Request, oauth: LineOAuthService = Depends(get_oauth_service)):
    state = oauth.generate_state()
    request.session["oauth_state"] = state
    return RedirectResponse(oauth.authorization_url(state), status_code=307)


@app.get("/auth")
def auth(
    request: Request,
    code: str = "",
    state: str = "",
    oauth: LineOAuthService = Depends(get_oauth_service)
):
    expected = request.session.pop("oauth_state", None)
    if not expected or state != expected:
        logger.warning("invalid oauth state, expected '%s', got '%s'", expected, state)
        return RedirectResponse("/", status_code=307)

    try:
        token = oauth.exchange_code(code)
        for key in ("access_token", "id_token"):
            if key not in token:
                raise AuthError(f"Token response has no {key}")
        id_token = oauth.extract_id_token(token["id_token"])
    except AuthError as e:
        raise HTTPException(status_code=500, detail=str(e))

    request.session["oauth_token"] = token["access_token"]
    request.session["oauth_id"] = id_token.sub
    request.session["oauth_name"] = id_token.name
    request.session["oauth_picture"] = id_token.picture
    logger.info("User %s logged in", id_token.sub)
    return RedirectResponse("/", status_code=307)


@app.get("/user-info")
def user_info(request: Request) -> UserInfo:
    name = request.session.get("oauth_name")
    picture = request.session.get("oauth_picture")
    if name is None or picture is None:
        raise HTTPException(status_code=401, detail="user not found")
    return UserInfo(name=name, picture=picture)


@app.get("/logout")
def logout(request: Request, oauth: LineOAuthService = Depends(get_oauth_service)):
    token = request.session.get("oauth_token")
    if token is not None:
        try:
            oauth.signout(token)
        except AuthError as e:
            raise HTTPException(status_code=500, detail=str(e))
    request.session.clear()
    return RedirectResponse("/", status_code=307)


# Dashboard task API

@app.get("/list")
def list_tasks(user_id: str = Depends(current_user)) -> list[Todo]:
    return database.list_todos(user_id)


def _found(todo: Optional[Todo]) -> Todo:
    if not todo:
        raise HTTPException(status_code=404, detail="No record")
    return todo


@app.post("/pin")
def pin_task(data: PinRequest, user_id: str = Depends(current_user)) -> Todo:
    return _found(database.set_pin(data.id, data.pin, user_id=user_id))


@app.post("/done")
def done_task(data: DoneRequest, user_id: str = Depends(current_user)) -> Todo:
    return _found(database.set_done(data.id, data.done, user_id=user_id))


@app.post("/edit")
def edit_task(data: EditRequest, user_id: str = Depends(current_user)) -> Todo:
    return _found(database.edit_todo(data.id, data.task, data.due, user_id=user_id))


@app.post("/delete")
def delete_task(data: DeleteRequest, user_id: str = Depends(current_user)) -> dict:
    if not database.delete_todo(data.id, user_id=user_id):
        raise HTTPException(status_code=404, detail="No record")
    return {"status": "deleted"}


# LINE bot

@app.post("/callback")
async def callback(
    request: Request,
    x_line_signature: Optional[str] = Header(None),
    client: LineClient = Depends(get_line_client),
    edit_url: str = Depends(get_edit_url)
) -> dict:
    """LINE webhook: create tasks from text messages, greet on join."""
    body = await request.body()
    if not client.verify_signature(body, x_line_signature):
        logger.warning("Rejected webhook call with invalid signature")
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        payload = WebhookBody.model_validate_json(body)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid payload")

    try:
        await run_in_threadpool(handle_events, payload.events, client, edit_url)
    except (LineApiError, httpx.HTTPError) as e:
        logger.error("Reply failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "ok"}


@app.get("/remind")
def remind(background_tasks: BackgroundTasks, client: LineClient = Depends(get_line_client)) -> dict:
    """Push every user their task summary; each push runs independently after the response."""
    messages = build_reminders(database.get_todos_by_user(), now())
    for user_id, message in messages.items():
        background_tasks.add_task(push_reminder, client, user_id, message)
    logger.info("Scheduled reminders for %d users", len(messages))
    return {"status": "ok", "recipients": len(messages)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
