"""Server-rendered pages: the landing page and the chat UI."""

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

WEB_DIR = Path(__file__).resolve().parent
STATIC_DIR = WEB_DIR / "static"

templates = Jinja2Templates(directory=str(WEB_DIR / "templates"))
web_router = APIRouter(include_in_schema=False)


@web_router.get("/", response_class=HTMLResponse)
async def index(request: Request):
    return templates.TemplateResponse(request, "index.html")


@web_router.get("/chat", response_class=HTMLResponse)
async def chat(request: Request, room: str = ""):
    return templates.TemplateResponse(request, "chat.html", {"room": room.strip()})
