from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from webapps.config.settings import Settings

ABOUT_TEXT = "This is the about page."
CONTACT_TEXT = "Contact us at contact@example.com"
STATUS_TEXT = "Status: OK"

greeting_router = APIRouter(default_response_class=PlainTextResponse)
router = APIRouter(default_response_class=PlainTextResponse)


@greeting_router.get("/")
async def index(request: Request) -> str:
    """Fixed greeting."""
    settings: Settings = request.app.state.settings
    return settings.greeting


@router.get("/about")
async def about() -> str:
    return ABOUT_TEXT


@router.get("/contact")
async def contact() -> str:
    return CONTACT_TEXT


@router.get("/status")
async def status_page() -> str:
    return STATUS_TEXT
