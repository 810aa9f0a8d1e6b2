from typing import Generator

from fastapi import Header, Request
from sqlalchemy.orm import Session

from database import SessionLocal
from services.share_service import ShareLinkStore

DEFAULT_USER_ID = "anonymous"


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_user_id(x_user_id: str = Header(default=DEFAULT_USER_ID)) -> str:
    """Tenant key for every stored resource, taken from the X-User-Id header."""
    return x_user_id.strip() or DEFAULT_USER_ID


def get_share_store(request: Request) -> ShareLinkStore:
    return request.app.state.share_store
