"""
FastAPI dependencies shared by the route modules.
"""

from collections.abc import Iterator

from sqlalchemy.orm import Session

from invoicing.infrastructure.database import get_session


def get_db() -> Iterator[Session]:
    """One session per request, closed (and rolled back on error) afterwards."""
    with get_session() as session:
        yield session
