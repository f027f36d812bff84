"""
FastAPI Dependencies

Shared dependencies for dependency injection.
"""

from typing import Annotated
from fastapi import Depends, HTTPException

from fabricator.database import TableStore, get_store
from .config import Settings, get_settings


def get_table_store(
    settings: Annotated[Settings, Depends(get_settings)]
) -> TableStore:
    """
    Get the TableStore for the configured database.

    Stores are cached per connection string and reused across requests.
    """
    try:
        return get_store(settings.database_url)
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to connect to database: {str(e)}"
        )
