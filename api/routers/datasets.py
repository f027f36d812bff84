"""
Stored table and resampling endpoints.
"""

import json
import logging
from typing import Annotated, List, Optional

import pandas as pd
from fastapi import APIRouter, Depends, HTTPException, Query

from ..models import (
    ResampleRequest,
    ResampleResponse,
    TablePreviewResponse,
    TablesResponse,
)
from ..dependencies import get_table_store
from ..config import Settings, get_settings
from fabricator.database import TableStore
from fabricator.errors import FabricationError
from fabricator.resample import ALL, resample_data

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/api/v1",
    tags=["datasets"]
)


def _records(df: pd.DataFrame) -> List[dict]:
    """Rows as JSON-safe dictionaries"""
    return json.loads(df.to_json(orient="records"))


def _level_sizes(N):
    """Translate the "ALL" keyword of a request into the ALL sentinel"""
    if N == "ALL":
        return ALL
    if isinstance(N, list):
        return [_level_sizes(n) for n in N]
    if isinstance(N, dict):
        return {label: _level_sizes(n) for label, n in N.items()}
    return N


@router.get("/tables", response_model=TablesResponse)
async def list_tables(
    store: Annotated[TableStore, Depends(get_table_store)]
):
    """
    List stored tables.
    """
    tables = store.list_tables()
    return TablesResponse(tables=tables, total_tables=len(tables))


@router.get("/tables/{name}", response_model=TablePreviewResponse)
async def preview_table(
    name: str,
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[TableStore, Depends(get_table_store)],
    limit: Optional[int] = Query(None, ge=1, description="Rows to return (default: preview_rows setting)")
):
    """
    Return the first rows of a stored table.
    """
    if not store.table_exists(name):
        raise HTTPException(status_code=404, detail=f"Table '{name}' not found")

    df = store.load_table(name, limit=limit or settings.preview_rows)
    return TablePreviewResponse(
        table=name,
        count=len(df),
        columns=[str(col) for col in df.columns],
        rows=_records(df)
    )


@router.post("/resample", response_model=ResampleResponse)
def resample_table(
    request: ResampleRequest,
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[TableStore, Depends(get_table_store)]
):
    """
    Resample a stored table, preserving its hierarchy.

    ## Request Parameters

    - **table**: Stored table to resample
    - **N**: Units to draw per level (count, list aligned with ID_labels, or mapping; "ALL" keeps every unit)
    - **ID_labels**: Identifier columns, outermost first
    - **replace**: Sample with replacement (default) or without
    - **seed**: Random seed for reproducibility (optional)
    - **save_as**: Store the result as a new table (optional)

    ## Example Request
```json
    {
      "table": "schools",
      "N": [3, 5],
      "ID_labels": ["schools", "students"],
      "seed": 42
    }
```
    """
    if not store.table_exists(request.table):
        raise HTTPException(status_code=404, detail=f"Table '{request.table}' not found")

    data = store.load_table(request.table)

    try:
        result = resample_data(
            data,
            N=_level_sizes(request.N),
            ID_labels=request.ID_labels,
            replace=request.replace,
            keep_original_ids=request.keep_original_ids,
            seed=request.seed
        )
    except FabricationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if len(result) > settings.max_rows_per_request:
        raise HTTPException(
            status_code=400,
            detail=f"Resampled data has {len(result)} rows, exceeding the maximum of "
                   f"{settings.max_rows_per_request} per request"
        )

    if request.save_as:
        store.save_table(result, request.save_as)

    logger.info(f"Resampled '{request.table}' into {len(result)} rows")
    return ResampleResponse(
        table=request.table,
        count=len(result),
        columns=[str(col) for col in result.columns],
        levels=list(result.attrs.get('levels', [])),
        rows=_records(result),
        seed=request.seed,
        saved_as=request.save_as
    )
