"""
Pydantic models for API requests and responses.

These models define the structure of data sent to and from the API.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_validator


# Units to draw at one level: a count, or "ALL" to keep every unit
LevelSize = Union[NonNegativeInt, Literal["ALL"]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# REQUEST MODELS
# ============================================================================

class ResampleRequest(BaseModel):
    """Request model for resampling a stored table"""

    table: str = Field(
        ...,
        description="Name of the stored table to resample",
        min_length=1,
        examples=["schools"]
    )
    N: Optional[Union[LevelSize, List[LevelSize], Dict[str, LevelSize]]] = Field(
        None,
        description=(
            "Units to draw: a count for the outermost level, a list aligned "
            "with ID_labels, or a mapping of level name to count"
        ),
        examples=[[3, 5], {"schools": 10}]
    )
    ID_labels: Optional[List[str]] = Field(
        None,
        description="Identifier columns, outermost first (default: 'ID' when present)",
        examples=[["schools", "students"]]
    )
    replace: bool = Field(True, description="Sample with replacement")
    keep_original_ids: bool = Field(True, description="Keep source identifiers in '<label>_original'")
    seed: Optional[int] = Field(
        None,
        description="Random seed for reproducibility",
        examples=[42, 12345]
    )
    save_as: Optional[str] = Field(
        None,
        description="Store the result under this table name",
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$"
    )

    @field_validator('ID_labels')
    @classmethod
    def validate_labels_unique(cls, v):
        """Identifier columns may only be listed once"""
        if v is not None and len(set(v)) != len(v):
            raise ValueError("ID_labels must not repeat a column")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "table": "schools",
                "N": [3, 5],
                "ID_labels": ["schools", "students"],
                "seed": 42
            }
        }
    )


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class ResampleResponse(BaseModel):
    """Response model for resampling"""

    table: str = Field(..., description="Source table")
    count: int = Field(..., description="Number of rows in the resampled data")
    columns: List[str] = Field(..., description="Column names")
    levels: List[str] = Field(..., description="Identifier columns, outermost first")
    rows: List[Dict[str, Any]] = Field(..., description="Resampled rows")
    seed: Optional[int] = Field(None, description="Random seed used")
    saved_as: Optional[str] = Field(None, description="Table the result was stored in")
    generated_at: datetime = Field(
        default_factory=_utcnow,
        description="Generation timestamp (UTC)"
    )


class TablesResponse(BaseModel):
    """Stored tables response"""

    tables: List[str] = Field(..., description="Names of stored tables")
    total_tables: int = Field(..., description="Total number of stored tables")


class TablePreviewResponse(BaseModel):
    """First rows of a stored table"""

    table: str = Field(..., description="Table name")
    count: int = Field(..., description="Number of rows returned")
    columns: List[str] = Field(..., description="Column names")
    rows: List[Dict[str, Any]] = Field(..., description="Table rows")


class HealthResponse(BaseModel):
    """Health check response"""

    status: str = Field(..., description="Health status: healthy or unhealthy")
    version: str = Field(..., description="API version")
    database: str = Field(..., description="Database connection status")
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Check timestamp (UTC)"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "version": "0.1.0",
                "database": "connected",
                "timestamp": "2024-12-21T12:00:00Z"
            }
        }
    )
