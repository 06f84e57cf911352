"""
SQLModel Database Models

Unified models using SQLModel (SQLAlchemy + Pydantic) for both:
- Database ORM operations on the existing trees/predictions schema
- FastAPI request/response validation

The schema itself is owned by the database; these table models only map
the columns this API reads and writes.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


# ============================================================================
# Table Models
# ============================================================================

class Species(SQLModel, table=True):
    """Species reference data. common_name is keyed by locale ("en", ...)"""
    __tablename__ = "species"

    id: Optional[int] = Field(default=None, primary_key=True)
    common_name: Optional[Dict[str, Any]] = Field(default=None, sa_column=sa.Column(sa.JSON))


class Tree(SQLModel, table=True):
    """Tree database model"""
    __tablename__ = "trees"

    id: Optional[int] = Field(default=None, primary_key=True)
    recognized_specie_id: Optional[int] = Field(default=None, foreign_key="species.id")


class Image(SQLModel, table=True):
    """Image database model (original and compressed file names)"""
    __tablename__ = "images"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    name_compressed: Optional[str] = None


class TreeImage(SQLModel, table=True):
    """Junction table linking trees to images (many-to-many)"""
    __tablename__ = "trees_images"

    tree_id: int = Field(foreign_key="trees.id", primary_key=True)
    image_id: int = Field(foreign_key="images.id", primary_key=True)


class Prediction(SQLModel, table=True):
    """
    Model prediction for a tree.

    At most one row per (tree_id, model_name, model_version).
    """
    __tablename__ = "predictions"

    id: Optional[int] = Field(default=None, primary_key=True)
    tree_id: int = Field(foreign_key="trees.id")
    predicted_specie_id: Optional[int] = Field(default=None, foreign_key="species.id")
    labeled_specie_id: Optional[int] = Field(default=None, foreign_key="species.id")
    model_name: str = Field(max_length=255)
    model_version: str = Field(max_length=255)


# ============================================================================
# Tree / Species API Models
# ============================================================================

class TreeRead(SQLModel):
    """One tree/prediction/image row as shown on the dashboard"""
    tree_id: int
    image_name: Optional[str] = None
    compressed_image_name: Optional[str] = None
    predicted_specie_id: Optional[int] = None
    predicted_common_name: Optional[str] = None
    labeled_specie_id: Optional[int] = None
    labeled_common_name: Optional[str] = None


class SpeciesRead(SQLModel):
    """Species with its English common name"""
    id: int
    common_name: Optional[str] = None


class UpdateSpeciesRequest(SQLModel):
    """
    Body for PUT /trees/{tree_id}/species.

    Fields are optional at the schema level so that a missing field is
    answered with 400 by the handler rather than a validation 422.
    """
    predicted_specie_id: Optional[int] = None
    labeled_specie_id: Optional[int] = None
    model_name: Optional[str] = None
    model_version: Optional[str] = None


class UpdateSpeciesResponse(SQLModel):
    tree_id: int
    prediction_id: int
    message: str


# ============================================================================
# S3 Sync Models
# ============================================================================

class SyncErrorRead(SQLModel):
    tree_id: int
    image_name: Optional[str] = None
    error: str


class SyncResultRead(SQLModel):
    """Response of POST /versioning/sync-s3"""
    message: str
    dry_run: bool
    processed: int
    moved: int
    skipped: int
    errors: List[SyncErrorRead] = Field(default_factory=list)
    actions: List[Dict[str, Any]] = Field(default_factory=list)
    duration: int = Field(description="Wall-clock duration in milliseconds")
    timestamp: datetime


# ============================================================================
# Debug Models
# ============================================================================

class PredictionDebugRead(TreeRead):
    """Prediction row with its match status and the S3 folders it maps to"""
    match_status: str
    predicted_folder: Optional[str] = None
    labeled_folder: Optional[str] = None
    folder_same: bool


class PredictionStats(SQLModel):
    total: int
    matches: int
    mismatches: int
    unknown: int


class DebugPredictionsResponse(SQLModel):
    stats: PredictionStats
    predictions: List[PredictionDebugRead]


# ============================================================================
# Training Models
# ============================================================================

class TrainingStartRequest(SQLModel):
    """Hyper-parameters forwarded to the training pipeline"""
    epochs: int = Field(default=50, ge=1)
    imgsz: int = Field(default=224, ge=32)
    batch_size: int = Field(default=16, ge=1)


class TrainingStartResponse(SQLModel):
    executionArn: str
    startDate: Optional[datetime] = None


class TrainingProgressRequest(SQLModel):
    executionArn: Optional[str] = None


class TrainingProgressResponse(SQLModel):
    status: str
    currentStep: Optional[str] = None
    progress: float
    startDate: Optional[datetime] = None
    logs: List[Dict[str, Any]] = Field(default_factory=list)


class TrainingLogsRequest(SQLModel):
    logGroupName: Optional[str] = None
    logStreamName: Optional[str] = None
    nextToken: Optional[str] = None


class TrainingLogsResponse(SQLModel):
    events: List[Dict[str, Any]] = Field(default_factory=list)
    nextForwardToken: Optional[str] = None
    nextBackwardToken: Optional[str] = None
