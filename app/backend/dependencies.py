"""
FastAPI Dependencies for external backends

The S3 storage wrapper and the training pipeline client are created once
by the application lifespan (see main.py) and stored on app.state. Routers
receive them through these dependencies, which tests override.
"""

from fastapi import Request

from clients.training_pipeline import TrainingPipelineClient
from services.s3_storage import S3Storage


def get_storage(request: Request) -> S3Storage:
    """Shared S3 storage wrapper for this process."""
    return request.app.state.storage


def get_training_client(request: Request) -> TrainingPipelineClient:
    """Shared training pipeline client for this process."""
    return request.app.state.training_client
