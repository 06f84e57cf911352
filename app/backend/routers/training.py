"""
Training Router - proxy to the Step Functions training pipeline

Endpoints:
  POST   /api/training/start     - Start a training execution
  POST   /api/training/progress  - Status and progress of an execution
  POST   /api/training/logs      - Page through an execution's log stream
"""

import logging

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, HTTPException

from clients.training_pipeline import TrainingPipelineClient
from dependencies import get_training_client
from models import (
    TrainingLogsRequest,
    TrainingLogsResponse,
    TrainingProgressRequest,
    TrainingProgressResponse,
    TrainingStartRequest,
    TrainingStartResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/start", response_model=TrainingStartResponse)
def start_training(
    params: TrainingStartRequest,
    client: TrainingPipelineClient = Depends(get_training_client),
):
    """Start the training pipeline with the given hyper-parameters."""
    try:
        return client.start_training(params.model_dump())
    except (ValueError, BotoCoreError, ClientError) as e:
        logger.error(f"Error starting training: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to start training: {str(e)}")


@router.post("/progress", response_model=TrainingProgressResponse)
def get_training_progress(
    request: TrainingProgressRequest,
    client: TrainingPipelineClient = Depends(get_training_client),
):
    """Get execution status, current step and progress percentage."""
    if not request.executionArn:
        raise HTTPException(status_code=400, detail="executionArn is required")

    try:
        return client.get_progress(request.executionArn)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Error getting training progress: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to get training progress: {str(e)}")


@router.post("/logs", response_model=TrainingLogsResponse)
def get_training_logs(
    request: TrainingLogsRequest,
    client: TrainingPipelineClient = Depends(get_training_client),
):
    """Get log events for a training log stream."""
    if not request.logGroupName or not request.logStreamName:
        raise HTTPException(status_code=400, detail="logGroupName and logStreamName are required")

    try:
        return client.get_logs(request.logGroupName, request.logStreamName, request.nextToken)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Error getting training logs: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to get training logs: {str(e)}")
