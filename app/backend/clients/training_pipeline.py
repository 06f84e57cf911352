"""
Training pipeline client (AWS Step Functions + CloudWatch Logs).

The model-training pipeline runs as a Step Functions state machine whose
tasks log to CloudWatch. This client starts executions, reads their
progress and pages through their log events.

Configuration via environment variables:
- AWS_REGION (default: us-east-1)
- TRAINING_STATE_MACHINE_ARN (required to start executions)
- TRAINING_TOTAL_STEPS (default: 5) - number of task states in the pipeline
"""

import json
import logging
import os
from typing import Any, Dict, Optional

import boto3

logger = logging.getLogger(__name__)

AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
TRAINING_STATE_MACHINE_ARN = os.getenv("TRAINING_STATE_MACHINE_ARN")
TRAINING_TOTAL_STEPS = int(os.getenv("TRAINING_TOTAL_STEPS", "5"))

HISTORY_PAGE_SIZE = 100


class TrainingPipelineClient:
    """Client for the Step Functions training pipeline."""

    def __init__(
        self,
        stepfunctions=None,
        logs=None,
        state_machine_arn: Optional[str] = TRAINING_STATE_MACHINE_ARN,
        total_steps: int = TRAINING_TOTAL_STEPS,
    ):
        """
        Initialize the training pipeline client.

        Args:
            stepfunctions: boto3 Step Functions client (created if omitted)
            logs: boto3 CloudWatch Logs client (created if omitted)
            state_machine_arn: State machine to start executions of
            total_steps: Task states counted towards 100% progress
        """
        self.stepfunctions = stepfunctions or boto3.client("stepfunctions", region_name=AWS_REGION)
        self.logs = logs or boto3.client("logs", region_name=AWS_REGION)
        self.state_machine_arn = state_machine_arn
        self.total_steps = total_steps

    def start_training(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        """
        Start a training execution.

        Args:
            parameters: Execution input (epochs, imgsz, batch_size)

        Returns:
            {"executionArn": str, "startDate": datetime}

        Raises:
            ValueError: If no state machine is configured
        """
        if not self.state_machine_arn:
            raise ValueError("TRAINING_STATE_MACHINE_ARN is not configured")

        response = self.stepfunctions.start_execution(
            stateMachineArn=self.state_machine_arn,
            input=json.dumps(parameters),
        )
        logger.info(f"Started training execution {response['executionArn']}")
        return {
            "executionArn": response["executionArn"],
            "startDate": response.get("startDate"),
        }

    def get_progress(self, execution_arn: str) -> Dict[str, Any]:
        """
        Get status, current step and percentage progress of an execution.

        Progress is the number of exited task states over total_steps,
        capped at 100. The current step is the most recently entered task
        state.
        """
        execution = self.stepfunctions.describe_execution(executionArn=execution_arn)
        history = self.stepfunctions.get_execution_history(
            executionArn=execution_arn,
            maxResults=HISTORY_PAGE_SIZE,
            reverseOrder=True,
        )
        events = history.get("events", [])

        current_step = None
        for event in events:
            if event.get("type") == "TaskStateEntered":
                current_step = event["stateEnteredEventDetails"]["name"]
                break

        completed_steps = sum(1 for e in events if e.get("type") == "TaskStateExited")
        progress = min(completed_steps / self.total_steps * 100, 100) if self.total_steps else 0

        return {
            "status": execution["status"],
            "currentStep": current_step,
            "progress": progress,
            "startDate": execution.get("startDate"),
            "logs": [],
        }

    def get_logs(self, log_group_name: str, log_stream_name: str,
                 next_token: Optional[str] = None) -> Dict[str, Any]:
        """Read a page of log events from the start of a stream."""
        params = {
            "logGroupName": log_group_name,
            "logStreamName": log_stream_name,
            "startFromHead": True,
        }
        if next_token:
            params["nextToken"] = next_token

        response = self.logs.get_log_events(**params)
        return {
            "events": response.get("events", []),
            "nextForwardToken": response.get("nextForwardToken"),
            "nextBackwardToken": response.get("nextBackwardToken"),
        }
