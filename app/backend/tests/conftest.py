"""Shared fixtures: in-memory SQLite database, fake S3 and Step Functions clients."""

from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from clients.training_pipeline import TrainingPipelineClient
from database.connection import get_db
from dependencies import get_storage, get_training_client
from main import app
from models import Image, Prediction, Species, Tree, TreeImage
from services.s3_storage import S3Storage


def client_error(code: str, operation: str, message: str = "") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


class FakeS3Client:
    """Dict-backed stand-in for a boto3 S3 client."""

    def __init__(self):
        self.objects = {}
        self.calls = []
        self.fail_head = set()
        self.fail_copy = set()
        self.fail_delete = set()
        self.list_error = None

    def put(self, bucket, key, body=b"data"):
        self.objects[(bucket, key)] = body

    def keys(self, bucket):
        return sorted(k for b, k in self.objects if b == bucket)

    def mutating_calls(self):
        return [c for c in self.calls if c[0] in ("copy_object", "delete_object")]

    def head_object(self, Bucket, Key):
        self.calls.append(("head_object", Bucket, Key))
        if Key in self.fail_head:
            raise client_error("403", "HeadObject", "Forbidden")
        if (Bucket, Key) not in self.objects:
            raise client_error("404", "HeadObject", "Not Found")
        return {
            "ContentLength": len(self.objects[(Bucket, Key)]),
            "ETag": '"etag"',
            "LastModified": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }

    def copy_object(self, Bucket, CopySource, Key):
        self.calls.append(("copy_object", Bucket, CopySource["Key"], Key))
        if CopySource["Key"] in self.fail_copy:
            raise client_error("AccessDenied", "CopyObject")
        self.objects[(Bucket, Key)] = self.objects[(CopySource["Bucket"], CopySource["Key"])]
        return {"CopyObjectResult": {"ETag": '"etag"'}}

    def delete_object(self, Bucket, Key):
        self.calls.append(("delete_object", Bucket, Key))
        if Key in self.fail_delete:
            raise client_error("AccessDenied", "DeleteObject")
        self.objects.pop((Bucket, Key), None)
        return {}

    def list_objects_v2(self, Bucket, Prefix="", Delimiter=None, MaxKeys=1000):
        self.calls.append(("list_objects_v2", Bucket, Prefix))
        if self.list_error:
            raise self.list_error
        contents = []
        prefixes = []
        for key in self.keys(Bucket):
            if not key.startswith(Prefix):
                continue
            rest = key[len(Prefix):]
            if Delimiter and Delimiter in rest:
                folder = Prefix + rest.split(Delimiter)[0] + Delimiter
                if {"Prefix": folder} not in prefixes:
                    prefixes.append({"Prefix": folder})
                continue
            contents.append({
                "Key": key,
                "Size": len(self.objects[(Bucket, key)]),
                "LastModified": datetime(2024, 1, 1, tzinfo=timezone.utc),
            })
        contents = contents[:MaxKeys]
        return {
            "Contents": contents,
            "CommonPrefixes": prefixes,
            "KeyCount": len(contents),
            "IsTruncated": False,
        }


class FakeStepFunctions:
    def __init__(self):
        self.started = []
        self.status = "RUNNING"
        self.events = []

    def start_execution(self, stateMachineArn, input):
        self.started.append((stateMachineArn, input))
        return {
            "executionArn": f"{stateMachineArn}:execution-1",
            "startDate": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }

    def describe_execution(self, executionArn):
        if executionArn.endswith("missing"):
            raise client_error("ExecutionDoesNotExist", "DescribeExecution")
        return {
            "status": self.status,
            "startDate": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }

    def get_execution_history(self, executionArn, maxResults, reverseOrder):
        return {"events": list(self.events)}


class FakeLogs:
    def __init__(self):
        self.requests = []

    def get_log_events(self, **params):
        self.requests.append(params)
        return {
            "events": [{"timestamp": 1, "message": "epoch 1/10"}],
            "nextForwardToken": "f/2",
            "nextBackwardToken": "b/1",
        }


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def seed(db):
    """
    Species 1 Acacia, 2 Ficus religiosa, 3 Neem, 4 has no English name.

    Tree 1: predicted Acacia, labeled Ficus religiosa (mismatch)
    Tree 2: predicted and labeled Neem (match)
    Tree 3: predicted Neem, no label yet (unknown)
    """
    db.add_all([
        Species(id=1, common_name={"en": "Acacia"}),
        Species(id=2, common_name={"en": "Ficus religiosa"}),
        Species(id=3, common_name={"en": "Neem"}),
        Species(id=4, common_name={"hi": "Peepal"}),
        Tree(id=1, recognized_specie_id=1),
        Tree(id=2, recognized_specie_id=3),
        Tree(id=3),
        Image(id=1, name="img1.jpg"),
        Image(id=2, name="img2.jpg", name_compressed="img2_compressed.jpg"),
        Image(id=3, name="img3.jpg"),
    ])
    db.flush()
    db.add_all([
        TreeImage(tree_id=1, image_id=1),
        TreeImage(tree_id=2, image_id=2),
        TreeImage(tree_id=3, image_id=3),
        Prediction(id=1, tree_id=1, predicted_specie_id=1, labeled_specie_id=2,
                   model_name="yolo-cls", model_version="v1"),
        Prediction(id=2, tree_id=2, predicted_specie_id=3, labeled_specie_id=3,
                   model_name="yolo-cls", model_version="v1"),
        Prediction(id=3, tree_id=3, predicted_specie_id=3, labeled_specie_id=None,
                   model_name="yolo-cls", model_version="v1"),
    ])
    db.commit()
    return db


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def storage(s3_client):
    return S3Storage(s3_client)


@pytest.fixture
def stepfunctions():
    return FakeStepFunctions()


@pytest.fixture
def cloudwatch_logs():
    return FakeLogs()


@pytest.fixture
def training_client(stepfunctions, cloudwatch_logs):
    return TrainingPipelineClient(
        stepfunctions=stepfunctions,
        logs=cloudwatch_logs,
        state_machine_arn="arn:aws:states:us-east-1:123456789012:stateMachine:YoloClsTraining",
        total_steps=5,
    )


@pytest.fixture
def client(session_factory, storage, training_client):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_training_client] = lambda: training_client
    yield TestClient(app)
    app.dependency_overrides.clear()
