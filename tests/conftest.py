from types import SimpleNamespace

import pytest
import structlog

from main import Settings


class FakeStorageClient:
    """Stands in for google.cloud.storage.Client, records what it was asked to sign."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def generate_signed_post_policy_v4(self, bucket_name, blob_name, expiration, conditions=None, fields=None):
        self.calls.append({
            "bucket_name": bucket_name,
            "blob_name": blob_name,
            "expiration": expiration,
            "conditions": conditions,
            "fields": fields,
        })
        if self.error is not None:
            raise self.error

        policy_fields = dict(fields or {})
        policy_fields.update({
            "key": blob_name,
            "policy": "eyJjb25kaXRpb25zIjogW119",
            "x-goog-algorithm": "GOOG4-RSA-SHA256",
            "x-goog-signature": "abc123",
        })
        return {"url": f"https://storage.googleapis.com/{bucket_name}/", "fields": policy_fields}


@pytest.fixture()
def storage_client():
    return FakeStorageClient()


@pytest.fixture()
def config(tmp_path):
    return Settings(
        env="local",
        gcs_bucket="test-bucket",
        data_dir=str(tmp_path),
        secrets=SimpleNamespace(api_token=None)
    )


@pytest.fixture()
def logger():
    return structlog.get_logger()
