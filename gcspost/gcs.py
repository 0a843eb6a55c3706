from datetime import datetime, timedelta, timezone

from google.cloud import storage

from gcspost.constants import (
    CONTENT_ENCODING, DEFAULT_EXPIRATION_MINUTES, FILENAME_PLACEHOLDER, MAX_EXPIRATION_MINUTES
)
from gcspost.errors import UploadPolicyError
from gcspost.model.policy import UploadPolicy


def build_prefix(username: str, job_id: str) -> str:
    """
    The folder a policy is scoped to: one per user and job.

    :param username: Owner of the upload.
    :param job_id: The job the upload belongs to.
    :return: The object key prefix, with a trailing slash.
    """
    for label, value in (('username', username), ('job_id', job_id)):
        if not value:
            raise UploadPolicyError(f"{label} is required")
        if '/' in value:
            raise UploadPolicyError(f"{label} must not contain '/': {value}")

    return f'{username}/{job_id}/'


def policy_conditions(prefix: str) -> list:
    return [
        ['starts-with', '$key', prefix],
        ['starts-with', '$Content-Encoding', ''],
    ]


def policy_fields() -> dict[str, str]:
    return {'Content-Encoding': CONTENT_ENCODING}


def generate_upload_policy(
        bucket_name: str,
        username: str,
        job_id: str,
        expiration_minutes: int = DEFAULT_EXPIRATION_MINUTES,
        client: storage.Client = None
) -> tuple[UploadPolicy, str]:
    """
    Generate a V4 signed POST policy that only allows gzipped uploads into the
    user/job folder of a Google Cloud Storage bucket.

    The object key is left as ``<prefix>${filename}``, so the name of the
    uploaded file decides the final key.

    :param bucket_name: The name of the bucket.
    :param username: Owner of the upload.
    :param job_id: The job the upload belongs to.
    :param expiration_minutes: How long the policy stays valid.
    :param client: Storage client to sign with, default client if not given.
    :return: The policy and the prefix it's scoped to.
    """
    if not bucket_name:
        raise UploadPolicyError("bucket_name is required")

    if not 1 <= expiration_minutes <= MAX_EXPIRATION_MINUTES:
        raise UploadPolicyError(
            f"expiration_minutes must be between 1 and {MAX_EXPIRATION_MINUTES}, got {expiration_minutes}"
        )

    prefix = build_prefix(username, job_id)
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=expiration_minutes)

    try:
        if client is None:
            client = storage.Client()
    except Exception as e:
        raise UploadPolicyError(f"storage client: {e}") from e

    try:
        policy = client.generate_signed_post_policy_v4(
            bucket_name,
            prefix + FILENAME_PLACEHOLDER,
            expiration=expires_at,
            conditions=policy_conditions(prefix),
            fields=policy_fields(),
        )
    except Exception as e:
        raise UploadPolicyError(f"generate signed post policy: {e}") from e

    return UploadPolicy(url=policy['url'], fields=policy['fields'], expires_at=expires_at), prefix
