import json
import sys
import uuid

from gcspost.errors import GcsPostError
from gcspost.gcs import generate_upload_policy
from gcspost.payload import create_gzipped_file
from gcspost.upload import upload_file_with_policy
from main import settings, logger

DEMO_CONTENT = "Hello world! This is a test file for GCS upload.\nLine 2 of the file."


def upload_demo(
        config,
        logger,
        username='alice',
        job_id=None,
        local_file='/tmp/test.gz',
        object_name='test.gz',
        content=DEMO_CONTENT,
        client=None
):
    """ Issue a policy, gzip a file and upload it with the policy, start to finish """
    if job_id is None:
        job_id = str(uuid.uuid4())

    policy, prefix = generate_upload_policy(
        config.gcs_bucket, username, job_id, config.policy_expiration_minutes, client=client
    )
    logger.info("Generated POST policy", policy=json.dumps(policy.model_dump(mode='json'), indent=2))

    create_gzipped_file(local_file, content)

    object_key = f'{prefix}{object_name}'
    return upload_file_with_policy(
        policy, local_file, object_key, logger, timeout=config.upload_timeout_seconds
    )


if __name__ == '__main__':
    try:
        upload_demo(settings, logger)
    except GcsPostError as e:
        logger.error("Upload demo failed", error=str(e))
        sys.exit(1)
