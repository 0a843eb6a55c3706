import os

import requests

from gcspost.constants import UPLOAD_OK_STATUSES
from gcspost.errors import UploadError
from gcspost.model.policy import UploadPolicy


def upload_file_with_policy(
        policy: UploadPolicy,
        local_file: str,
        object_key: str,
        logger,
        timeout: float = 30
) -> str:
    """
    Upload a local file with a signed POST policy.

    The policy fields go first and the file goes last, which is the order
    GCS insists on. The file part is named after the last segment of
    object_key, so a ``${filename}`` key template resolves to object_key.

    :param policy: The policy to upload with.
    :param local_file: Path of the file to upload.
    :param object_key: The key the object should end up under.
    :param logger: Where to log to.
    :param timeout: Seconds to wait for the storage service.
    :return: The object key.
    """
    filename = os.path.basename(object_key)

    try:
        f = open(local_file, 'rb')
    except OSError as e:
        raise UploadError(f"open file: {e}") from e

    with f:
        try:
            resp = requests.post(
                policy.url,
                data=policy.fields,
                files={'file': (filename, f)},
                timeout=timeout,
            )
        except requests.RequestException as e:
            raise UploadError(f"upload error: {e}") from e

    if resp.status_code not in UPLOAD_OK_STATUSES:
        logger.error("Upload failed", object_key=object_key, status=resp.status_code)
        raise UploadError(
            f"upload failed: status {resp.status_code}, body: {resp.text}",
            status_code=resp.status_code,
            body=resp.text,
        )

    logger.info("Upload succeeded", object_key=object_key)
    return object_key
