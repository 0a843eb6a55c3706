import os

from gcspost.errors import PolicyViolationError


def object_path(data_dir: str, bucket_name: str, object_key: str) -> str:
    bucket_dir = os.path.realpath(os.path.join(data_dir, bucket_name))
    path = os.path.realpath(os.path.join(bucket_dir, object_key))
    if os.path.commonpath([bucket_dir, path]) != bucket_dir or path == bucket_dir:
        raise PolicyViolationError(f"Object key escapes the bucket: {object_key}")
    return path


def store_object(data_dir: str, bucket_name: str, object_key: str, data: bytes, logger) -> str:
    """
    Write an uploaded object under data_dir/bucket_name, standing in for
    the bucket when running locally.
    """
    path = object_path(data_dir, bucket_name, object_key)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'wb') as f:
            f.write(data)
    except OSError as e:
        logger.error(f"Error storing object: {e}", object_key=object_key)
        raise e

    logger.info("Stored object", object_key=object_key, size=len(data))
    return path
