import gzip

from gcspost.errors import PayloadError


def gzip_bytes(data: bytes) -> bytes:
    return gzip.compress(data)


def create_gzipped_file(file_path: str, content: str):
    """ Gzip some text in memory and write it out to file_path """
    data = gzip_bytes(content.encode('utf-8'))

    try:
        with open(file_path, 'wb') as f:
            f.write(data)
    except OSError as e:
        raise PayloadError(f"write gz file: {e}") from e
