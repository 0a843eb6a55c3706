import os

import pytest

from gcspost.errors import PolicyViolationError
from gcspost.local_storage import store_object


def test_store_object(tmp_path, logger):
    path = store_object(str(tmp_path), "test-bucket", "alice/job-1/test.gz", b"data", logger)

    assert path == os.path.join(os.path.realpath(tmp_path), "test-bucket", "alice", "job-1", "test.gz")
    with open(path, "rb") as f:
        assert f.read() == b"data"


@pytest.mark.parametrize("object_key", ["", "../other-bucket/x.gz", "alice/../../x.gz", "/etc/passwd"])
def test_store_object_escape(tmp_path, logger, object_key):
    with pytest.raises(PolicyViolationError):
        store_object(str(tmp_path), "test-bucket", object_key, b"data", logger)
