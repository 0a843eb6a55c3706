import gzip
from types import SimpleNamespace

from cmds import upload_demo, DEMO_CONTENT
from gcspost import upload


def test_upload_demo(monkeypatch, config, logger, storage_client, tmp_path):
    posted = []

    def fake_post(url, data=None, files=None, timeout=None):
        name, f = files["file"]
        posted.append({"url": url, "data": data, "filename": name, "content": f.read()})
        return SimpleNamespace(status_code=204, text="")

    monkeypatch.setattr(upload.requests, "post", fake_post)

    local_file = tmp_path / "test.gz"
    object_key = upload_demo(config, logger, local_file=str(local_file), client=storage_client)

    username, job_id, name = object_key.split("/")
    assert username == "alice"
    assert len(job_id) == 36
    assert name == "test.gz"

    assert storage_client.calls[0]["blob_name"] == f"alice/{job_id}/${{filename}}"
    assert posted[0]["url"] == "https://storage.googleapis.com/test-bucket/"
    assert posted[0]["filename"] == "test.gz"
    assert gzip.decompress(posted[0]["content"]).decode("utf-8") == DEMO_CONTENT


def test_upload_demo_job_id(monkeypatch, config, logger, storage_client, tmp_path):
    monkeypatch.setattr(upload.requests, "post", lambda *args, **kwargs: SimpleNamespace(status_code=200, text=""))

    object_key = upload_demo(
        config, logger, username="bob", job_id="job-7", local_file=str(tmp_path / "a.gz"),
        object_name="a.gz", content="abc", client=storage_client
    )

    assert object_key == "bob/job-7/a.gz"
