import hmac
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any

import environ
from fastapi import FastAPI, HTTPException, Depends, Header, Request, status
from fastapi.responses import Response, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog


from gcspost.constants import DEFAULT_EXPIRATION_MINUTES, FILENAME_PLACEHOLDER
from gcspost.errors import UploadPolicyError, PolicyViolationError
from gcspost.gcs import generate_upload_policy, build_prefix, policy_conditions, policy_fields
from gcspost.local_policy import build_local_policy, resolve_key, check_policy
from gcspost.local_storage import store_object
from gcspost.model.policy import PolicyRequest
from gcspost.model.responses import UploadPolicyResponse


class Settings(BaseSettings):
    env: str = "local"
    app_name: str = "GCS Upload Policy API"
    gcs_bucket: str = ""
    policy_expiration_minutes: int = DEFAULT_EXPIRATION_MINUTES
    upload_timeout_seconds: float = 30
    data_dir: str = "/tmp/gcspost"
    secrets_dir: str = "/var/secrets"
    secrets: Any = None

    model_config = SettingsConfigDict(env_file=".env")

    @property
    def local_bucket(self):
        """Bucket directory name used under data_dir in local mode"""
        return self.gcs_bucket or "local"


settings = Settings()

file_secrets = environ.secrets.DirectorySecrets.from_path(settings.secrets_dir)


@environ.config
class SecretConfig:
    # Not set means the policy endpoint is open
    api_token = file_secrets.secret(default=None)
    policy_signing_key = file_secrets.secret(default=None)


settings.secrets = SecretConfig.from_environ()

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
    ]
)

logger = structlog.get_logger()

# Signs local-mode policies when no policy_signing_key secret is configured
process_signing_key = os.urandom(32)


app = FastAPI()
app.logger = logger


origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_settings():
    curr_settings = Settings()
    curr_settings.secrets = SecretConfig.from_environ()
    return curr_settings


def check_api_key(config: Settings, api_key: str | None):
    token = getattr(config.secrets, "api_token", None)
    if not token:
        return

    if api_key is None or not hmac.compare_digest(token.strip().encode(), api_key.encode()):
        logger.error("Rejected upload policy request, bad API key")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def local_signing_key(config: Settings) -> bytes:
    key = getattr(config.secrets, "policy_signing_key", None)
    if key and key.strip():
        return key.strip().encode()
    return process_signing_key


@app.get("/")
async def root():
    return {"message": "This is the GCS Upload Policy API"}


@app.get("/health", response_class=PlainTextResponse)
async def health():
    return "OK"


@app.post("/gcspost/v1/upload-policy")
async def create_upload_policy(
        policy_req: PolicyRequest,
        request: Request,
        x_api_key: Annotated[str | None, Header()] = None,
        config: Settings = Depends(get_settings)
) -> UploadPolicyResponse:
    """
    Create a signed POST policy that lets the caller upload gzipped files
    into one user/job folder of the bucket, and nowhere else.
    """
    check_api_key(config, x_api_key)

    job_id = policy_req.job_id or str(uuid.uuid4())

    try:
        if config.env != 'local':
            policy, prefix = generate_upload_policy(
                bucket_name=config.gcs_bucket,
                username=policy_req.username,
                job_id=job_id,
                expiration_minutes=policy_req.expiration_minutes
            )
        else:
            # In local mode the policy points back at our own upload endpoint
            prefix = build_prefix(policy_req.username, job_id)
            policy = build_local_policy(
                url=str(request.url_for("store_upload")),
                bucket_name=config.local_bucket,
                key_template=prefix + FILENAME_PLACEHOLDER,
                conditions=policy_conditions(prefix),
                fields=policy_fields(),
                expires_at=datetime.now(timezone.utc) + timedelta(minutes=policy_req.expiration_minutes),
                signing_key=local_signing_key(config)
            )
    except UploadPolicyError as e:
        logger.error("Unable to create upload policy", username=policy_req.username, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Issued upload policy", prefix=prefix, expires_at=policy.expires_at.isoformat())

    return UploadPolicyResponse(
        url=policy.url,
        fields=policy.fields,
        prefix=prefix,
        key_template=prefix + FILENAME_PLACEHOLDER,
        expires_at=policy.expires_at
    )


@app.post("/gcspost/v1/upload", name="store_upload")
async def store_upload(request: Request, config: Settings = Depends(get_settings)):
    """
    Local stand-in for the bucket's POST upload endpoint.  Checks the form
    against its policy document and stores the file under data_dir.
    """
    if config.env != 'local':
        raise HTTPException(status_code=404, detail="Not Found")

    form = await request.form()
    file = form.get("file")
    if file is None or isinstance(file, str):
        raise HTTPException(status_code=400, detail="Missing file")

    values = {k: v for k, v in form.items() if k != "file" and isinstance(v, str)}

    try:
        object_key = resolve_key(values.get("key", ""), file.filename)
        values["key"] = object_key
        values["bucket"] = config.local_bucket
        check_policy(values, local_signing_key(config))
        store_object(config.data_dir, config.local_bucket, object_key, await file.read(), logger)
    except PolicyViolationError as e:
        logger.error("Rejected upload", filename=file.filename, error=str(e))
        raise HTTPException(status_code=403, detail=str(e))
    except Exception as e:
        logger.error("Unexpected error storing upload", filename=file.filename, error=str(e))
        raise HTTPException(status_code=500, detail="Unable to store upload")

    return Response(status_code=status.HTTP_204_NO_CONTENT)
