import base64
import hashlib
import hmac
import json
from datetime import datetime, timezone

from gcspost.constants import FILENAME_PLACEHOLDER
from gcspost.errors import PolicyViolationError
from gcspost.model.policy import UploadPolicy

EXPIRATION_FORMAT = '%Y-%m-%dT%H:%M:%SZ'


def encode_policy_document(expires_at: datetime, conditions: list) -> str:
    document = {
        'conditions': conditions,
        'expiration': expires_at.astimezone(timezone.utc).strftime(EXPIRATION_FORMAT),
    }
    return base64.b64encode(json.dumps(document).encode('utf-8')).decode('ascii')


def sign_policy_document(encoded: str, signing_key: bytes) -> str:
    return hmac.new(signing_key, encoded.encode('utf-8'), hashlib.sha256).hexdigest()


def decode_policy_document(encoded: str) -> dict:
    try:
        document = json.loads(base64.b64decode(encoded, validate=True))
    except ValueError as e:
        raise PolicyViolationError(f"malformed policy document: {e}") from e

    if not isinstance(document, dict):
        raise PolicyViolationError("malformed policy document: not an object")
    return document


def build_local_policy(
        url: str,
        bucket_name: str,
        key_template: str,
        conditions: list,
        fields: dict[str, str],
        expires_at: datetime,
        signing_key: bytes
) -> UploadPolicy:
    """
    Build a policy shaped like the ones GCS hands out, for running against
    the local upload endpoint instead of a real bucket.  The document is
    signed with an HMAC of signing_key, so only the issuer can vouch for it.
    """
    # Same as GCS: every field is pinned with an exact match condition
    all_conditions = list(conditions)
    all_conditions += [{name: value} for name, value in sorted(fields.items())]
    all_conditions.append({'bucket': bucket_name})

    encoded = encode_policy_document(expires_at, all_conditions)

    policy_fields = dict(fields)
    policy_fields['key'] = key_template
    policy_fields['policy'] = encoded
    policy_fields['x-goog-signature'] = sign_policy_document(encoded, signing_key)

    return UploadPolicy(url=url, fields=policy_fields, expires_at=expires_at)


def resolve_key(key_template: str, filename: str) -> str:
    if not filename or '/' in filename or filename in ('.', '..'):
        raise PolicyViolationError(f"Invalid file name: {filename!r}")
    return key_template.replace(FILENAME_PLACEHOLDER, filename)


def check_condition(condition, values: dict[str, str]):
    if isinstance(condition, dict):
        for name, expected in condition.items():
            actual = values.get(name.lower())
            if actual != expected:
                raise PolicyViolationError(f"{name} must be {expected!r}, got {actual!r}")
    elif (isinstance(condition, list) and len(condition) == 3 and condition[0] == 'starts-with'
          and isinstance(condition[1], str) and isinstance(condition[2], str)):
        name = condition[1].lstrip('$').lower()
        actual = values.get(name)
        if actual is None or not actual.startswith(condition[2]):
            raise PolicyViolationError(f"{name} must start with {condition[2]!r}, got {actual!r}")
    else:
        raise PolicyViolationError(f"Unsupported policy condition: {condition!r}")


def check_policy(values: dict[str, str], signing_key: bytes, now: datetime = None) -> dict:
    """
    Check the submitted form values against the policy document they came with.

    :param values: Form fields, with 'key' already resolved and 'bucket' added.
    :param signing_key: Key the policy was signed with when it was issued.
    :param now: Current time, for testing.
    :return: The decoded policy document.
    """
    values = {k.lower(): v for k, v in values.items()}

    if 'policy' not in values:
        raise PolicyViolationError("Missing policy")

    signature = values.get('x-goog-signature', '')
    expected = sign_policy_document(values['policy'], signing_key)
    if not hmac.compare_digest(expected.encode('ascii'), signature.encode('utf-8')):
        raise PolicyViolationError("Policy signature doesn't match")

    document = decode_policy_document(values['policy'])

    if now is None:
        now = datetime.now(timezone.utc)

    try:
        expiration = datetime.strptime(document['expiration'], EXPIRATION_FORMAT).replace(tzinfo=timezone.utc)
    except (KeyError, TypeError, ValueError) as e:
        raise PolicyViolationError(f"Invalid policy expiration: {e}") from e

    if now >= expiration:
        raise PolicyViolationError("Policy expired")

    conditions = document.get('conditions', [])
    if not isinstance(conditions, list):
        raise PolicyViolationError(f"Policy conditions must be a list, got {conditions!r}")

    for condition in conditions:
        check_condition(condition, values)

    return document
