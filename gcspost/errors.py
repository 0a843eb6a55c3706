
class GcsPostError(Exception):
    """Base class for all gcspost errors."""
    pass


class UploadPolicyError(GcsPostError):
    """Raised when an upload policy can't be built or signed."""
    pass


class PolicyViolationError(GcsPostError):
    """Raised when an upload doesn't satisfy the policy it was sent with."""
    pass


class PayloadError(GcsPostError):
    """Raised when the upload payload can't be written."""
    pass


class UploadError(GcsPostError):
    """Raised when the storage service rejects an upload, or it never gets there."""

    def __init__(self, message, status_code=None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
