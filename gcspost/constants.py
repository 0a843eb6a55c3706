DEFAULT_EXPIRATION_MINUTES = 15

# GCS won't sign a V4 policy for longer than 7 days
MAX_EXPIRATION_MINUTES = 7 * 24 * 60

FILENAME_PLACEHOLDER = '${filename}'

CONTENT_ENCODING = 'gzip'

UPLOAD_OK_STATUSES = (200, 204)
