import base64
import json
import logging
from datetime import datetime, timezone

import storage
import text_stats

logger = logging.getLogger()
logger.setLevel(logging.INFO)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB
ALLOWED_FILE_TYPE = 'text/plain'

RESPONSE_HEADERS = {
    'Content-Type': 'application/json',
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'POST',
}

INTERNAL_ERROR_MESSAGE = 'Internal server error occurred'

# Read once per container; a bad setting fails the cold start
config = storage.Config.from_env()
logger.setLevel(config.log_level)
s3 = storage.create_client(config)


class ValidationError(Exception):
    """The request was rejected before any processing took place."""

    status_code = 400


def make_response(status_code, body):
    return {
        'statusCode': status_code,
        'headers': dict(RESPONSE_HEADERS),
        'body': json.dumps(body),
    }


def error_response(status_code, message):
    return make_response(status_code, {'error': message})


def _content_type(headers):
    for name, value in (headers or {}).items():
        if name.lower() == 'content-type':
            return value
    return None


def read_body(event):
    """Return the request body as text, decoding base64 when flagged."""
    body = event.get('body')
    if not body:
        return ''
    if not isinstance(body, str):
        raise ValidationError('Request body must be text')
    if event.get('isBase64Encoded'):
        try:
            return base64.b64decode(body, validate=True).decode('utf-8')
        except ValueError:
            raise ValidationError('Request body is not valid base64-encoded UTF-8 text')
    return body


def body_size(text):
    try:
        return len(text.encode('utf-8'))
    except UnicodeEncodeError:
        raise ValidationError('Request body is not valid UTF-8 text')


def validate_request(event):
    """Check the inbound event and return the body text to count."""
    text = read_body(event)
    if not text:
        raise ValidationError('Request body is empty')

    content_type = _content_type(event.get('headers'))
    if content_type is not None and not content_type.lower().startswith(ALLOWED_FILE_TYPE):
        raise ValidationError('Invalid file type. Only text files are allowed.')

    if body_size(text) > MAX_FILE_SIZE:
        raise ValidationError('File size exceeds maximum limit of 5MB')

    return text


def handle(event, context, s3, config):
    request_id = getattr(context, 'aws_request_id', None)

    try:
        text = validate_request(event)
        logger.info("Processing request %s of size: %d bytes", request_id, body_size(text))

        # Count words
        word_counts = text_stats.count_words(text_stats.tokenize(text))

        # Serialize with a single timestamp shared by the key and the document
        now = datetime.now(timezone.utc)
        result = text_stats.build_result(word_counts, processed_at=now)
        key = storage.make_result_key(now)

        # Save to S3
        storage.upload_result(s3, config.bucket_name, key, result, text_stats.to_json(result))

        body = {
            'message': 'Word count completed successfully',
            'resultLocation': key,
            'wordCount': result['totalWordCount'],
            'uniqueWords': result['uniqueWordCount'],
        }
        if config.presigned_url_expiry > 0:
            url = storage.generate_download_url(
                s3, config.bucket_name, key, config.presigned_url_expiry)
            if url:
                body['downloadUrl'] = url
    except ValidationError as e:
        logger.warning("Rejected request %s: %s", request_id, e)
        return error_response(e.status_code, str(e))
    except Exception:
        logger.exception("Error processing request %s", request_id)
        return error_response(500, INTERNAL_ERROR_MESSAGE)

    return make_response(200, body)


def lambda_handler(event, context):
    return handle(event, context, s3, config)
