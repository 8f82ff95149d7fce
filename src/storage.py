import json
import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger()

DEFAULT_BUCKET_NAME = 'word-count-results'
KEY_PREFIX = 'results/'


class StorageError(Exception):
    """Raised when the result could not be written to S3."""


@dataclass(frozen=True)
class Config:
    bucket_name: str = DEFAULT_BUCKET_NAME
    region: Optional[str] = None
    presigned_url_expiry: int = 0
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ=None):
        if environ is None:
            environ = os.environ
        log_level = environ.get('LOG_LEVEL', 'INFO').upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"Unknown LOG_LEVEL: {log_level}")
        return cls(
            bucket_name=environ.get('RESULTS_BUCKET_NAME') or DEFAULT_BUCKET_NAME,
            region=environ.get('AWS_REGION') or None,
            presigned_url_expiry=int(environ.get('PRESIGNED_URL_EXPIRY', '0')),
            log_level=log_level,
        )


def create_client(config):
    if config.region:
        return boto3.client('s3', region_name=config.region)
    return boto3.client('s3')


def make_result_key(now=None):
    """Build a unique key of the form results/<timestamp>-<uuid>.json."""
    if now is None:
        now = datetime.now(timezone.utc)
    timestamp = now.astimezone(timezone.utc).strftime('%Y-%m-%d-%H-%M-%S')
    return f"{KEY_PREFIX}{timestamp}-{uuid.uuid4()}.json"


def upload_result(s3, bucket_name, key, result, body):
    """Write a serialized result document to S3.

    ``result`` supplies the metadata attached to the object and ``body``
    is its JSON encoding. Failures are not retried.
    """
    metadata = {
        'ProcessedDate': result['processedAt'],
        'WordCount': str(result['totalWordCount']),
        'UniqueWords': str(result['uniqueWordCount']),
    }

    try:
        s3.put_object(
            Bucket=bucket_name,
            Key=key,
            Body=body.encode('utf-8'),
            ContentType='application/json',
            ServerSideEncryption='AES256',
            Metadata=metadata,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("Error uploading %s to bucket %s: %s", key, bucket_name, e)
        raise StorageError(f"Upload of {key} failed") from e

    logger.info("Successfully uploaded results to %s", key)


def generate_download_url(s3, bucket_name, key, expires_in):
    """Presign a GET for a stored result, or return None if signing fails."""
    try:
        return s3.generate_presigned_url(
            'get_object',
            Params={'Bucket': bucket_name, 'Key': key},
            ExpiresIn=expires_in,
        )
    except (BotoCoreError, ClientError) as e:
        logger.warning("Could not presign download URL for %s: %s", key, e)
        return None


def load_result(s3, bucket_name, key):
    """Fetch a previously stored result document."""
    response = s3.get_object(Bucket=bucket_name, Key=key)
    return json.loads(response['Body'].read().decode('utf-8'))
