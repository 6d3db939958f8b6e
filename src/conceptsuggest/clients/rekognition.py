"""Optical text extraction via AWS Rekognition ``DetectText``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from conceptsuggest.errors import ExtractionError

if TYPE_CHECKING:
    from conceptsuggest.config import Settings

logger = logging.getLogger(__name__)

LINE_DETECTION = "LINE"


class TextExtractor(Protocol):
    """Protocol for optical text extraction collaborators."""

    def extract_text(self, content_id: str) -> str:
        """Return the text lines detected in the stored image, space-separated.

        Raises:
            ExtractionError: If the service fails or answers with a malformed response.
        """
        ...


class RekognitionTextExtractor:
    """Detects text in images stored in a single S3 bucket.

    The boto3 client is blocking; callers on the event loop should run
    ``extract_text`` in a worker thread.
    """

    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> RekognitionTextExtractor:
        config = Config(
            connect_timeout=settings.request_timeout,
            read_timeout=settings.request_timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        client = boto3.client(
            "rekognition",
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            config=config,
        )
        return cls(client, settings.s3_bucket)

    def extract_text(self, content_id: str) -> str:
        image = {"S3Object": {"Bucket": self._bucket, "Name": content_id}}
        try:
            response = self._client.detect_text(Image=image)
        except (BotoCoreError, ClientError) as exc:
            raise ExtractionError(f"Text detection failed for {content_id}: {exc}") from exc

        try:
            lines = [
                detection["DetectedText"]
                for detection in response["TextDetections"]
                if detection.get("Type") == LINE_DETECTION
            ]
        except (KeyError, TypeError, AttributeError) as exc:
            raise ExtractionError(f"Malformed text detection response for {content_id}") from exc

        text = " ".join(lines)
        logger.debug("Extracted %d lines from %s", len(lines), content_id)
        return text
