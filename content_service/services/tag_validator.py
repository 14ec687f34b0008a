# content_service/services/tag_validator.py
"""
Tag validation against the category service.

Tags belong to the category service; before a post's tag set is replaced,
every supplied ID must exist there and be active. The lifecycle service only
depends on the ``TagValidator`` protocol so tests can substitute a fake.
"""
import logging
import uuid
from typing import List, Optional, Protocol, Sequence

import httpx

from content_service.core.config import settings
from content_service.core.exceptions import DependencyError, TagValidationError

logger = logging.getLogger(__name__)


class TagValidator(Protocol):
    def validate_tags(self, tag_ids: Sequence[str]) -> List[uuid.UUID]:
        """
        Confirm that every tag exists and is active.

        Returns:
            The parsed, de-duplicated tag IDs in first-seen order

        Raises:
            TagValidationError: malformed, unknown or inactive tag
            DependencyError: the category service is unreachable, slow or failing
        """
        ...


def parse_tag_ids(tag_ids: Sequence[str]) -> List[uuid.UUID]:
    parsed: List[uuid.UUID] = []
    for tag_id in tag_ids:
        try:
            parsed.append(uuid.UUID(str(tag_id)))
        except ValueError:
            raise TagValidationError(
                f"Invalid tag ID format: {tag_id}",
                details={"tag_id": str(tag_id)},
            )
    return list(dict.fromkeys(parsed))


class HttpTagValidator:
    """Checks tags one by one via ``GET {base_url}/api/tags/{id}``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def validate_tags(self, tag_ids: Sequence[str]) -> List[uuid.UUID]:
        parsed = parse_tag_ids(tag_ids)
        if not parsed:
            return parsed

        with httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        ) as client:
            for tag_id in parsed:
                self._check_tag(client, tag_id)

        return parsed

    def _check_tag(self, client: httpx.Client, tag_id: uuid.UUID) -> None:
        details = {"tag_id": str(tag_id)}
        try:
            response = client.get(f"/api/tags/{tag_id}")
        except httpx.TimeoutException:
            logger.warning(f"Timed out validating tag {tag_id} against {self.base_url}")
            raise DependencyError(
                f"Timeout while validating tag {tag_id}. "
                f"Please check if the category service is running at {self.base_url}",
                details=details,
            )
        except httpx.TransportError as e:
            logger.warning(f"Category service unreachable at {self.base_url}: {e}")
            raise DependencyError(
                f"Cannot connect to category service at {self.base_url}. "
                "Please ensure the service is running.",
                details=details,
            )

        if response.status_code == 404:
            raise TagValidationError(f"Tag with ID {tag_id} not found", details=details)

        if response.status_code >= 500:
            raise DependencyError(
                f"Failed to validate tag {tag_id}: {response.reason_phrase or 'Unknown error'}",
                details=details,
            )

        if response.status_code != 200:
            raise TagValidationError(
                f"Failed to validate tag {tag_id}: {response.reason_phrase or 'Unknown error'}",
                details=details,
            )

        try:
            payload = response.json()
        except ValueError:
            raise DependencyError(
                f"Failed to validate tag {tag_id}: malformed response from category service",
                details=details,
            )

        tag = payload.get("tag") if isinstance(payload, dict) else None
        if not tag:
            raise TagValidationError(f"Tag with ID {tag_id} not found", details=details)

        if not tag.get("is_active"):
            raise TagValidationError(
                f"Tag \"{tag.get('name', tag_id)}\" is not active",
                details=details,
            )


def get_tag_validator() -> TagValidator:
    return HttpTagValidator(settings.TAG_SERVICE_URL, timeout=settings.TAG_SERVICE_TIMEOUT)
