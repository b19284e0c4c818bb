from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from repositories.wishlist_repository import (
    PARTITION_KEY,
    StorageError,
    WishlistRepository,
    WishlistRow,
)


logger = logging.getLogger(__name__)


class WishlistError(Exception):
    """Base class for errors that map onto an HTTP error response."""

    status_code = 500
    error_code = "InternalServerError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.error_code, "errorMessage": self.message}


class ValidationError(WishlistError):
    status_code = 400
    error_code = "InvalidRequest"


class ConflictError(WishlistError):
    status_code = 400
    error_code = "GameAlreadyExists"


class StorageWriteError(WishlistError):
    error_code = "TableTransactionError"


class StorageDeleteError(WishlistError):
    error_code = "GameDeletionError"


# JSON field name -> required type
_ITEM_FIELDS = (
    ("id", str),
    ("name", str),
    ("url", str),
    ("releaseYear", int),
)

# releaseYear is a 32-bit signed integer
_INT32_MIN = -(2 ** 31)
_INT32_MAX = 2 ** 31 - 1


@dataclass(frozen=True)
class WishlistItem:
    id: str
    name: str
    url: str
    releaseYear: int

    @classmethod
    def from_dict(cls, data: Any) -> "WishlistItem":
        """Parse a request payload, rejecting missing or mistyped fields."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

        for field_name, field_type in _ITEM_FIELDS:
            if field_name not in data or data[field_name] is None:
                raise ValidationError(f"Field '{field_name}' is required")
            value = data[field_name]
            # bool is a subclass of int but never a valid release year
            if isinstance(value, bool) or not isinstance(value, field_type):
                raise ValidationError(
                    f"Field '{field_name}' must be of type {field_type.__name__}"
                )

        if not data["id"]:
            raise ValidationError("Field 'id' must not be empty")

        if not _INT32_MIN <= data["releaseYear"] <= _INT32_MAX:
            raise ValidationError("Field 'releaseYear' is out of range")

        return cls(
            id=data["id"],
            name=data["name"],
            url=data["url"],
            releaseYear=data["releaseYear"],
        )

    @classmethod
    def from_row(cls, row: WishlistRow) -> "WishlistItem":
        return cls(
            id=row.row_key,
            name=row.name,
            url=row.url,
            releaseYear=row.release_year,
        )

    def to_row(self) -> WishlistRow:
        return WishlistRow(
            partition_key=PARTITION_KEY,
            row_key=self.id,
            name=self.name,
            url=self.url,
            release_year=self.releaseYear,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "releaseYear": self.releaseYear,
        }


class WishlistService:
    """Domain-level operations for the games wishlist.

    The service validates payloads and turns storage outcomes into
    ``WishlistError`` subclasses. It knows nothing about API Gateway events;
    the handler is responsible for HTTP.
    """

    def __init__(self, repository: WishlistRepository) -> None:
        self._repository = repository

    def list_items(self) -> List[WishlistItem]:
        return [WishlistItem.from_row(row) for row in self._repository.query_all()]

    def add_item(self, body: Any) -> WishlistItem:
        item = WishlistItem.from_dict(body)

        # The probe and the insert are two separate calls. A concurrent add of
        # the same id can slip past the probe; the conditional insert then
        # rejects it and it is reported as a storage write failure.
        if self._repository.exists(item.id):
            logger.warning("Rejected duplicate game id %s", item.id)
            raise ConflictError(f"A game with id {item.id} already exists.")

        try:
            self._repository.insert(item.to_row())
        except StorageError as e:
            logger.error("Insert of game %s failed: %s (%s)", item.id, e.reason, e.code)
            raise StorageWriteError(
                "There was a problem executing the table transaction."
            ) from e

        logger.info("Added game %s to wishlist", item.id)
        return item

    def delete_item(self, item_id: str) -> None:
        # Not-found is reported the same way as any other storage failure.
        try:
            self._repository.delete(item_id)
        except StorageError as e:
            logger.error("Delete of game %s failed: %s (%s)", item_id, e.reason, e.code)
            raise StorageDeleteError(
                f"There was an error deleting the game with id {item_id}: {e.reason}."
            ) from e

        logger.info("Deleted game %s from wishlist", item_id)


# Module-level singleton used by the Lambda handler.
wishlist_service = WishlistService(WishlistRepository())
