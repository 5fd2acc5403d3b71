"""Shared base models and common type aliases."""

import logging
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict

from .exceptions import ModelValidationError


logger = logging.getLogger(__name__)

Amount = int
Timestamp = int


class BaseLedgerModel(BaseModel):
    """Base schema for ledger records and snapshots."""

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=False,
        extra="forbid",
    )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize model into a JSON-ready dictionary.

        Returns:
            Dict[str, Any]: Serialized model payload.

        Raises:
            ModelValidationError: If serialization fails.
        """
        try:
            return self.model_dump(mode="json")
        except Exception as exc:
            logger.exception("Failed to serialize %s", self.__class__.__name__)
            raise ModelValidationError(str(exc))
