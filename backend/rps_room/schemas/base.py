"""Shared Pydantic base model for store documents."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Base model for documents kept in the shared store.

    Field names are snake_case in Python and camelCase in the store, so
    documents written by other clients round-trip unchanged.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON-shaped dict stored at the document's path.

        Unset optional fields are omitted rather than stored as null.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
