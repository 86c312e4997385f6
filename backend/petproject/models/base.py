"""
PetProject Backend - Document Model Base
==========================================

What:  Base class for every model that is stored as a document.
How:   Python attribute names are snake_case; the stored (and JSON) field
       names are camelCase through pydantic's to_camel alias generator. A few
       fields override the alias to match legacy stored names (photoURL).
Who:   All models in petproject.models; services validate snapshots into them
       and FastAPI serializes them by alias.
"""

from typing import Any, Dict, Generic, Iterable, List, Optional, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from petproject.exceptions import InvalidArgumentError
from petproject.store.base import Snapshot


class DocumentModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot):
        return cls.model_validate(snapshot.to_dict())

    @classmethod
    def from_input(cls, data: Dict[str, Any]):
        """
        Validate caller-supplied data, raising InvalidArgumentError on failure.

        pydantic's own ValidationError would surface as a 500 when raised
        inside a handler, so drafts built from request data go through here.
        """
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ())) or None
            raise InvalidArgumentError(
                message=f"Invalid {cls.__name__}: {first.get('msg', 'invalid value')}",
                field=field,
                context={"errors": len(e.errors())},
            ) from e

    def to_document(self, exclude: Iterable[str] = ("id",)) -> Dict[str, Any]:
        """Stored representation: aliased keys, absent optionals stripped."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude=set(exclude))


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """
    One page of a cursor-paginated listing.

    next_cursor is set only when the page is full. A page shorter than the
    requested size is the end of the listing.
    """

    items: List[T] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(
        default=None,
        serialization_alias="nextCursor",
        description="Opaque cursor for the next page. Null when there are no more items.",
    )
