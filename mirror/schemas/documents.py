"""Pydantic schemas for documents in the versioned store."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """
    Mirrored representation of a record.

    Serialized with CouchDB-style keys (``_id``, ``_rev``, ``hostname`` ...).
    Only the fields that belong to the record's kind are set.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    rev: Optional[str] = Field(default=None, alias="_rev")
    origin: Optional[str] = Field(default=None, alias="hostname")
    principal: Optional[str] = Field(default=None, alias="username")
    secret: Optional[str] = Field(default=None, alias="password", repr=False)
    form_target: Optional[str] = Field(default=None, alias="formSubmitURL")
    principal_field: Optional[str] = Field(default=None, alias="usernameField")
    secret_field: Optional[str] = Field(default=None, alias="passwordField")
    realm: Optional[str] = Field(default=None, alias="httpRealm")

    def to_json_dict(self) -> Dict[str, Any]:
        """Dump with wire keys, omitting unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def body(self) -> Dict[str, Any]:
        """Wire dict without ``_id`` and ``_rev``."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"id", "rev"})

    def with_rev(self, rev: Optional[str]) -> "Document":
        return self.model_copy(update={"rev": rev})


class RemoteChange(BaseModel):
    """One entry of a remote changes feed; the document is included."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    deleted: bool = False
    doc: Optional[Document] = None
