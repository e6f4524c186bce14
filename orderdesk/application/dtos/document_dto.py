"""Application DTOs for identity document lookups."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DOCUMENT_LENGTHS = {"ruc": 11, "dni": 8}


class DocumentLookupRequest(BaseModel):
    """RUC has 11 digits, DNI has 8."""

    type: Literal["ruc", "dni"]
    number: str

    @field_validator("type", mode="before")
    @classmethod
    def _lower_type(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("number")
    @classmethod
    def _strip_number(cls, v: str) -> str:
        v = v.strip()
        if not v.isdigit():
            raise ValueError("document number must contain digits only")
        return v

    @model_validator(mode="after")
    def _check_length(self) -> "DocumentLookupRequest":
        expected = DOCUMENT_LENGTHS[self.type]
        if len(self.number) != expected:
            raise ValueError(f"{self.type.upper()} must have {expected} digits")
        return self


class IdentityDocument(BaseModel):
    """Normalized identity returned by a lookup."""

    number: str
    type: str
    name: str
    address: Optional[str] = None
    status: Optional[str] = Field(None, description="Taxpayer status for RUC")

    model_config = {"frozen": True}
