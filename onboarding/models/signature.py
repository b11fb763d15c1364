"""Client e-signature payload."""

from typing import Optional, Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

CONSENT_TEXT = (
    "I agree to sign this document electronically and acknowledge that my "
    "electronic signature has the same legal effect as a handwritten signature."
)


class SignRequest(BaseModel):
    """What the portal submits when a client signs a document."""

    signer_name: str = Field(..., min_length=1, max_length=255)
    signer_email: Optional[EmailStr] = None
    signer_title: Optional[str] = Field(None, max_length=255)
    signer_company: Optional[str] = Field(None, max_length=255)

    signature_type: Literal["draw", "type"]
    signature_data: Optional[str] = None  # base64 PNG for drawn signatures
    typed_name: Optional[str] = Field(None, max_length=255)
    initials: Optional[str] = Field(None, max_length=20)
    initials_data: Optional[str] = None

    consent_given: bool = False

    @field_validator("signer_name")
    @classmethod
    def validate_signer_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("signer_name is required")
        return v

    @field_validator(
        "typed_name", "signature_data", "signer_title", "signer_company", "initials", "initials_data",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("signer_email", mode="before")
    @classmethod
    def blank_email_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_signature_payload(self):
        if self.signature_type == "draw":
            if not self.signature_data:
                raise ValueError("signature_data is required for drawn signatures")
            if self.typed_name:
                raise ValueError("typed_name is not allowed for drawn signatures")
        else:
            if not self.typed_name:
                raise ValueError("typed_name is required for typed signatures")
            if self.signature_data:
                raise ValueError("signature_data is not allowed for typed signatures")

        if not self.consent_given:
            raise ValueError("Consent must be given to sign electronically")
        return self
