from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Confidence = Literal["high", "medium", "low"]

VIP_STATUS = "vip"


class Guest(BaseModel):
    """One roster entry. Identity is the exact `name` string."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None

    @field_validator("phone", mode="before")
    @classmethod
    def _phone_as_text(cls, value: Any) -> Any:
        # Hand-edited rosters often store phone numbers as JSON numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def is_vip(self) -> bool:
        return (self.status or "").strip().lower() == VIP_STATUS

    @property
    def first_name(self) -> str:
        parts = self.name.split()
        return parts[0] if parts else self.name

    def classifier_view(self) -> Dict[str, Any]:
        """Roster entry as shown to the classifier. Contact details never leave."""
        view: Dict[str, Any] = {"name": self.name}
        if self.status:
            view["status"] = self.status
        return view


class PleaRequest(BaseModel):
    """Raw inbound body. Fields are optional so missing ones surface as 400."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    phone: Optional[str] = None
    excuse: Optional[str] = None


class PleaSubmission(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    excuse: str
    phone: Optional[str] = None


class GuestRef(BaseModel):
    """Guest object echoed back by the classifier; may be partial."""

    model_config = ConfigDict(extra="ignore")

    name: str
    status: Optional[str] = None


class MatchCandidate(BaseModel):
    guest: Union[GuestRef, str]
    confidence: Confidence

    @field_validator("confidence", mode="before")
    @classmethod
    def normalize_confidence(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def guest_name(self) -> str:
        if isinstance(self.guest, GuestRef):
            return self.guest.name
        return self.guest


class MatchResult(BaseModel):
    matches: List[MatchCandidate] = Field(default_factory=list)


class PleaResponse(BaseModel):
    success: bool = True
    matched: bool


class ExpiredResponse(BaseModel):
    error: str
    expired: bool = True


class ErrorResponse(BaseModel):
    error: str
