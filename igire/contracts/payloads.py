from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CoordinatesPayload(_CamelModel):
    latitude: float
    longitude: float


class WebComplaintRequest(_CamelModel):
    description: str = ""
    category: str | None = None
    district: str = ""
    sector: str = ""
    cell: str = ""
    village: str = ""
    coordinates: CoordinatesPayload | None = None
    phone_number: str | None = Field(default=None, alias="phoneNumber")


class ComplaintUpdateRequest(_CamelModel):
    status: str | None = None
    assigned_agency: str | None = Field(default=None, alias="assignedAgency")


class VoiceWebhookRequest(_CamelModel):
    phone_number: str = Field(default="", alias="phoneNumber")
    recording_url: str = Field(default="", alias="recordingUrl")
    language: str | None = None


class InboundSmsRequest(_CamelModel):
    sender: str = Field(default="", alias="from")
    text: str = ""


class SendSmsRequest(_CamelModel):
    to: str = ""
    text: str = ""


class UssdRequest(_CamelModel):
    session_id: str = Field(default="", alias="sessionId")
    phone_number: str = Field(default="", alias="phoneNumber")
    text: str = ""


class RegisterRequest(_CamelModel):
    name: str = ""
    email: str | None = None
    phone: str | None = None
    password: str = ""


class LoginRequest(_CamelModel):
    email: str | None = None
    phone: str | None = None
    password: str = ""


class CreateUserRequest(RegisterRequest):
    role: str = "user"
    department: str | None = None


class ProfileUpdateRequest(_CamelModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class ChangePasswordRequest(_CamelModel):
    current_password: str = Field(default="", alias="currentPassword")
    new_password: str = Field(default="", alias="newPassword")


class RedeemRewardRequest(_CamelModel):
    type: str = ""
    amount: int = 0


class InstitutionCreateRequest(_CamelModel):
    name: str = ""
    department: str = ""
    email: str = ""
    phone: str | None = None
    role: str = "institution"


class InstitutionUpdateRequest(_CamelModel):
    name: str | None = None
    department: str | None = None
    email: str | None = None
    phone: str | None = None


class CategoryPrediction(BaseModel):
    category: str
    confidence: int
    suggested_agency: str
    source: str
