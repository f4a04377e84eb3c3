# schemas.py (Pydantic v2) - request bodies for the retreat API
from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional
from datetime import datetime

from services import phone_number


# ---------- Join / Sign-in ----------
class JoinRetreatRequest(BaseModel):
    code: str = Field(..., min_length=4, max_length=12)
    auth_mode: Optional[str] = Field(None, validate_default=True)  # "join" (default) or "signin"
    name: Optional[str] = Field(None, min_length=2, max_length=50, validate_default=True)
    phone_number: str = Field(..., max_length=24)
    gender: Optional[Literal["male", "female"]] = None
    vehicle_color: Optional[str] = Field(None, max_length=30)
    vehicle_description: Optional[str] = Field(None, max_length=50)
    expo_push_token: Optional[str] = Field(None, max_length=255)

    @field_validator("auth_mode", mode="before")
    @classmethod
    def normalize_auth_mode(cls, v):
        if v is None or (isinstance(v, str) and v.strip() == ""):
            return "join"
        if not isinstance(v, str):
            raise ValueError("The auth mode must be a string.")
        mode = v.strip().lower()
        if mode not in ("join", "signin"):
            raise ValueError("The selected auth mode is invalid.")
        return mode

    @field_validator("name")
    @classmethod
    def name_required_unless_signin(cls, v, info):
        if not v and info.data.get("auth_mode", "join") != "signin":
            raise ValueError("The name field is required unless auth mode is signin.")
        return v

    @field_validator("phone_number")
    @classmethod
    def normalize_phone(cls, v):
        normalized = phone_number.normalize(v)
        if normalized is None:
            raise ValueError("The phone number must be a valid E.164 or US phone number.")
        return normalized


class DeleteAccountRequest(BaseModel):
    confirm_delete: bool = False

    @field_validator("confirm_delete")
    @classmethod
    def must_be_accepted(cls, v):
        if v is not True:
            raise ValueError("The confirm delete field must be accepted.")
        return v


# ---------- Locations ----------
class UpdateLocationRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0, le=9999)
    speed: Optional[float] = Field(None, ge=0, le=999)
    heading: Optional[float] = Field(None, ge=0, le=360)
    altitude: Optional[float] = Field(None, ge=-1000, le=99999)
    recorded_at: datetime  # client clock; naive values are taken as UTC


class LocationSharingUpdate(BaseModel):
    enabled: bool


# ---------- Messages ----------
class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)
    message_type: Optional[Literal["chat", "alert", "status"]] = "chat"
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


# ---------- Waypoints ----------
class StoreWaypointRequest(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(None, max_length=255)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    waypoint_order: Optional[int] = Field(None, ge=1, le=999)
    eta: Optional[datetime] = None
    set_as_destination: Optional[bool] = False


# ---------- Profile photo ----------
class UpdateProfilePhotoRequest(BaseModel):
    avatar_base64: str = Field(..., max_length=8500000)  # data:image/...;base64,...
