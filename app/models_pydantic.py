from typing import Optional, List
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator

# ---------- Auth ----------
class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=5, max_length=72)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    avatar: Optional[str] = None

class TokenResponse(BaseModel):
    token: str

# ---------- Users ----------
class UserResponse(BaseModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    avatar: Optional[str] = None
    is_admin: bool

    model_config = ConfigDict(from_attributes=True)

class UserEnvelope(BaseModel):
    user: UserResponse

class UserSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    avatar: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

# ---------- Messages ----------
class MessageCreate(BaseModel):
    to_id: int
    body: str = Field(..., min_length=1)

class MessageResponse(BaseModel):
    id: int
    from_id: int
    to_id: int
    body: str
    sent_at: datetime

    model_config = ConfigDict(from_attributes=True)

class MessageDetail(BaseModel):
    id: int
    from_user: UserSummary
    to_user: UserSummary
    body: str
    sent_at: datetime
    read_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class MessageRead(BaseModel):
    id: int
    read_at: datetime

class MessageToUser(BaseModel):
    """A message received by the user, shown with its sender"""
    id: int
    from_user: UserSummary
    body: str
    sent_at: datetime
    read_at: Optional[datetime] = None

class MessageFromUser(BaseModel):
    """A message sent by the user, shown with its recipient"""
    id: int
    to_user: UserSummary
    body: str
    sent_at: datetime
    read_at: Optional[datetime] = None

class MessageEnvelope(BaseModel):
    message: MessageResponse

class MessageDetailEnvelope(BaseModel):
    message: MessageDetail

class MessageReadEnvelope(BaseModel):
    message: MessageRead

class MessagesToEnvelope(BaseModel):
    messages: List[MessageToUser]

class MessagesFromEnvelope(BaseModel):
    messages: List[MessageFromUser]

# ---------- Images ----------
class ImageSummary(BaseModel):
    id: int
    image_key: str
    is_cover_image: bool

    model_config = ConfigDict(from_attributes=True)

class ImageResponse(ImageSummary):
    property_id: int

class ImageEnvelope(BaseModel):
    image: ImageResponse

class ImagesEnvelope(BaseModel):
    images: List[ImageSummary]

class ImageDelete(BaseModel):
    image_keys: List[str] = Field(..., min_length=1)

class ItemError(BaseModel):
    error: str

class ImageUploadResult(BaseModel):
    images: List[ImageResponse]
    errors: List[ItemError] = []

class ImageDeleteResult(BaseModel):
    message: str
    deleted: List[str] = []
    errors: List[ItemError] = []

# ---------- Properties ----------
class PropertyCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zipcode: str = Field(..., min_length=1, max_length=20)
    description: str = Field(..., min_length=1)
    price: int = Field(..., ge=0)

class PropertyUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[int] = Field(None, ge=0)

class PropertySearch(BaseModel):
    min_price: Optional[int] = Field(None, ge=0)
    max_price: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    limit: int = Field(10, ge=1, le=100)
    page: int = Field(1, ge=1)

class PropertySnapshot(BaseModel):
    id: int
    title: str
    street: str
    city: str
    state: str
    zipcode: str
    latitude: str
    longitude: str
    description: str
    price: int
    owner_id: int
    images: List[ImageSummary] = []

    model_config = ConfigDict(from_attributes=True)

class PropertyEnvelope(BaseModel):
    property: PropertySnapshot

class Pagination(BaseModel):
    current_page: int
    total_results: int
    total_pages: int
    limit: int

class PropertyPage(BaseModel):
    properties: List[PropertySnapshot]
    pagination: Pagination

# ---------- Bookings ----------
def to_naive_utc(value: datetime) -> datetime:
    """Aware values are converted to UTC; naive values are taken as UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

class BookingCreate(BaseModel):
    start_date: datetime
    end_date: datetime

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

class BookingResponse(BaseModel):
    id: int
    start_date: datetime
    end_date: datetime
    guest_id: int
    property: PropertySnapshot

    @field_serializer("start_date", "end_date")
    def serialize_utc(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()

class BookingEnvelope(BaseModel):
    booking: BookingResponse
