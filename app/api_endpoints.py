import logging
import uuid
from typing import List, Optional

import requests
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, FastAPI, File, Query, Request, Response, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

import app_config
import models_pydantic as schemas
import models_sqlalchemy as models
from app_errors import BadRequestError, NotFoundError, SejourError, UnauthorizedError
from auth_tokens import create_token, decode_token
from booking_ledger import BookingLedger, BookingRequest
from geocoding import Geocoder
from image_gallery import ImageGallery
from message_board import MessageBoard
from property_directory import PropertyDirectory
from s3_storage import ImageStore, validate_image
from user_accounts import UserAccounts

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_STATUS = (
    (BadRequestError, status.HTTP_400_BAD_REQUEST),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
)

# ---------- Dependencies ----------
def get_db(request: Request):
    db = request.app.state.SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_config(request: Request):
    return request.app.state.config

def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store

def get_geocoder(request: Request) -> Geocoder:
    return request.app.state.geocoder

bearer_scheme = HTTPBearer(auto_error=False)

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    config=Depends(get_config),
) -> Optional[dict]:
    # A missing or invalid token is not an error here; routes decide.
    if credentials is None:
        return None
    return decode_token(credentials.credentials, config.SECRET_KEY)

def ensure_logged_in(user: Optional[dict] = Depends(get_current_user)) -> dict:
    if not user:
        raise UnauthorizedError()
    return user

def ensure_correct_user(user_id: int, user: Optional[dict] = Depends(get_current_user)) -> dict:
    if not (user and user["id"] == user_id):
        raise UnauthorizedError()
    return user

def ensure_property_owner(
    property_id: int,
    user: dict = Depends(ensure_logged_in),
    db: Session = Depends(get_db),
) -> dict:
    owner_id = PropertyDirectory(db).get_owner_id(property_id)
    if owner_id != user["id"]:
        raise UnauthorizedError()
    return user

# ---------- Auth Endpoints ----------
@router.post("/auth/login", response_model=schemas.TokenResponse)
def login(credentials: schemas.UserLogin, db: Session = Depends(get_db), config=Depends(get_config)):
    user = UserAccounts(db, config.BCRYPT_WORK_FACTOR).authenticate(credentials.email, credentials.password)
    return schemas.TokenResponse(token=create_token(user.id, user.is_admin, config.SECRET_KEY))

@router.post("/auth/register", response_model=schemas.TokenResponse, status_code=status.HTTP_201_CREATED)
def register(data: schemas.UserRegister, db: Session = Depends(get_db), config=Depends(get_config)):
    user = UserAccounts(db, config.BCRYPT_WORK_FACTOR).register(data)
    logger.info("Registered user %s", user.id)
    return schemas.TokenResponse(token=create_token(user.id, user.is_admin, config.SECRET_KEY))

# ---------- User Endpoints ----------
@router.get("/users/{user_id}", response_model=schemas.UserEnvelope)
def get_user(user_id: int, _user=Depends(ensure_correct_user), db: Session = Depends(get_db),
             config=Depends(get_config)):
    user = UserAccounts(db, config.BCRYPT_WORK_FACTOR).get(user_id)
    return schemas.UserEnvelope(user=schemas.UserResponse.model_validate(user))

@router.get("/users/{user_id}/to", response_model=schemas.MessagesToEnvelope)
def get_messages_to(user_id: int, _user=Depends(ensure_correct_user), db: Session = Depends(get_db),
                    config=Depends(get_config)):
    messages = UserAccounts(db, config.BCRYPT_WORK_FACTOR).messages_to(user_id)
    return schemas.MessagesToEnvelope(messages=messages)

@router.get("/users/{user_id}/from", response_model=schemas.MessagesFromEnvelope)
def get_messages_from(user_id: int, _user=Depends(ensure_correct_user), db: Session = Depends(get_db),
                      config=Depends(get_config)):
    messages = UserAccounts(db, config.BCRYPT_WORK_FACTOR).messages_from(user_id)
    return schemas.MessagesFromEnvelope(messages=messages)

# ---------- Property Endpoints ----------
@router.post("/properties/", response_model=schemas.PropertyEnvelope, status_code=status.HTTP_201_CREATED)
def create_property(data: schemas.PropertyCreate, user: dict = Depends(ensure_logged_in),
                    db: Session = Depends(get_db), geocoder: Geocoder = Depends(get_geocoder)):
    coordinates = geocoder.geocode(data.street, data.city, data.state)
    prop = PropertyDirectory(db).create(data, owner_id=user["id"], coordinates=coordinates)
    logger.info("User %s listed property %s", user["id"], prop.id)
    return schemas.PropertyEnvelope(property=schemas.PropertySnapshot.model_validate(prop))

@router.get("/properties/", response_model=schemas.PropertyPage)
def list_properties(
    description: Optional[str] = None,
    min_price: Optional[int] = Query(None, ge=0),
    max_price: Optional[int] = Query(None, ge=0),
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    filters = schemas.PropertySearch(
        description=description, min_price=min_price, max_price=max_price, limit=limit, page=page
    )
    return PropertyDirectory(db).find_all(filters)

@router.get("/properties/{property_id}", response_model=schemas.PropertyEnvelope)
def get_property(property_id: int, db: Session = Depends(get_db)):
    prop = PropertyDirectory(db).get(property_id, include_archived=False)
    return schemas.PropertyEnvelope(property=schemas.PropertySnapshot.model_validate(prop))

@router.patch("/properties/{property_id}", response_model=schemas.PropertyEnvelope)
def update_property(property_id: int, property_update: schemas.PropertyUpdate,
                    _owner=Depends(ensure_property_owner), db: Session = Depends(get_db)):
    prop = PropertyDirectory(db).update(property_id, **property_update.model_dump(exclude_unset=True))
    return schemas.PropertyEnvelope(property=schemas.PropertySnapshot.model_validate(prop))

@router.delete("/properties/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_property(property_id: int, _owner=Depends(ensure_property_owner), db: Session = Depends(get_db)):
    PropertyDirectory(db).archive(property_id)
    logger.info("Archived property %s", property_id)
    return

# ---------- Booking Endpoints ----------
@router.post("/properties/{property_id}/bookings/", response_model=schemas.BookingEnvelope,
             status_code=status.HTTP_201_CREATED)
def create_booking(property_id: int, data: schemas.BookingCreate, user: dict = Depends(ensure_logged_in),
                   db: Session = Depends(get_db)):
    booking = BookingLedger(db).create_booking(
        BookingRequest(
            start_date=data.start_date,
            end_date=data.end_date,
            property_id=property_id,
            guest_id=user["id"],
        )
    )
    logger.info("User %s booked property %s (booking %s)", user["id"], property_id, booking.id)
    return schemas.BookingEnvelope(booking=booking)

@router.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(booking_id: int, user: dict = Depends(ensure_logged_in), db: Session = Depends(get_db)):
    ledger = BookingLedger(db)
    if ledger.get(booking_id).guest_id != user["id"]:
        raise UnauthorizedError()
    ledger.delete_booking(booking_id)
    logger.info("Deleted booking %s", booking_id)
    return

# ---------- Message Endpoints ----------
@router.post("/messages/", response_model=schemas.MessageEnvelope, status_code=status.HTTP_201_CREATED)
def create_message(data: schemas.MessageCreate, user: dict = Depends(ensure_logged_in),
                   db: Session = Depends(get_db)):
    message = MessageBoard(db).create(from_id=user["id"], to_id=data.to_id, body=data.body)
    return schemas.MessageEnvelope(message=schemas.MessageResponse.model_validate(message))

@router.get("/messages/{message_id}", response_model=schemas.MessageDetailEnvelope)
def get_message(message_id: int, user: dict = Depends(ensure_logged_in), db: Session = Depends(get_db)):
    message = MessageBoard(db).get(message_id)
    if user["id"] not in (message.from_id, message.to_id):
        raise UnauthorizedError()
    return schemas.MessageDetailEnvelope(message=schemas.MessageDetail.model_validate(message))

@router.patch("/messages/{message_id}", response_model=schemas.MessageReadEnvelope)
def mark_message_read(message_id: int, user: dict = Depends(ensure_logged_in), db: Session = Depends(get_db)):
    board = MessageBoard(db)
    # only the recipient can mark a message read
    if board.get(message_id).to_id != user["id"]:
        raise UnauthorizedError()
    message = board.mark_read(message_id)
    return schemas.MessageReadEnvelope(message=schemas.MessageRead(id=message.id, read_at=message.read_at))

# ---------- Image Endpoints ----------
@router.post("/properties/{property_id}/images", response_model=schemas.ImageUploadResult,
             status_code=status.HTTP_201_CREATED)
def upload_images(
    property_id: int,
    response: Response,
    files: List[UploadFile] = File(...),
    _owner=Depends(ensure_property_owner),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
    config=Depends(get_config),
):
    if len(files) > config.MAX_UPLOAD_FILES:
        raise BadRequestError(f"At most {config.MAX_UPLOAD_FILES} files per upload")

    bodies = []
    for file in files:
        body = file.file.read()
        validate_image(file.filename, file.content_type, len(body), config)
        bodies.append(body)

    gallery = ImageGallery(db)
    images, errors = [], []
    for file, body in zip(files, bodies):
        key = str(uuid.uuid4())
        try:
            store.upload(key, body, property_id, content_type=file.content_type)
        except (BotoCoreError, ClientError) as e:
            logger.error("Error uploading %s for property %s: %s", file.filename, property_id, e)
            errors.append(schemas.ItemError(error=f"Error uploading {file.filename}"))
            continue
        images.append(schemas.ImageResponse.model_validate(gallery.create(key, property_id)))

    if errors:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return schemas.ImageUploadResult(images=images, errors=errors)

@router.get("/properties/{property_id}/images", response_model=schemas.ImagesEnvelope)
def list_images(property_id: int, db: Session = Depends(get_db)):
    images = ImageGallery(db).get_all_by_property(property_id)
    return schemas.ImagesEnvelope(images=[schemas.ImageSummary.model_validate(i) for i in images])

@router.patch("/properties/{property_id}/images/{image_id}", response_model=schemas.ImageEnvelope)
def set_cover_image(property_id: int, image_id: int, _owner=Depends(ensure_property_owner),
                    db: Session = Depends(get_db)):
    image = ImageGallery(db).set_cover(image_id, property_id)
    return schemas.ImageEnvelope(image=schemas.ImageResponse.model_validate(image))

@router.delete("/properties/{property_id}/images", response_model=schemas.ImageDeleteResult)
def delete_images(
    property_id: int,
    data: schemas.ImageDelete,
    response: Response,
    _owner=Depends(ensure_property_owner),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    gallery = ImageGallery(db)
    deleted, errors = [], []
    for key in data.image_keys:
        try:
            store.delete(key, property_id)
        except (BotoCoreError, ClientError) as e:
            logger.error("AWS error deleting %s: %s", key, e)
            errors.append(schemas.ItemError(error=f"AWS error deleting {key}"))
            continue
        try:
            gallery.delete_by_key(key, property_id)
        except NotFoundError as e:
            errors.append(schemas.ItemError(error=e.message))
            continue
        deleted.append(key)

    if errors:
        response.status_code = status.HTTP_207_MULTI_STATUS
        message = f"Deleted {len(deleted)} of {len(data.image_keys)} image(s)"
    else:
        message = "Successfully deleted all selected image(s)"
    return schemas.ImageDeleteResult(message=message, deleted=deleted, errors=errors)

# ---------- Error Handlers ----------
async def sejour_error_handler(request: Request, exc: SejourError):
    status_code = next(
        (code for error_class, code in ERROR_STATUS if isinstance(exc, error_class)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})

async def unavailable_error_handler(request: Request, exc: Exception):
    logger.error("Upstream failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable"},
    )

# ---------- App Factory ----------
def create_app(config_class=app_config.Config) -> FastAPI:
    """Build the API with its own engine, session factory and integrations.

    Run with ``uvicorn api_endpoints:create_app --factory``.
    """
    app_config.configure_logging(config_class.LOG_LEVEL)

    connect_args = {"check_same_thread": False} if config_class.DATABASE_URL.startswith("sqlite") else {}
    engine = create_engine(config_class.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
    models.Base.metadata.create_all(bind=engine)

    app = FastAPI(title="Sejour")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config_class.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config_class
    app.state.engine = engine
    app.state.SessionLocal = sessionmaker(autoflush=False, bind=engine)
    app.state.image_store = ImageStore(
        config_class.AWS_BUCKET, config_class.AWS_BUCKET_PUBLIC_FOLDER, region=config_class.AWS_REGION
    )
    app.state.geocoder = Geocoder(config_class.GOOGLE_MAPS_API_KEY, timeout=config_class.GEOCODE_TIMEOUT)

    app.include_router(router)
    app.add_exception_handler(SejourError, sejour_error_handler)
    app.add_exception_handler(OperationalError, unavailable_error_handler)
    app.add_exception_handler(requests.RequestException, unavailable_error_handler)
    return app
