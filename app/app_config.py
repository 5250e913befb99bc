import logging
import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "secret-dev")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./sejour.db")
    BCRYPT_WORK_FACTOR = int(os.getenv("BCRYPT_WORK_FACTOR", "12"))

    # --- Object storage ---
    AWS_REGION = os.getenv("AWS_REGION", "us-west-1")
    AWS_BUCKET = os.getenv("AWS_BUCKET", "sejour-images")
    AWS_BUCKET_PUBLIC_FOLDER = os.getenv("AWS_BUCKET_PUBLIC_FOLDER", "public")
    # Strict allowed extensions and content types for property images
    ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg"}
    ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png"}
    MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(10 * 1024 * 1024)))  # 10 MB
    MAX_UPLOAD_FILES = 12

    GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")
    GEOCODE_TIMEOUT = float(os.getenv("GEOCODE_TIMEOUT", "5"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")


class TestConfig(Config):
    SECRET_KEY = "secret-test"
    DATABASE_URL = "sqlite:///:memory:"
    BCRYPT_WORK_FACTOR = 4
    LOG_LEVEL = "WARNING"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
