import os
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Settings:
    # -------------------------------------------------------
    # Project
    # -------------------------------------------------------
    PROJECT_NAME: str = "Kinship Persons API"
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # -------------------------------------------------------
    # Database
    # -------------------------------------------------------
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./kinship.db"
    )

    # Render uses postgres:// but SQLAlchemy needs postgresql://
    if DATABASE_URL.startswith("postgres://"):
        DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

    # -------------------------------------------------------
    # Public base URL (used to build absolute media URLs)
    # -------------------------------------------------------
    BASE_URL: str = os.getenv(
        "BASE_URL",
        "http://127.0.0.1:8000"
    )

    # Comma separated; "*" allows everything
    CORS_ORIGINS: list[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    # -------------------------------------------------------
    # Storage Configuration
    # -------------------------------------------------------
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "local")

    # Local media folder
    LOCAL_MEDIA_PATH: str = os.getenv(
        "LOCAL_MEDIA_PATH",
        "./media"
    )

    # Uploads land here before being moved next to their person.
    # Keep it outside LOCAL_MEDIA_PATH.
    UPLOAD_TMP_PATH: str = os.getenv(
        "UPLOAD_TMP_PATH",
        "./uploads_tmp"
    )

    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")
    SUPABASE_BUCKET: str = os.getenv("SUPABASE_BUCKET", "media")

    # -------------------------------------------------------
    # Signed URLs
    # -------------------------------------------------------
    # 24 hours
    SIGNED_URL_EXPIRES_SECONDS: int = int(
        os.getenv("SIGNED_URL_EXPIRES_SECONDS", 60 * 60 * 24)
    )

    # Only used to sign local media URLs
    SECRET_KEY: str = os.getenv(
        "SECRET_KEY",
        "supersecretlocalkey123"
    )

    # -------------------------------------------------------
    # Upload limits
    # -------------------------------------------------------
    MAX_MEDIA_SIZE: int = int(os.getenv("MAX_MEDIA_SIZE", 100 * 1024 * 1024))
    MAX_PERSON_IMAGE_SIZE: int = int(
        os.getenv("MAX_PERSON_IMAGE_SIZE", 30 * 1024 * 1024)
    )
    MAX_UPLOAD_FILES: int = int(os.getenv("MAX_UPLOAD_FILES", 10))

    # -------------------------------------------------------
    # Media attachment
    # -------------------------------------------------------
    ATTACH_MAX_RETRIES: int = int(os.getenv("ATTACH_MAX_RETRIES", 3))


# Single instance that is imported everywhere
settings = Settings()
