import os
from typing import List, Optional

from pydantic import BaseModel


class Settings(BaseModel):
    # --- Firebase ---
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
    FIREBASE_DATABASE_URL: str = os.getenv(
        "FIREBASE_DATABASE_URL", "https://ehlazeni-star-school-default-rtdb.firebaseio.com"
    )
    FIREBASE_API_KEY: str = os.getenv("FIREBASE_API_KEY", "")

    # --- Realtime Database layout ---
    APPLICATIONS_PATH: str = os.getenv("APPLICATIONS_PATH", "application/pending")
    ADMINS_PATH: str = os.getenv("ADMINS_PATH", "admins")

    # --- Document upload API ---
    DOCUMENTS_API_URL: str = os.getenv(
        "DOCUMENTS_API_URL", "https://ehlazeni-student-documents-upload-api.onrender.com"
    )
    DOCUMENTS_API_TIMEOUT: float = float(os.getenv("DOCUMENTS_API_TIMEOUT", "15"))

    CORS_ORIGINS: List[str] = os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
