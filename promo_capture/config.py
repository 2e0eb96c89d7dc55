"""
Application settings
"""
from pydantic_settings import BaseSettings
from typing import ClassVar, List


DEFAULT_OCR_PROMPT = """Extract structured JSON from the given image.
If the image is an order receipt, return:
{
  "orderId": "string",
  "totalBill": "number",
  "deliveryAddress": "string",
  "orderPlaced": "string",
  "promoVoucher": "number",
  "customerName": "string",
  "customerPhone": "string"
}
For promoVoucher, extract the actual promo discount applied to this order as a positive number.
Ignore lifetime savings or delivery discounts.
If the image is a customer profile screen, return:
{
  "name": "string",
  "phone": "string"
}
Otherwise return {}.
Only return valid JSON with no extra text."""


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are absent."""


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./data/promo_capture.db"

    # Security
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    API_KEY: str = ""
    MIN_APP_VERSION: str = "1.0.0"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Files
    DATA_DIR: str = "./data"
    MAX_UPLOAD_IMAGES: int = 50

    # Vision LLM (OpenAI-compatible endpoint, Gemini by default)
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    LLM_MODEL: str = "gemini-2.0-flash"
    DEFAULT_OCR_PROMPT: str = DEFAULT_OCR_PROMPT

    # Blob storage
    AZURE_STORAGE_CONNECTION_STRING: str = ""
    AZURE_CONTAINER_NAME: str = ""

    # SMS (MSG91)
    SMS_API_URL: str = "https://api.msg91.com/api/v2/sendsms"
    SMS_AUTH_KEY: str = ""
    SMS_SENDER_ID: str = "CYNQ"
    SMS_TEMPLATE_ID: str = ""
    SMS_COUNTRY_CODE: str = "91"
    OTP_TTL_SECONDS: int = 120

    class Config:
        env_file = ".env"
        case_sensitive = True

    REQUIRED: ClassVar[tuple[str, ...]] = (
        "API_KEY",
        "LLM_API_KEY",
        "AZURE_STORAGE_CONNECTION_STRING",
        "AZURE_CONTAINER_NAME",
        "SMS_AUTH_KEY",
    )

    def missing_required(self) -> list[str]:
        missing = [name for name in self.REQUIRED if not getattr(self, name)]
        if self.ENVIRONMENT != "development" and self.SECRET_KEY == Settings.model_fields["SECRET_KEY"].default:
            missing.append("SECRET_KEY")
        return missing

    def ensure_configured(self) -> None:
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(
                "Missing required settings: " + ", ".join(missing)
            )


settings = Settings()
