import os
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class SmtpSettings(BaseModel):
    host: str = Field(default_factory=lambda: os.getenv("SMTP_HOST", "smtp.gmail.com"))
    port: int = Field(default_factory=lambda: int(os.getenv("SMTP_PORT", "587")), ge=1, le=65535)
    secure: bool = Field(default_factory=lambda: os.getenv("SMTP_SECURE", "false").lower() == "true")
    username: str = Field(default_factory=lambda: os.getenv("SMTP_USER", ""))
    password: str = Field(default_factory=lambda: os.getenv("SMTP_PASS", ""))
    sender_name: str = "WERK Payroll"
    sender_address: Optional[str] = None

    @property
    def from_address(self) -> str:
        return self.sender_address or self.username


class SystemSettings(BaseModel):
    """Runtime-editable settings document behind the settings store."""
    smtp: SmtpSettings = Field(default_factory=SmtpSettings)
    daily_email: bool = False


# --- API shapes ---

class SmtpSettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    host: str
    port: int
    secure: bool
    username: str
    password: str = ""  # always masked
    sender_name: str
    sender_address: Optional[str] = None


class SystemSettingsRead(BaseModel):
    smtp: SmtpSettingsRead
    daily_email: bool


class SmtpSettingsUpdate(BaseModel):
    host: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    secure: Optional[bool] = None
    username: Optional[str] = None
    # Omitted or blank keeps the stored password
    password: Optional[str] = None
    sender_name: Optional[str] = None
    sender_address: Optional[str] = None


class SystemSettingsUpdate(BaseModel):
    smtp: Optional[SmtpSettingsUpdate] = None
    daily_email: Optional[bool] = None
