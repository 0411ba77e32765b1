from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_NAME: str = Field("FiniTax", description="Logger namespace and window title")
    DB_URL: str = Field("sqlite:///./data/finitax.db", description="Database URL")
    LOG_LEVEL: str = Field("INFO", description="Level for per-organization loggers")
    LOG_PATH: str = Field("./data/logs", description="Directory for rotating log files")
    AUDIT_LOG_PATH: str = Field("./data/audit", description="Directory for audit trail JSONL files")
    DEV: bool = Field(False, description="Also log to the console")

    # Statutory rates and the permission matrix are code, not settings:
    # see finitax.tax.payroll and finitax.auth.permissions.

settings = Settings()
