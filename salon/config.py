from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str

    business_timezone: str = "Asia/Jerusalem"
    booking_horizon_days: int = 30
    session_ttl_hours: int = 24
    session_cookie_secure: bool = True

    admin_password: str = ""

    sms_api_url: str = "https://api.sms4free.co.il/ApiSMS/v2/SendSMS"
    sms_key: str = ""
    sms_user: str = ""
    sms_pass: str = ""
    sms_sender: str = "AdarNails"
    sms_timeout_seconds: float = 10.0

    log_level: str = "INFO"

    model_config = {"env_file": ".env"}

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)


settings = Settings()
