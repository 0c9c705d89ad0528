from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv
import os

BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(BASE_DIR / '.env')

DEFAULT_CORS_ORIGINS = (
    'https://yellow-moss-029856a00.4.azurestaticapps.net,'
    'https://subtracker-ecefchh5fxaya5c4.eastasia-01.azurewebsites.net'
)


def _as_bool(value: str, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _as_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


class Settings:
    GOOGLE_API_KEY: str = os.getenv('GOOGLE_API_KEY', '')
    GOOGLE_CLIENT_ID: str = os.getenv('GOOGLE_CLIENT_ID', '')
    GOOGLE_CLIENT_SECRET: str = os.getenv('GOOGLE_CLIENT_SECRET', '')
    GOOGLE_OAUTH_REDIRECT_PORT: int = int(os.getenv('GOOGLE_OAUTH_REDIRECT_PORT', '0'))
    GOOGLE_OAUTH_OPEN_BROWSER: bool = _as_bool(os.getenv('GOOGLE_OAUTH_OPEN_BROWSER'), default=True)

    # Calendar push
    CALENDAR_TIMEZONE: Optional[str] = os.getenv('CALENDAR_TIMEZONE') or None
    CALENDAR_LOAD_TIMEOUT_SECONDS: float = float(os.getenv('CALENDAR_LOAD_TIMEOUT_SECONDS', '5'))
    TOKEN_STORAGE_PATH: Path = Path(os.getenv('TOKEN_STORAGE_PATH') or (BASE_DIR / 'tokens' / 'local_storage.json'))

    # HTTP service
    BACKEND_PORT: int = int(os.getenv('BACKEND_PORT', os.getenv('PORT', '5000')))
    APP_ENV: str = os.getenv('APP_ENV', 'production')
    CORS_ORIGINS: List[str] = _as_list(os.getenv('CORS_ORIGINS', DEFAULT_CORS_ORIGINS))
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO').upper()

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() == 'development'


settings = Settings()
