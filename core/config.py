import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from core.errors import ConfigurationError


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the EDINET/DART clients and the analyzers."""
    edinet_api_key: str = ''
    dart_api_key: str = ''
    request_timeout: float = 15.0
    document_timeout: float = 30.0
    filing_delay: float = 0.3  # pause between filing/period fetches
    date_scan_delay: float = 0.2  # pause between EDINET daily document lists
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'Settings':
        """Build settings from the environment, reading a .env file first if present."""
        load_dotenv(env_file, override=False)
        return cls(
            edinet_api_key=os.getenv('EDINET_API_KEY', '').strip(),
            dart_api_key=os.getenv('DART_API_KEY', '').strip(),
            request_timeout=_float_env('ASIA_FILINGS_TIMEOUT', cls.request_timeout),
            document_timeout=_float_env('ASIA_FILINGS_DOCUMENT_TIMEOUT', cls.document_timeout),
            filing_delay=_float_env('ASIA_FILINGS_FILING_DELAY', cls.filing_delay),
            date_scan_delay=_float_env('ASIA_FILINGS_DATE_DELAY', cls.date_scan_delay),
            log_level=os.getenv('ASIA_FILINGS_LOG_LEVEL', cls.log_level).strip() or cls.log_level,
        )


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {raw!r}")
    return value
