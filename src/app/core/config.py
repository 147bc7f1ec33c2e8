"""
애플리케이션 설정 관리
"""
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_FILE_PATH = Path(__file__).resolve()


def _collect_env_files(file_path: Path) -> tuple[Path, ...]:
    """환경 파일 후보를 가까운 디렉터리부터 수집"""

    collected: list[Path] = []
    seen: set[Path] = set()

    for directory in file_path.parents:
        for name in (".env", ".env.local"):
            candidate = directory / name
            if candidate.exists() and candidate not in seen:
                collected.append(candidate)
                seen.add(candidate)

    return tuple(collected)


_ENV_FILES = _collect_env_files(_FILE_PATH)


def _load_dotenv_files() -> None:
    """프로젝트 전체에서 활용할 .env 파일들을 순차적으로 로드"""

    for dotenv_path in _ENV_FILES:
        load_dotenv(dotenv_path, override=False)


_load_dotenv_files()


class Settings(BaseSettings):
    """애플리케이션 설정"""

    model_config = SettingsConfigDict(
        env_file=tuple(str(path) for path in _ENV_FILES) if _ENV_FILES else None,
        case_sensitive=True,
        extra="allow",
    )

    # 서버 설정
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    DEBUG: bool = False
    FRONTEND_URL: str = "http://localhost:5173"
    PUBLIC_SITE_URL: str = "http://localhost:5173"
    # 쉼표로 구분된 추가 CORS 허용 origin
    CORS_ORIGINS: str = ""

    # Supabase 설정 (클라이언트 생성 시점에 검증)
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    # 로깅 설정
    LOG_LEVEL: str = "INFO"

    # PayPal 기본 자격 증명 (시설별 설정이 없을 때 사용)
    PAYPAL_CLIENT_ID: Optional[str] = None
    PAYPAL_CLIENT_SECRET: Optional[str] = None
    PAYPAL_ENVIRONMENT: str = "sandbox"
    PAYPAL_RETURN_URL: Optional[str] = None
    PAYPAL_CANCEL_URL: Optional[str] = None
    PAYPAL_TIMEOUT_SECONDS: float = 10.0

    # 웹훅 서명 검증
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    WEBHOOK_TOLERANCE_SECONDS: int = 300

    @field_validator("PAYPAL_ENVIRONMENT")
    @classmethod
    def validate_paypal_environment(cls, v: str) -> str:
        normalized = (v or "sandbox").strip().lower()
        if normalized not in ("sandbox", "live"):
            raise ValueError("PAYPAL_ENVIRONMENT는 sandbox 또는 live 여야 합니다")
        return normalized

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return (v or "INFO").upper()

    def allowed_origins(self) -> List[str]:
        """CORS 허용 origin 목록"""
        extra = [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
        origins = [self.FRONTEND_URL, *extra]
        return list(dict.fromkeys(origin for origin in origins if origin))

    def webhook_secret_for(self, provider: str) -> Optional[str]:
        """프로바이더별 웹훅 서명 시크릿 조회"""
        value = getattr(self, f"{provider.upper()}_WEBHOOK_SECRET", None)
        if isinstance(value, str):
            value = value.strip()
        return value or None


# 전역 설정 인스턴스
settings = Settings()
