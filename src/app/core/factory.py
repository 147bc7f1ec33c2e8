"""
서비스 팩토리 - 의존성 주입 설정
"""
from typing import Optional, Tuple
from supabase import Client, create_client
import logging

from core.config import Settings, settings as default_settings
from core.container import DIContainer
from core.interfaces import IAuthService, IDatabaseHelper, IFacilityConfigRepository, ITransactionLedger
from database_helper import DatabaseHelper
from services.auth_service import AuthService
from services.ledger_writer import LedgerWriter
from services.payment_capture_service import PaymentCaptureService
from services.payment_config_service import PaymentConfigService
from webhooks.dispatcher import EventDispatcher
from webhooks.handlers import build_default_registry
from webhooks.registry import LazyRegistryLoader

logger = logging.getLogger(__name__)


class ServiceFactory:
    """서비스 의존성 등록 및 초기화"""

    @staticmethod
    def create_supabase_clients(settings: Settings) -> Tuple[Client, Optional[Client]]:
        """Supabase 클라이언트 생성 (URL/키는 이 시점에 검증)"""
        if not settings.SUPABASE_URL:
            raise RuntimeError("SUPABASE_URL이 설정되지 않았습니다")
        if not settings.SUPABASE_SERVICE_ROLE_KEY and not settings.SUPABASE_ANON_KEY:
            raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY 또는 SUPABASE_ANON_KEY가 필요합니다")

        supabase_admin = None
        if settings.SUPABASE_SERVICE_ROLE_KEY:
            supabase_admin = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
        else:
            logger.warning("SUPABASE_SERVICE_ROLE_KEY가 설정되지 않음 - 원장 기록이 RLS에 막힐 수 있습니다")

        supabase_client = (
            create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
            if settings.SUPABASE_ANON_KEY
            else supabase_admin
        )
        return supabase_client, supabase_admin

    @staticmethod
    def configure_dependencies(container: DIContainer, settings: Settings = None) -> DIContainer:
        """의존성 주입 컨테이너 설정 (실제 Supabase 연결)"""
        settings = settings or default_settings
        supabase_client, supabase_admin = ServiceFactory.create_supabase_clients(settings)

        # 외부 클라이언트들을 컨테이너에 등록
        container.register_singleton(Client, supabase_admin or supabase_client)

        # DatabaseHelper 싱글톤 등록
        db_helper = DatabaseHelper(supabase_client, supabase_admin)
        container.register_singleton(DatabaseHelper, db_helper)

        # 토큰 검증은 service role 클라이언트로 수행
        auth_service = AuthService(supabase_admin or supabase_client, db_helper)

        return ServiceFactory.register_services(container, db_helper, auth_service, settings)

    @staticmethod
    def register_services(
        container: DIContainer,
        db_helper: IDatabaseHelper,
        auth_service: IAuthService,
        settings: Settings = None,
    ) -> DIContainer:
        """협력 객체(DB/인증)를 받아 결제/웹훅 서비스 그래프 등록"""
        settings = settings or default_settings

        container.register_singleton(Settings, settings)
        container.register_singleton(IDatabaseHelper, db_helper)
        container.register_singleton(ITransactionLedger, db_helper)
        container.register_singleton(IFacilityConfigRepository, db_helper)
        container.register_singleton(IAuthService, auth_service)

        container.register_service(LedgerWriter, LedgerWriter)
        container.register_service(PaymentConfigService, PaymentConfigService)
        container.register_service(PaymentCaptureService, PaymentCaptureService)

        # 레지스트리는 첫 웹훅 수신 시 한 번만 구성
        container.register_singleton(
            LazyRegistryLoader,
            LazyRegistryLoader(lambda: build_default_registry(db_helper)),
        )
        container.register_service(EventDispatcher, EventDispatcher)

        logger.info("서비스 의존성 등록 완료")
        return container
