import asyncio
from typing import Optional
from supabase import Client
import logging

# Core imports
from core.interfaces import IAuthService
from core.base_service import BaseService
from database_helper import DatabaseHelper

logger = logging.getLogger(__name__)


class AuthService(BaseService, IAuthService):
    """베어러 토큰 -> 내부 사용자 ID 확인 서비스"""

    def __init__(self, supabase_client: Client, db_helper: DatabaseHelper):
        super().__init__(db_helper)
        self.supabase = supabase_client

    async def resolve_user_from_auth_token(self, token: Optional[str]) -> Optional[str]:
        """
        Supabase Auth로 토큰을 검증하고 users.id 를 반환.

        원장 기록의 created_by 용도이므로 어떤 실패도 예외로 올리지 않고 None을 반환한다.
        """
        if not token:
            return None

        try:
            response = await asyncio.to_thread(self.supabase.auth.get_user, token)
            if response is None or response.user is None:
                self.logger.warning("유효하지 않은 토큰입니다")
                return None

            user_id = await self.db_helper.get_user_id_by_auth_user_id(response.user.id)
            if not user_id:
                self.logger.warning(f"auth 사용자와 연결된 users 행이 없습니다: {response.user.id}")
            return user_id
        except Exception as e:
            self.logger.warning(f"토큰으로 사용자 확인 실패: {e}")
            return None
