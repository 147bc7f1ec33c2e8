"""
Supabase 테이블 접근을 위한 헬퍼 모듈

supabase-py 클라이언트는 동기식이므로 모든 execute() 호출은 워커 스레드에서 실행한다.
"""

import asyncio
from typing import Dict, Optional, Any
from supabase import Client
import logging

from core.interfaces import IDatabaseHelper
from core.responses import LedgerWriteError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

PAYPAL_CONFIG_COLUMNS = (
    'paypal_client_id',
    'paypal_secret_key',
    'paypal_environment',
    'paypal_return_url',
    'paypal_cancel_url',
)


class DatabaseHelper(IDatabaseHelper):
    def __init__(self, supabase_client: Client, admin_client: Client = None):
        self.supabase = supabase_client
        self.admin_client = admin_client or supabase_client

    def _get_client(self, use_admin: bool = False):
        """적절한 클라이언트 반환 - 일반적으로 admin client 사용"""
        return self.admin_client if use_admin or self.admin_client else self.supabase

    @staticmethod
    async def _execute(query):
        return await asyncio.to_thread(query.execute)

    # Transactions (원장)
    async def insert_transaction(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """거래 원장에 1건 추가 (provider_capture_id 기준 중복 방지)"""
        client = self._get_client(use_admin=True)
        capture_id = record.get('provider_capture_id')

        try:
            if capture_id:
                existing = await self._execute(
                    client.table('transactions')
                    .select('id')
                    .eq('provider_capture_id', capture_id)
                    .limit(1)
                )
                if existing.data:
                    logger.info(
                        "[LEDGER] capture already recorded: %s",
                        capture_id,
                        extra={"capture_id": capture_id, "transaction_id": existing.data[0].get('id')},
                    )
                    return {**existing.data[0], 'duplicate': True}

            result = await self._execute(client.table('transactions').insert(record))
        except Exception as e:
            if capture_id and getattr(e, 'code', None) == UNIQUE_VIOLATION:
                logger.info("[LEDGER] unique violation on capture %s treated as duplicate", capture_id)
                return {'id': None, 'provider_capture_id': capture_id, 'duplicate': True}
            raise LedgerWriteError(f"transactions insert failed: {e}", record) from e

        if not result.data:
            raise LedgerWriteError("transactions insert returned no row", record)
        return {**result.data[0], 'duplicate': False}

    # Facilities (시설 결제 설정)
    async def get_facility(self, facility_id: str) -> Optional[Dict[str, Any]]:
        """시설 행 조회"""
        client = self._get_client(use_admin=True)
        result = await self._execute(
            client.table('facilities').select('*').eq('id', facility_id).limit(1)
        )
        return result.data[0] if result.data else None

    async def get_facility_payment_config(self, facility_id: str) -> Optional[Dict[str, Any]]:
        """시설별 PayPal 설정 컬럼만 추출 (시설이 없으면 None)"""
        facility = await self.get_facility(facility_id)
        if facility is None:
            return None
        return {column: facility.get(column) for column in PAYPAL_CONFIG_COLUMNS}

    async def update_facility_payment_config(self, facility_id: str, fields: Dict[str, Any]) -> bool:
        """시설별 PayPal 설정 저장"""
        payload = {k: v for k, v in fields.items() if k in PAYPAL_CONFIG_COLUMNS}
        client = self._get_client(use_admin=True)
        result = await self._execute(
            client.table('facilities').update(payload).eq('id', facility_id)
        )
        return bool(result.data)

    # Users
    async def get_user_id_by_auth_user_id(self, auth_user_id: str) -> Optional[str]:
        """Supabase Auth 사용자 ID로 내부 users.id 조회"""
        try:
            client = self._get_client(use_admin=True)
            result = await self._execute(
                client.table('users').select('id').eq('auth_user_id', auth_user_id).limit(1)
            )
            return result.data[0]['id'] if result.data else None
        except Exception as e:
            logger.error(f"사용자 조회 실패: {e}")
            return None

    # 시스템 로그 관련 함수들
    async def log_system_event(self, user_id: str = None, event_type: str = 'info',
                             event_data: Dict = None) -> bool:
        """시스템 이벤트 로그 기록"""
        try:
            log_data = {
                'user_id': user_id,
                'event_type': event_type,
                'event_data': event_data or {},
            }

            result = await self._execute(self.admin_client.table('system_logs').insert(log_data))
            return len(result.data) > 0
        except Exception as e:
            logger.error(f"시스템 로그 기록 실패: {e}")
            return False

    async def has_processed_webhook_event(self, provider: str, event_id: str) -> bool:
        """지정한 공급자 웹훅 이벤트가 이미 처리되었는지 확인"""
        try:
            if not event_id:
                return False

            client = self._get_client(use_admin=True)
            result = await self._execute(
                client.table('system_logs')
                .select('id')
                .eq('event_type', f"{provider}_webhook")
                .contains('event_data', {'event_id': event_id})
                .limit(1)
            )
            return bool(result.data)
        except Exception as e:
            logger.error(f"웹훅 이벤트 중복 확인 실패: {e}")
            return False

    async def record_webhook_event(self, provider: str, event_id: str, status: str, payload: Dict[str, Any] = None) -> bool:
        """웹훅 이벤트 처리 기록"""
        if not event_id:
            return False

        event_payload = {
            'event_id': event_id,
            'status': status,
        }
        if payload:
            event_payload['payload'] = payload

        return await self.log_system_event(event_type=f"{provider}_webhook", event_data=event_payload)
