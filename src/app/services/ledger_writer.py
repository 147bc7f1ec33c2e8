"""거래 원장 기록 서비스"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from core.interfaces import ITransactionLedger
from core.responses import LedgerWriteError
from services.amount_reconciliation import ReconciledAmounts

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    transaction_id: Optional[str]
    resident_id: str
    facility_id: str
    amount: Decimal
    description: str
    created_by: Optional[str]
    provider_capture_id: Optional[str]
    duplicate: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "resident_id": self.resident_id,
            "facility_id": self.facility_id,
            "amount": str(self.amount),
            "description": self.description,
            "created_by": self.created_by,
            "provider_capture_id": self.provider_capture_id,
            "duplicate": self.duplicate,
        }


def build_capture_description(amounts: ReconciledAmounts, capture_id: Optional[str], provider: str = "PayPal") -> str:
    """PayPal 대시보드와 수동 대사할 수 있도록 금액 내역을 설명에 남긴다"""
    currency = amounts.currency
    parts = [
        f"Online Payment ({provider} {currency})",
        f"Gross {amounts.gross_amount:.2f} {currency}",
        f"{provider} fee {amounts.fee_amount:.2f} {currency}",
        f"Net received {amounts.net_amount:.2f} {currency}",
    ]
    if amounts.trust_top_up is not None:
        parts.append(f"Top-up credited {amounts.trust_top_up:.2f} {currency}")
    if capture_id:
        parts.append(f"Capture ID {capture_id}")
    return " | ".join(parts)


class LedgerWriter:
    """캡처 1건당 credit 거래 1건을 기록"""

    def __init__(self, ledger: ITransactionLedger):
        self.ledger = ledger

    async def record_credit(
        self,
        resident_id: str,
        facility_id: str,
        amount: Decimal,
        description: str,
        created_by: Optional[str],
        *,
        provider_capture_id: Optional[str] = None,
    ) -> LedgerEntry:
        if not resident_id or not facility_id:
            raise LedgerWriteError("resident_id and facility_id are required")
        if amount is None or amount <= 0:
            raise LedgerWriteError(f"credit amount must be positive: {amount}")

        record: Dict[str, Any] = {
            "resident_id": resident_id,
            "facility_id": facility_id,
            "type": "credit",
            # numeric 컬럼 - float 변환 없이 문자열로 전달
            "amount": str(amount),
            "method": "manual",
            "description": description,
            "created_by": created_by,
        }
        if provider_capture_id:
            record["provider_capture_id"] = provider_capture_id

        try:
            row = await self.ledger.insert_transaction(record)
        except LedgerWriteError:
            raise
        except Exception as e:
            raise LedgerWriteError(f"ledger unavailable: {e}", record) from e

        entry = LedgerEntry(
            transaction_id=row.get("id"),
            resident_id=resident_id,
            facility_id=facility_id,
            amount=amount,
            description=description,
            created_by=created_by,
            provider_capture_id=provider_capture_id,
            duplicate=bool(row.get("duplicate")),
        )

        if entry.duplicate:
            logger.info(
                "[LEDGER] duplicate capture ignored",
                extra={"capture_id": provider_capture_id, "resident_id": resident_id},
            )
        else:
            logger.info(
                "[LEDGER] credit recorded: resident=%s amount=%s",
                resident_id,
                amount,
                extra={"transaction_id": entry.transaction_id, "capture_id": provider_capture_id},
            )
        return entry
