"""
Signature repository.

Signing is a conditional write: the row only moves to signed while it is
still in a signable state, and the audit entry is written in the same
transaction.
"""

import logging
from typing import Optional, Dict, Any

from sqlalchemy import select, update

from ..connection import get_database
from ..models import SignatureDB, SignatureAuditDB, SignatureStatusEnum
from ..exceptions import RecordOperationError

logger = logging.getLogger(__name__)

SIGNABLE_STATUSES = (
    SignatureStatusEnum.PENDING.value,
    SignatureStatusEnum.SENT.value,
    SignatureStatusEnum.VIEWED.value,
)


class SignatureRepository:
    """Repository for e-signature requests."""

    def __init__(self):
        self.db = get_database()

    async def get_by_id(self, project_id: str, signature_id: str) -> Optional[SignatureDB]:
        """Get a signature request, only if it belongs to project_id."""
        async with self.db.session() as session:
            result = await session.execute(
                select(SignatureDB).where(
                    SignatureDB.id == signature_id,
                    SignatureDB.project_id == project_id,
                )
            )
            return result.scalar_one_or_none()

    async def mark_signed(
        self,
        project_id: str,
        signature_id: str,
        values: Dict[str, Any],
        audit_data: Dict[str, Any],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[SignatureDB]:
        """
        Record a signature and its "signed" audit entry.

        Returns None when the request left the signable states in the
        meantime (a concurrent sign or decline won).
        """
        async with self.db.session() as session:
            try:
                values = dict(values)
                values["status"] = SignatureStatusEnum.SIGNED.value

                result = await session.execute(
                    update(SignatureDB)
                    .where(
                        SignatureDB.id == signature_id,
                        SignatureDB.project_id == project_id,
                        SignatureDB.status.in_(SIGNABLE_STATUSES),
                    )
                    .values(**values)
                )
                if result.rowcount == 0:
                    logger.warning(f"Signature {signature_id} no longer signable")
                    return None

                session.add(SignatureAuditDB(
                    signature_id=signature_id,
                    event_type="signed",
                    event_data=audit_data,
                    ip_address=ip_address,
                    user_agent=user_agent,
                ))
                await session.flush()

                result = await session.execute(
                    select(SignatureDB).where(SignatureDB.id == signature_id)
                )
                signature = result.scalar_one_or_none()

                logger.info(f"Signature {signature_id} signed in project {project_id}")
                return signature

            except Exception as e:
                logger.error(f"Failed to record signature {signature_id}: {e}", exc_info=True)
                raise RecordOperationError(f"Failed to record signature {signature_id}: {e}")


# Singleton
_signature_repository: Optional[SignatureRepository] = None


def get_signature_repository() -> SignatureRepository:
    """Get the signature repository singleton."""
    global _signature_repository
    if _signature_repository is None:
        _signature_repository = SignatureRepository()
    return _signature_repository
