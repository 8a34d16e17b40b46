from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from edupulse.core.config import settings
from edupulse.core.errors import AuthenticationError, ValidationError
from edupulse.core.logging import logger
from edupulse.core.security import hash_password, verify_password
from edupulse.models import AccessCredential
from edupulse.schemas.insights import AccessStatusResponse, AccessVerifyResponse
from edupulse.services.base_service import BaseService


class AccessService(BaseService):
    """Per-teacher password that gates sensitive roster views."""

    async def _get_credential(self) -> Optional[AccessCredential]:
        result = await self.db.execute(
            select(AccessCredential).where(AccessCredential.owner_id == self.owner_id)
        )
        return result.scalar_one_or_none()

    async def status(self) -> AccessStatusResponse:
        return AccessStatusResponse(password_set=await self._get_credential() is not None)

    async def verify(self, password: str) -> AccessVerifyResponse:
        """The first call sets the password; later calls must match it."""
        credential = await self._get_credential()

        if credential is None:
            if len(password or "") < settings.ACCESS_PASSWORD_MIN_LENGTH:
                raise ValidationError(
                    f"Password must be at least {settings.ACCESS_PASSWORD_MIN_LENGTH} characters"
                )
            self.db.add(AccessCredential(owner_id=self.owner_id, password_hash=hash_password(password)))
            try:
                await self.db.commit()
            except IntegrityError:
                # Another request created it first; verify against that one
                await self.db.rollback()
                return await self.verify(password)
            logger.info("Access password created", extra={"owner_id": self.owner_id})
            return AccessVerifyResponse(verified=True, created=True)

        if not verify_password(password or "", credential.password_hash):
            logger.warning("Access password mismatch", extra={"owner_id": self.owner_id})
            raise AuthenticationError("Incorrect password", error_code="ACCESS_DENIED")
        return AccessVerifyResponse(verified=True, created=False)
