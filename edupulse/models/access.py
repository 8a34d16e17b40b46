from sqlalchemy import Column, Integer, String, UniqueConstraint

from .base import TenantModel, TimestampMixin


class AccessCredential(TimestampMixin, TenantModel):
    """Per-teacher password guarding sensitive roster views"""
    __tablename__ = "access_credentials"
    __table_args__ = (
        UniqueConstraint("owner_id", name="uq_access_credentials_owner"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    password_hash = Column(String(255), nullable=False)

    def __repr__(self):
        return f"<AccessCredential(owner_id={self.owner_id})>"
