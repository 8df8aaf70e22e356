"""
Generated QR code database model.

Batches of digit codes issued by admins and later claimed by devices.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from backend.app.db.session import Base, utcnow


class GeneratedQRCode(Base):
    __tablename__ = "generated_qr_codes"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    qr_code = Column(String(32), unique=True, index=True, nullable=False)
    
    is_used = Column(Boolean, default=False, nullable=False)
    used_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    used_at = Column(DateTime(timezone=True), nullable=True)
    
    generated_by = Column(Integer, ForeignKey('users.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    def __repr__(self):
        return f"<GeneratedQRCode(qr_code='{self.qr_code}', used={self.is_used})>"
