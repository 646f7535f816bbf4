from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship
from app.models.base import Base


class Payment(Base):
    """Append-only record of a completed checkout."""
    __tablename__ = 'payments'

    payment_id = Column(Integer, primary_key=True, autoincrement=True)
    fine_id = Column(Integer, ForeignKey('fines.fine_id'), nullable=False)
    driver_id = Column(Integer, ForeignKey('driver.driver_id'), nullable=False)

    amount = Column(Float, nullable=False)
    status = Column(String(50), nullable=False)
    receipt_url = Column(String(500))
    payment_date = Column(DateTime, nullable=False, server_default=func.now())

    stripe_session_id = Column(String(255), unique=True)

    fine = relationship("Fine", back_populates="payments")

    def __repr__(self):
        return f"<Payment {self.payment_id} for Fine {self.fine_id}: {self.amount} ({self.status})>"
