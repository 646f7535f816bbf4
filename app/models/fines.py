from sqlalchemy import Column, Date, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from app.core.constants import FineStatus
from app.models.base import Base


class Fine(Base):
    __tablename__ = 'fines'

    fine_id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey('driver.driver_id'), nullable=False)
    division_id = Column(String(50), ForeignKey('police_division.division_id'), nullable=False)

    amount = Column(Float, nullable=False)
    description = Column(Text)
    category = Column(String(100))
    # Only the payment webhook moves this, and only from NOT_PAID to PAID
    status = Column(
        Enum(FineStatus, values_callable=lambda e: [m.value for m in e], name="fine_status"),
        nullable=False,
        default=FineStatus.NOT_PAID,
    )
    date = Column(Date, nullable=False)
    lat = Column(Float)
    lon = Column(Float)

    driver = relationship("Driver", back_populates="fines")
    division = relationship("PoliceDivision", back_populates="fines")
    payments = relationship("Payment", back_populates="fine")

    def __repr__(self):
        return f"<Fine {self.fine_id} {self.amount} ({self.status.value})>"
