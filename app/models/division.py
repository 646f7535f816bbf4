from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from app.models.base import Base


class PoliceDivision(Base):
    __tablename__ = 'police_division'

    division_id = Column(String(50), primary_key=True)
    division_name = Column(String(255), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    location = Column(String(255))
    password = Column(String(255), nullable=False)  # bcrypt hash

    drivers = relationship("Driver", back_populates="division")
    fines = relationship("Fine", back_populates="division")

    def __repr__(self):
        return f"<PoliceDivision {self.division_id} {self.division_name}>"
