from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from app.models.base import Base, TimestampMixin


class Driver(Base):
    __tablename__ = 'driver'

    driver_id = Column(Integer, primary_key=True, autoincrement=True)
    license_number = Column(String(50), nullable=False, unique=True)
    nic_number = Column(String(50), nullable=False, unique=True)
    division_id = Column(String(50), ForeignKey('police_division.division_id'), nullable=False)

    # Identity copied from the license registry at signup
    surname = Column(String(100), nullable=False)
    firstname = Column(String(100), nullable=False)
    middle_name = Column(String(100), default="")
    last_name = Column(String(100), default="")
    date_of_birth = Column(Date, nullable=False)
    date_of_issue = Column(Date)
    date_of_expiry = Column(Date)
    address = Column(String(255))
    email = Column(String(255))
    mobile_number = Column(String(20))

    # Account
    username = Column(String(100), nullable=False, unique=True)
    password = Column(String(255), nullable=False)  # bcrypt hash

    # Generated artifacts
    qr_code = Column(String(255))
    profile_picture = Column(String(255))

    division = relationship("PoliceDivision", back_populates="drivers")
    vehicles = relationship("DriverVehicle", back_populates="driver")
    fines = relationship("Fine", back_populates="driver")

    def __repr__(self):
        return f"<Driver {self.username} ({self.license_number})>"


class DriverVehicle(Base):
    __tablename__ = 'driver_vehicles'

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey('driver.driver_id'), nullable=False)
    vehicle_category = Column(String(20), nullable=False)
    vehicle_issue_date = Column(Date, nullable=False)
    vehicle_expiry_date = Column(Date, nullable=False)

    driver = relationship("Driver", back_populates="vehicles")

    def __repr__(self):
        return f"<DriverVehicle {self.vehicle_category} for Driver {self.driver_id}>"


class Notification(Base, TimestampMixin):
    __tablename__ = 'notifications'

    notification_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('driver.driver_id'), nullable=False)
    title = Column(String(255))
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False)

    def __repr__(self):
        return f"<Notification {self.notification_id} for Driver {self.user_id}>"
