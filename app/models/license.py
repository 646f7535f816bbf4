from sqlalchemy import Column, Date, Integer, String
from app.models.base import LicenseBase


class LicenseInformation(LicenseBase):
    __tablename__ = 'information'

    license_number = Column(String(50), primary_key=True)
    nic = Column(String(50), nullable=False)
    surname = Column(String(100))
    first_name = Column(String(100))
    middle_name = Column(String(100))
    last_name = Column(String(100))
    date_of_birth = Column(Date)
    date_of_issue = Column(Date)
    date_of_expiry = Column(Date)
    # Column name as it exists in the registry schema
    permenant_residence_address = Column(String(255))
    email = Column(String(255))
    mobile_number = Column(String(20))
    profile_picture = Column(String(255))

    def __repr__(self):
        return f"<LicenseInformation {self.license_number}>"


class VehicleInformation(LicenseBase):
    __tablename__ = 'vehicles_information'

    id = Column(Integer, primary_key=True)
    license_number = Column(String(50), nullable=False)
    vehicle_category = Column(String(20))
    date_of_issue = Column(Date)
    date_of_expiry = Column(Date)

    def __repr__(self):
        return f"<VehicleInformation {self.vehicle_category} for {self.license_number}>"
