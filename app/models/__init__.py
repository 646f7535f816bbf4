from app.models.base import Base, LicenseBase
from app.models.division import PoliceDivision
from app.models.driver import Driver, DriverVehicle, Notification
from app.models.fines import Fine
from app.models.payment import Payment
from app.models.license import LicenseInformation, VehicleInformation

__all__ = [
    "Base",
    "LicenseBase",
    "PoliceDivision",
    "Driver",
    "DriverVehicle",
    "Notification",
    "Fine",
    "Payment",
    "LicenseInformation",
    "VehicleInformation",
]
