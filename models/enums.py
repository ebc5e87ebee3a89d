"""
Enumerated values shared by the ORM layer and the request/response models
"""
from enum import Enum


class Role(str, Enum):
    STUDENT = "student"
    GOVERNMENT_WORKER = "government_worker"
    FAMILY = "family"
    LANDLORD = "landlord"


# Roles allowed to express interest in a listing
RENTER_ROLES = (Role.STUDENT, Role.GOVERNMENT_WORKER, Role.FAMILY)


class SubscriptionStatus(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    EXPIRED = "expired"


class SubscriptionType(str, Enum):
    FIRST_TIME = "first_time"
    MONTHLY_RENEWAL = "monthly_renewal"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PropertyType(str, Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    ROOM = "room"
    STUDIO = "studio"


class Availability(str, Enum):
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
