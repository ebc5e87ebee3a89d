from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    Float,
    Text,
    JSON,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base
from models.enums import SubscriptionStatus, PaymentStatus, Availability


class User(Base):
    """
    Account for every role. Subscription fields are only written by the
    subscription workflow.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(40), nullable=False)
    role = Column(String(32), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    subscription_status = Column(String(16), default=SubscriptionStatus.INACTIVE.value, nullable=False)
    subscription_expiry_date = Column(DateTime, nullable=True)
    first_time_payment = Column(Boolean, default=True, nullable=False)
    id_proof_document = Column(String(500), nullable=True)
    profile_image = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    properties = relationship("Property", back_populates="owner")
    payments = relationship("Payment", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class Property(Base):
    """Rental listing owned by a landlord."""
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    house_number = Column(String(40), nullable=False)
    street = Column(String(200), nullable=False)
    city = Column(String(120), nullable=False, index=True)
    region = Column(String(120), nullable=False)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(80), nullable=True)
    longitude = Column(Float, nullable=False)
    latitude = Column(Float, nullable=False)
    rent_price = Column(Float, nullable=False, index=True)
    photos = Column(JSON, default=list, nullable=False)
    videos = Column(JSON, default=list, nullable=False)
    amenities = Column(JSON, default=list, nullable=False)
    property_type = Column(String(16), nullable=False)
    bedrooms = Column(Integer, nullable=False)
    bathrooms = Column(Float, nullable=False)
    availability = Column(String(16), default=Availability.AVAILABLE.value, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    owner = relationship("User", back_populates="properties")
    interests = relationship(
        "PropertyInterest",
        back_populates="property",
        cascade="all, delete-orphan",
        order_by="PropertyInterest.applied_at",
    )

    def __repr__(self):
        return f"<Property(id={self.id}, owner_id={self.owner_id}, title='{self.title}')>"


class PropertyInterest(Base):
    """One row per (listing, user) pair that expressed interest."""
    __tablename__ = "property_interests"
    __table_args__ = (
        UniqueConstraint("property_id", "user_id", name="uq_property_interest_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    applied_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    property = relationship("Property", back_populates="interests")
    user = relationship("User")


class Payment(Base):
    """
    Ledger entry for one payment attempt. Only the status changes after
    the row is written.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(8), default="USD", nullable=False)
    subscription_type = Column(String(32), nullable=False)
    stripe_payment_intent_id = Column(String(255), nullable=False, index=True)
    status = Column(String(16), default=PaymentStatus.PENDING.value, nullable=False)
    period_start = Column(DateTime, nullable=True)
    period_end = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="payments")

    def __repr__(self):
        return f"<Payment(id={self.id}, user_id={self.user_id}, status='{self.status}')>"
