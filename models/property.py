"""
Listing request and response models
"""
from datetime import datetime
from typing import Annotated, List, Literal, Optional
from pydantic import Field, StringConstraints, field_validator, model_validator

from models.enums import Availability, PropertyType
from models.user import CamelModel, OwnerContact, InterestedUserContact

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Address(CamelModel):
    street: NonEmptyStr
    city: NonEmptyStr
    region: NonEmptyStr
    postal_code: Optional[str] = None
    country: Optional[str] = None


class Location(CamelModel):
    """GeoJSON point, coordinates are [longitude, latitude]."""
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(min_length=2, max_length=2)

    @field_validator("coordinates")
    @classmethod
    def check_ranges(cls, value: List[float]) -> List[float]:
        lng, lat = value
        if not -180.0 <= lng <= 180.0:
            raise ValueError("Longitude must be between -180 and 180")
        if not -90.0 <= lat <= 90.0:
            raise ValueError("Latitude must be between -90 and 90")
        return value


class PropertyCreate(CamelModel):
    title: NonEmptyStr
    description: NonEmptyStr
    house_number: NonEmptyStr
    address: Address
    location: Location
    rent_price: float = Field(ge=0)
    property_type: PropertyType
    bedrooms: int = Field(ge=0)
    bathrooms: float = Field(ge=0)
    photos: List[str] = Field(default_factory=list)
    videos: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    availability: Availability = Availability.AVAILABLE

    def to_columns(self) -> dict:
        """Flatten into Property column values."""
        data = self.model_dump(exclude={"address", "location"})
        data.update(address_columns(self.address))
        data.update(location_columns(self.location))
        data["property_type"] = self.property_type.value
        data["availability"] = self.availability.value
        return data


class PropertyUpdate(CamelModel):
    """Partial update; owner and interest list are not part of the payload."""
    title: Optional[NonEmptyStr] = None
    description: Optional[NonEmptyStr] = None
    house_number: Optional[NonEmptyStr] = None
    address: Optional[Address] = None
    location: Optional[Location] = None
    rent_price: Optional[float] = Field(default=None, ge=0)
    property_type: Optional[PropertyType] = None
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[float] = Field(default=None, ge=0)
    photos: Optional[List[str]] = None
    videos: Optional[List[str]] = None
    amenities: Optional[List[str]] = None
    availability: Optional[Availability] = None

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        nulls = [name for name in self.model_fields_set if getattr(self, name) is None]
        if nulls:
            raise ValueError(f"Fields cannot be null: {', '.join(sorted(nulls))}")
        return self

    def to_columns(self) -> dict:
        data = self.model_dump(exclude_unset=True, exclude={"address", "location"})
        if self.address is not None:
            data.update(address_columns(self.address))
        if self.location is not None:
            data.update(location_columns(self.location))
        if self.property_type is not None:
            data["property_type"] = self.property_type.value
        if self.availability is not None:
            data["availability"] = self.availability.value
        return data


def address_columns(address: Address) -> dict:
    return {
        "street": address.street,
        "city": address.city,
        "region": address.region,
        "postal_code": address.postal_code,
        "country": address.country,
    }


def location_columns(location: Location) -> dict:
    lng, lat = location.coordinates
    return {"longitude": lng, "latitude": lat}


class PropertyFilters(CamelModel):
    property_type: Optional[PropertyType] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    bedrooms: Optional[int] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    radius: float = Field(default=10.0, gt=0)

    @property
    def is_geo(self) -> bool:
        return self.lat is not None and self.lng is not None


class InterestOut(CamelModel):
    user: InterestedUserContact
    applied_at: datetime


class PropertyOut(CamelModel):
    id: int
    owner: OwnerContact
    title: str
    description: str
    house_number: str
    address: Address
    location: Location
    rent_price: float
    photos: List[str]
    videos: List[str]
    amenities: List[str]
    property_type: PropertyType
    bedrooms: int
    bathrooms: float
    availability: Availability
    created_at: datetime
    updated_at: datetime
    interested_users: Optional[List[InterestOut]] = None
    distance_km: Optional[float] = None

    @classmethod
    def from_row(cls, prop, with_interests: bool = False, distance_km: Optional[float] = None) -> "PropertyOut":
        interested = None
        if with_interests:
            interested = [
                InterestOut(
                    user=InterestedUserContact.model_validate(interest.user),
                    applied_at=interest.applied_at,
                )
                for interest in prop.interests
            ]
        return cls(
            id=prop.id,
            owner=OwnerContact.model_validate(prop.owner),
            title=prop.title,
            description=prop.description,
            house_number=prop.house_number,
            address=Address(
                street=prop.street,
                city=prop.city,
                region=prop.region,
                postal_code=prop.postal_code,
                country=prop.country,
            ),
            location=Location(coordinates=[prop.longitude, prop.latitude]),
            rent_price=prop.rent_price,
            photos=prop.photos or [],
            videos=prop.videos or [],
            amenities=prop.amenities or [],
            property_type=prop.property_type,
            bedrooms=prop.bedrooms,
            bathrooms=prop.bathrooms,
            availability=prop.availability,
            created_at=prop.created_at,
            updated_at=prop.updated_at,
            interested_users=interested,
            distance_km=distance_km,
        )

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
