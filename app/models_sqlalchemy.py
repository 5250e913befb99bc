from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, func
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)  # bcrypt hash
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    avatar = Column(Text, nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)

    properties = relationship("Property", back_populates="owner")
    bookings = relationship("Booking", back_populates="guest")

class Property(Base):
    __tablename__ = "properties"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    street = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    zipcode = Column(String(20), nullable=False)
    latitude = Column(String(32), nullable=False)
    longitude = Column(String(32), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Integer, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    archived = Column(Boolean, nullable=False, default=False)

    owner = relationship("User", back_populates="properties")
    images = relationship("Image", back_populates="property", order_by="Image.image_key")
    bookings = relationship("Booking", back_populates="property")

class Image(Base):
    __tablename__ = "images"
    id = Column(Integer, primary_key=True, index=True)
    image_key = Column(String(255), nullable=False, unique=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    is_cover_image = Column(Boolean, nullable=False, default=False)

    property = relationship("Property", back_populates="images")

class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_bookings_date_order"),
    )
    id = Column(Integer, primary_key=True, index=True)
    # naive UTC timestamps
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False)
    guest_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    property = relationship("Property", back_populates="bookings")
    guest = relationship("User", back_populates="bookings")

class Message(Base):
    __tablename__ = "messages"
    id = Column(Integer, primary_key=True, index=True)
    from_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    to_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    body = Column(Text, nullable=False)
    sent_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    read_at = Column(DateTime, nullable=True)

    from_user = relationship("User", foreign_keys=[from_id])
    to_user = relationship("User", foreign_keys=[to_id])

Index("ix_bookings_property_dates", Booking.property_id, Booking.start_date, Booking.end_date)
