"""
Twilio Voice Models
Audit log of completion calls placed through Twilio
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class TwilioCallLog(Base):
    """Track voice calls placed via Twilio"""

    __tablename__ = "twilio_call_logs"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)

    # Call details
    to_phone = Column(String(20), nullable=False)
    call_type = Column(String(50), nullable=False, default="booking_completion")

    # Twilio response
    twilio_call_sid = Column(String(255), nullable=True)
    status = Column(String(50), nullable=False)  # initiated, failed
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    booking = relationship("Booking")
    user = relationship("User")
