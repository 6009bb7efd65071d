from sqlalchemy import Column, DateTime, Float, String, Text
from sqlalchemy.sql import func
from walktrack.db import Base


class Preference(Base):
    """One opaque key-value entry.

    A key holds either a string blob (e.g. the serialized history) or a
    number (e.g. the body weight); the unused column stays NULL.
    """

    __tablename__ = "preferences"

    key = Column(String(64), primary_key=True)

    text_value = Column(Text, nullable=True)
    number_value = Column(Float, nullable=True)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
