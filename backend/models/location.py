"""Location (point of interest) row in the local cache."""
from sqlalchemy import Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models import Base


class Location(Base):
    """Locations table, scoped to a parent city by city_id."""

    __tablename__ = "locations"

    # Remote ids are only unique inside their parent city.
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    # No FK constraint: replacing the cities scope must not touch location scopes.
    city_id: Mapped[str] = mapped_column(String(255), primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    # Escaped ";"-joined list, see cache_sync.documents.join_categories.
    categories: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_url: Mapped[str] = mapped_column(String(2048), nullable=False, default="")
    address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    longitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    # Seed review written together with the location when it was created.
    initial_review: Mapped[str | None] = mapped_column(Text, nullable=True)
    initial_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    initial_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    initial_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
