"""City row in the local cache."""
from sqlalchemy import Float, String
from sqlalchemy.orm import Mapped, mapped_column

from models import Base


class City(Base):
    """Cities table: id, name, image_url, latitude, longitude."""

    __tablename__ = "cities"

    # Remote document id; never generated locally.
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    image_url: Mapped[str] = mapped_column(String(2048), nullable=False, default="")
    latitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    longitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
