"""Location repository: list by city, count, replace per city or wholesale."""
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from models.location import Location


def list_locations_for_city(session: Session, city_id: str) -> list[Location]:
    """Return the cached locations of one city ordered by name."""
    result = session.execute(
        select(Location).where(Location.city_id == city_id).order_by(Location.name, Location.id)
    )
    return list(result.scalars().all())


def count_locations(session: Session, city_id: str | None = None) -> int:
    """Return the number of cached locations, optionally for one city."""
    stmt = select(func.count()).select_from(Location)
    if city_id is not None:
        stmt = stmt.where(Location.city_id == city_id)
    return session.execute(stmt).scalar() or 0


def replace_locations_for_city(session: Session, city_id: str, rows: list[Location], *, commit: bool = True) -> None:
    """Delete the locations of city_id and insert rows in one transaction. Other cities are untouched."""
    if any(row.city_id != city_id for row in rows):
        raise ValueError(f"All rows must belong to city {city_id!r}")
    try:
        session.execute(delete(Location).where(Location.city_id == city_id))
        session.add_all(rows)
        session.flush()
        if commit:
            session.commit()
    except Exception:
        session.rollback()
        raise


def replace_all_locations(session: Session, rows: list[Location], *, commit: bool = True) -> None:
    """Delete every location and insert rows in one transaction."""
    try:
        session.execute(delete(Location))
        session.add_all(rows)
        session.flush()
        if commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
