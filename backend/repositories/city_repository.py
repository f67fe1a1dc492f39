"""City repository: list, get, count, replace."""
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from models.city import City


def list_cities(session: Session) -> list[City]:
    """Return all cached cities ordered by name."""
    result = session.execute(select(City).order_by(City.name, City.id))
    return list(result.scalars().all())


def get_city(session: Session, city_id: str) -> Optional[City]:
    """Return a city by id or None."""
    return session.get(City, city_id)


def count_cities(session: Session) -> int:
    """Return the number of cached cities."""
    result = session.execute(select(func.count()).select_from(City))
    return result.scalar() or 0


def replace_cities(session: Session, rows: list[City], *, commit: bool = True) -> None:
    """
    Delete every city and insert rows. With commit=True the delete and insert
    are committed together; on any error the session is rolled back.
    """
    try:
        session.execute(delete(City))
        session.add_all(rows)
        session.flush()
        if commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
