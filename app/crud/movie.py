from sqlalchemy import update
from sqlalchemy.orm import Session
from ..crud.base import CRUDBase
from ..models.movie import Movie
from ..schemas.movie import MovieCreate


class CRUDMovie(CRUDBase[Movie, MovieCreate]):
    def increment_view_count(self, db: Session, *, id: int) -> None:
        """
        Bump view_count in a single UPDATE so concurrent streams of the
        same title never lose an increment.
        """
        db.execute(
            update(Movie)
            .where(Movie.id == id)
            .values(view_count=Movie.view_count + 1)
        )
        db.commit()

    def get_view_count(self, db: Session, *, id: int) -> int:
        count = db.query(Movie.view_count).filter(Movie.id == id).scalar()
        return count or 0


movie = CRUDMovie(Movie)
