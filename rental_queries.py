"""
Movie Rentals Reporting Queries
Read-only aggregations over customers, movies, rentals and the late return log.
Table-shaped results come back as pandas DataFrames, single-answer queries as a dict (or None).
"""

import logging

import pandas as pd
from sqlalchemy import select, func, extract, distinct

from database_models import Customer, Movie, Rental, LateReturnLog

logger = logging.getLogger(__name__)


def _to_dataframe(result):
    return pd.DataFrame(result.fetchall(), columns=list(result.keys()))


def rental_days_expression(session):
    """number of days between checkout and return, in the dialect of the session's database"""
    if session.get_bind().dialect.name == 'sqlite':
        return func.julianday(Rental.return_date) - func.julianday(Rental.rental_date)
    return Rental.return_date - Rental.rental_date


def get_customer_rental_ranking(session):
    """
    Rank customers by how many rentals they have made, returned or still out.
    Customers without rentals are listed with a count of 0.
    Ties are ordered by customer_id.
    """
    rental_count = func.count(Rental.rental_id).label('rental_count')
    stmt = (
        select(Customer.customer_id, Customer.name, Customer.email, rental_count)
        .outerjoin(Rental, Rental.customer_id == Customer.customer_id)
        .group_by(Customer.customer_id, Customer.name, Customer.email)
        .order_by(rental_count.desc(), Customer.customer_id)
    )
    ranking = _to_dataframe(session.execute(stmt))
    logger.info(f"Customer rental ranking: {len(ranking)} customers")
    return ranking


def get_longest_average_rental_movie(session):
    """
    Return the movie with the highest average rental duration (returned rentals only).
    Ties go to the lowest movie_id. None when nothing has been returned yet.
    """
    avg_days = func.avg(rental_days_expression(session)).label('avg_rental_days')
    stmt = (
        select(Movie.movie_id, Movie.title, avg_days)
        .join(Rental, Rental.movie_id == Movie.movie_id)
        .where(Rental.return_date.isnot(None))
        .group_by(Movie.movie_id, Movie.title)
        .order_by(avg_days.desc(), Movie.movie_id)
        .limit(1)
    )
    row = session.execute(stmt).mappings().first()
    if row is None:
        logger.info("No returned rentals - no average rental duration available")
        return None

    return {
        'movie_id': row['movie_id'],
        'title': row['title'],
        'avg_rental_days': float(row['avg_rental_days']),
    }


def get_multi_month_customers(session, year, min_months=2):
    """
    Customers whose rentals in `year` fall in at least `min_months` distinct calendar months.
    """
    rental_month = extract('month', Rental.rental_date)
    month_count = func.count(distinct(rental_month))
    stmt = (
        select(Customer.customer_id, Customer.name, month_count.label('rental_months'))
        .join(Rental, Rental.customer_id == Customer.customer_id)
        .where(extract('year', Rental.rental_date) == year)
        .group_by(Customer.customer_id, Customer.name)
        .having(month_count >= min_months)
        .order_by(Customer.customer_id)
    )
    customers = _to_dataframe(session.execute(stmt))
    logger.info(f"Found {len(customers)} customers renting in {min_months}+ months of {year}")
    return customers


def get_most_rented_genre(session):
    """Return the genre with the most rentals, ties broken alphabetically. None when there are no rentals."""
    rental_count = func.count(Rental.rental_id).label('rental_count')
    stmt = (
        select(Movie.genre, rental_count)
        .join(Rental, Rental.movie_id == Movie.movie_id)
        .where(Movie.genre.isnot(None))
        .group_by(Movie.genre)
        .order_by(rental_count.desc(), Movie.genre)
        .limit(1)
    )
    row = session.execute(stmt).mappings().first()
    if row is None:
        return None
    return {'genre': row['genre'], 'rental_count': row['rental_count']}


def get_late_returns(session):
    # outer joins - customer/movie may have been deleted (references set to NULL)
    stmt = (
        select(
            LateReturnLog.log_id,
            LateReturnLog.rental_id,
            LateReturnLog.customer_id,
            Customer.name.label('customer_name'),
            LateReturnLog.movie_id,
            Movie.title,
            LateReturnLog.days_late,
            LateReturnLog.created_at,
        )
        .select_from(LateReturnLog)
        .outerjoin(Customer, Customer.customer_id == LateReturnLog.customer_id)
        .outerjoin(Movie, Movie.movie_id == LateReturnLog.movie_id)
        .order_by(LateReturnLog.created_at.desc(), LateReturnLog.log_id.desc())
    )
    return _to_dataframe(session.execute(stmt))


def get_rental_summary(session):
    summary = {
        'customers': session.scalar(select(func.count()).select_from(Customer)),
        'movies': session.scalar(select(func.count()).select_from(Movie)),
        'rentals': session.scalar(select(func.count()).select_from(Rental)),
        'outstanding_rentals': session.scalar(
            select(func.count()).select_from(Rental).where(Rental.return_date.is_(None))
        ),
        'late_returns': session.scalar(select(func.count()).select_from(LateReturnLog)),
    }
    logger.debug(f"Rental summary: {summary}")
    return summary
