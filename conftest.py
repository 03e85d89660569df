"""Shared pytest fixtures - a fresh SQLite database per test"""

import pytest

from database_models import Customer, Movie, create_database, get_session


@pytest.fixture
def engine(tmp_path):
    return create_database(f"sqlite:///{tmp_path / 'test_movie_rentals.db'}")


@pytest.fixture
def session(engine):
    session = get_session(engine)
    yield session
    session.close()


@pytest.fixture
def catalog(session):
    """Fixture providing three customers and three movies"""
    session.add_all([
        Customer(customer_id=1, name='Alice', email='alice@example.com', phone='555-0101'),
        Customer(customer_id=2, name='Bob', email='bob@example.com', phone='555-0102'),
        Customer(customer_id=3, name='Carol', email='carol@example.com', phone='555-0103'),
        Movie(movie_id=1, title='Heat', genre='Action', release_year=1995),
        Movie(movie_id=2, title='Airplane!', genre='Comedy', release_year=1980),
        Movie(movie_id=3, title='Alien', genre='Sci-Fi', release_year=1979),
    ])
    session.commit()
    return session
