"""
Pytest tests for rental_queries.py and rental_reports.py
Tests the rental analytics against a small SQLite database
"""

import os
import pytest
import pandas as pd
from datetime import date, timedelta
from database_models import Customer, Movie, Rental
from rental_queries import (
    get_customer_rental_ranking,
    get_longest_average_rental_movie,
    get_multi_month_customers,
    get_most_rented_genre,
    get_late_returns,
    get_rental_summary,
)
from rental_reports import run_reports, save_reports


def add_rentals(session, rentals):
    """rentals: list of (customer_id, movie_id, rental_date, return_date)"""
    start = session.query(Rental).count() + 1
    for rental_id, (customer_id, movie_id, rental_date, return_date) in enumerate(rentals, start=start):
        session.add(Rental(
            rental_id=rental_id,
            customer_id=customer_id,
            movie_id=movie_id,
            rental_date=rental_date,
            return_date=return_date
        ))
    session.commit()

@pytest.fixture
def extra_customer(catalog):
    """Fixture adding a fourth customer without rentals"""
    catalog.add(Customer(customer_id=4, name='Dave', email='dave@example.com', phone='555-0104'))
    catalog.commit()
    return catalog

def test_customer_ranking_orders_by_rental_count(extra_customer):
    """Test that customers are ranked by rentals, ties by customer_id, customers without rentals last"""
    session = extra_customer
    add_rentals(session, [
        (2, 1, date(2025, 1, 1), date(2025, 1, 3)),
        (2, 2, date(2025, 1, 5), None),
        (2, 3, date(2025, 1, 9), date(2025, 1, 10)),
        (3, 1, date(2025, 2, 1), None),
        (3, 2, date(2025, 2, 2), date(2025, 2, 4)),
        (1, 1, date(2025, 2, 1), date(2025, 2, 2)),
        (1, 3, date(2025, 3, 1), None),
    ])

    ranking = get_customer_rental_ranking(session)

    assert ranking['customer_id'].tolist() == [2, 1, 3, 4]
    assert ranking['rental_count'].tolist() == [3, 2, 2, 0]
    assert list(ranking.columns) == ['customer_id', 'name', 'email', 'rental_count']

def test_longest_average_rental_movie(catalog):
    """Test that the movie with the highest average duration is returned, outstanding rentals ignored"""
    add_rentals(catalog, [
        (1, 1, date(2025, 1, 1), date(2025, 1, 3)),
        (2, 1, date(2025, 1, 1), date(2025, 1, 5)),
        (3, 2, date(2025, 1, 1), date(2025, 1, 11)),
        (1, 3, date(2024, 1, 1), None),
    ])

    movie = get_longest_average_rental_movie(catalog)

    assert movie['movie_id'] == 2
    assert movie['title'] == 'Airplane!'
    assert movie['avg_rental_days'] == pytest.approx(10.0)

def test_longest_average_rental_tie_goes_to_lowest_movie_id(catalog):
    """Test that equal averages are broken by movie_id"""
    add_rentals(catalog, [
        (1, 3, date(2025, 1, 1), date(2025, 1, 5)),
        (2, 2, date(2025, 1, 1), date(2025, 1, 5)),
    ])

    assert get_longest_average_rental_movie(catalog)['movie_id'] == 2

def test_longest_average_rental_none_without_returns(catalog):
    """Test that None is returned when no rental has come back"""
    add_rentals(catalog, [(1, 1, date(2025, 1, 1), None)])

    assert get_longest_average_rental_movie(catalog) is None

def test_multi_month_customers(catalog):
    """Test that only customers renting in two distinct months of the year are returned"""
    add_rentals(catalog, [
        (1, 1, date(2025, 1, 5), date(2025, 1, 7)),
        (1, 2, date(2025, 3, 5), None),
        (2, 1, date(2025, 1, 20), date(2025, 1, 22)),
        (2, 3, date(2025, 3, 2), date(2025, 3, 4)),
        (3, 1, date(2025, 1, 3), date(2025, 1, 4)),
        (3, 2, date(2025, 1, 25), date(2025, 1, 26)),
        (3, 3, date(2024, 12, 28), date(2025, 1, 2)),
    ])

    customers = get_multi_month_customers(catalog, 2025)

    assert customers['customer_id'].tolist() == [1, 2]
    assert customers['rental_months'].tolist() == [2, 2]

def test_multi_month_customers_respects_year(catalog):
    """Test that rentals outside the target year are not counted"""
    add_rentals(catalog, [
        (1, 1, date(2024, 1, 5), None),
        (1, 2, date(2024, 3, 5), None),
    ])

    assert get_multi_month_customers(catalog, 2025).empty
    assert get_multi_month_customers(catalog, 2024)['customer_id'].tolist() == [1]

def test_multi_month_customers_min_months(catalog):
    """Test that min_months raises the distinct month threshold"""
    add_rentals(catalog, [
        (1, 1, date(2025, 1, 5), None),
        (1, 2, date(2025, 2, 5), None),
        (1, 3, date(2025, 3, 5), None),
        (2, 1, date(2025, 1, 5), None),
        (2, 2, date(2025, 2, 5), None),
    ])

    customers = get_multi_month_customers(catalog, 2025, min_months=3)

    assert customers['customer_id'].tolist() == [1]

def test_most_rented_genre(catalog):
    """Test that Action with 10 rentals beats Comedy with 7"""
    start = date(2025, 1, 1)
    add_rentals(catalog, [(1, 1, start + timedelta(days=i), None) for i in range(10)])
    add_rentals(catalog, [(2, 2, start + timedelta(days=i), None) for i in range(7)])

    genre = get_most_rented_genre(catalog)

    assert genre == {'genre': 'Action', 'rental_count': 10}

def test_most_rented_genre_tie_broken_alphabetically(catalog):
    """Test that equal counts are broken by genre name"""
    add_rentals(catalog, [
        (1, 3, date(2025, 1, 1), None),
        (1, 2, date(2025, 1, 2), None),
    ])

    assert get_most_rented_genre(catalog)['genre'] == 'Comedy'

def test_most_rented_genre_none_without_rentals(catalog):
    assert get_most_rented_genre(catalog) is None

def test_late_returns_keep_history_after_customer_delete(catalog):
    """Test that late returns are listed with customer name missing once the customer is deleted"""
    add_rentals(catalog, [
        (3, 2, date(2025, 2, 1), date(2025, 2, 20)),
        (1, 1, date(2025, 2, 1), date(2025, 2, 3)),
    ])

    late_returns = get_late_returns(catalog)
    assert len(late_returns) == 1
    assert late_returns.iloc[0]['customer_name'] == 'Carol'
    assert late_returns.iloc[0]['title'] == 'Airplane!'
    assert late_returns.iloc[0]['days_late'] == 19

    catalog.delete(catalog.get(Customer, 3))
    catalog.commit()

    late_returns = get_late_returns(catalog)
    assert len(late_returns) == 1
    assert pd.isna(late_returns.iloc[0]['customer_name'])
    assert late_returns.iloc[0]['title'] == 'Airplane!'

def test_rental_summary(catalog):
    add_rentals(catalog, [
        (1, 1, date(2025, 2, 1), date(2025, 2, 20)),
        (2, 2, date(2025, 2, 1), None),
    ])

    summary = get_rental_summary(catalog)

    assert summary == {
        'customers': 3,
        'movies': 3,
        'rentals': 2,
        'outstanding_rentals': 1,
        'late_returns': 1,
    }

def test_run_reports_and_save(catalog, tmp_path):
    """Test that every report is produced and saved as CSV"""
    add_rentals(catalog, [
        (1, 1, date(2025, 1, 5), date(2025, 1, 20)),
        (1, 2, date(2025, 3, 5), None),
    ])

    reports = run_reports(catalog, 2025)

    assert set(reports) == {
        'customer_ranking', 'longest_average_rental', 'multi_month_customers',
        'most_rented_genre', 'late_returns'
    }
    assert reports['most_rented_genre']['genre'] == 'Action'

    output_dir = tmp_path / 'reports'
    paths = save_reports(reports, str(output_dir))

    assert len(paths) == 5
    for path in paths:
        assert os.path.exists(path)
    saved_late = pd.read_csv(output_dir / 'late_returns.csv')
    assert saved_late['days_late'].tolist() == [15]
