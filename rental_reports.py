"""
Movie Rentals Reports
Runs the rental analytics against the database and prints them, optionally saving each report as CSV.

Run:
    python rental_reports.py --year 2025 --output-dir reports
"""

import argparse
import logging
import os

import pandas as pd

from config import Config
from database_models import create_database, get_session
from rental_queries import (
    get_customer_rental_ranking,
    get_longest_average_rental_movie,
    get_multi_month_customers,
    get_most_rented_genre,
    get_late_returns,
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(Config.LOG_FILE),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description='Movie Rentals Reports')
    parser.add_argument(
        '--db-url',
        default=Config.DATABASE_URL,
        help=f'SQLAlchemy database URL (default: {Config.DATABASE_URL})'
    )
    parser.add_argument(
        '--year',
        type=int,
        default=Config.REPORT_YEAR,
        help=f'Year for the multi-month customer report (default: {Config.REPORT_YEAR})'
    )
    parser.add_argument(
        '--min-months',
        type=int,
        default=2,
        help='Distinct months a customer must rent in to be reported (default: 2)'
    )
    parser.add_argument(
        '--output-dir',
        default=None,
        help='Directory to save each report as CSV (default: print only)'
    )
    return parser.parse_args(argv)


def run_reports(session, year, min_months=2):
    return {
        'customer_ranking': get_customer_rental_ranking(session),
        'longest_average_rental': get_longest_average_rental_movie(session),
        'multi_month_customers': get_multi_month_customers(session, year, min_months),
        'most_rented_genre': get_most_rented_genre(session),
        'late_returns': get_late_returns(session),
    }


def save_reports(reports, output_dir):
    """Write every report to <output_dir>/<name>.csv, single-row reports as a one-line table"""
    os.makedirs(output_dir, exist_ok=True)
    paths = []
    for name, report in reports.items():
        if report is None:
            report = pd.DataFrame()
        elif isinstance(report, dict):
            report = pd.DataFrame([report])
        path = os.path.join(output_dir, f'{name}.csv')
        report.to_csv(path, index=False)
        logger.info(f"Report saved: {path} ({len(report)} records)")
        paths.append(path)
    return paths


def print_reports(reports, year):
    print("\nCustomers by number of rentals:")
    print(reports['customer_ranking'].to_string(index=False))

    movie = reports['longest_average_rental']
    if movie is None:
        print("\nNo returned rentals found to compute average rental duration.")
    else:
        print(f"\nLongest average rental: {movie['title']} ({movie['avg_rental_days']:.2f} days)")

    customers = reports['multi_month_customers']
    print(f"\nCustomers renting in multiple months of {year}:")
    if customers.empty:
        print("  none")
    else:
        print(customers.to_string(index=False))

    genre = reports['most_rented_genre']
    if genre is None:
        print("\nNo rentals found to rank genres.")
    else:
        print(f"\nMost rented genre: {genre['genre']} ({genre['rental_count']} rentals)")

    late_returns = reports['late_returns']
    print(f"\nLate returns ({len(late_returns)}):")
    if not late_returns.empty:
        print(late_returns.to_string(index=False))


def main(argv=None):
    args = parse_arguments(argv)

    engine = create_database(args.db_url)
    session = get_session(engine)
    try:
        reports = run_reports(session, args.year, args.min_months)
    finally:
        session.close()

    print_reports(reports, args.year)
    if args.output_dir:
        save_reports(reports, args.output_dir)


if __name__ == "__main__":
    main()
