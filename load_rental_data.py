"""
Movie Rentals Data Loading & Validation Script
Phase 1: Clean and validate customer, movie and rental CSV files - using argparse for input paths
Phase 2: Save cleaned data to the database using SQLAlchemy (late returns are logged by the database trigger)
"""

import pandas as pd
import numpy as np
import argparse
import logging
from database_models import Customer, Movie, Rental, LateReturnLog, create_database, get_session
from config import Config, RENTAL_WINDOW_DAYS

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(Config.LOG_FILE),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

DATE_FORMAT = '%Y-%m-%d'

def parse_arguments():
    parser = argparse.ArgumentParser(
        description='Movie Rentals Data Loading & Validation Script'
    )

    parser.add_argument(
        '--customers-input',
        default='customers.csv',
        help='Path to customers CSV file (default: customers.csv)'
    )

    parser.add_argument(
        '--movies-input',
        default='movies.csv',
        help='Path to movies CSV file (default: movies.csv)'
    )

    parser.add_argument(
        '--rentals-input',
        default='rentals.csv',
        help='Path to rentals CSV file (default: rentals.csv)'
    )

    parser.add_argument(
        '--db-url',
        default=Config.DATABASE_URL,
        help=f'SQLAlchemy database URL (default: {Config.DATABASE_URL})'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Validate and clean the data without writing to the database'
    )

    return parser.parse_args()

def load_data(customers_path, movies_path, rentals_path):

    # phone numbers keep their leading zeros
    customers_df = pd.read_csv(customers_path, dtype={'phone': str, 'email': str, 'name': str})
    movies_df = pd.read_csv(movies_path)
    rentals_df = pd.read_csv(rentals_path, dtype={'rental_date': str, 'return_date': str})

    return customers_df, movies_df, rentals_df

def _blank_to_nan(df):
    return df.replace(r'^\s*$', np.nan, regex=True)

def analyse_data_quality(customers_df, movies_df, rentals_df):

    issues = []

    logger.info("Starting data quality analysis")
    logger.info(f"Customers data: Total rows: {len(customers_df)}")
    for column in ['customer_id', 'name', 'email', 'phone']:
        logger.warning(f"Customers - Rows with NaN in {column}: {customers_df[column].isna().sum()}")

    for column in ['email', 'phone']:
        values = customers_df[column].dropna().astype(str).str.strip()
        if column == 'email':
            values = values.str.lower()
        duplicates = sorted(set(values[values.duplicated()]))
        if duplicates:
            logger.error(f"Uniqueness issue - duplicate {column} values in customers: {duplicates}")
            issues.append((f'duplicate_{column}', duplicates))

    logger.info(f"Movies data: Total rows: {len(movies_df)}")
    logger.warning(f"Movies - Rows with NaN in movie_id: {movies_df['movie_id'].isna().sum()}")
    logger.warning(f"Movies - Rows with NaN in title: {movies_df['title'].isna().sum()}")

    logger.info(f"Rentals data: Total rows: {len(rentals_df)}")
    logger.warning(f"Rentals - Rows with NaN in rental_date: {rentals_df['rental_date'].isna().sum()}")
    logger.info(f"Rentals - Outstanding (no return_date): {rentals_df['return_date'].isna().sum()}")

    # check for invalid dates
    rental_dates = pd.to_datetime(rentals_df['rental_date'], format=DATE_FORMAT, errors='coerce')
    return_dates = pd.to_datetime(rentals_df['return_date'], format=DATE_FORMAT, errors='coerce')
    for column, parsed in [('rental_date', rental_dates), ('return_date', return_dates)]:
        unparsed = rentals_df[column].notna() & parsed.isna()
        for idx in rentals_df.index[unparsed]:
            value = rentals_df.at[idx, column]
            issues.append((idx, value, f'unparseable {column}'))
            logger.error(f"Invalid date found - Row {idx}: {value} ({column} is not {DATE_FORMAT})")

    returned_early = return_dates < rental_dates
    for idx in rentals_df.index[returned_early]:
        issues.append((idx, rentals_df.at[idx, 'return_date'], 'returned before rental'))
        logger.error(f"Invalid date found - Row {idx}: returned {rentals_df.at[idx, 'return_date']} "
                     f"before rental on {rentals_df.at[idx, 'rental_date']}")

    # referential integrity
    for column, reference_df, label in [('customer_id', customers_df, 'customers'), ('movie_id', movies_df, 'movies')]:
        rental_ids = set(pd.to_numeric(rentals_df[column], errors='coerce').dropna().astype(int).unique())
        known_ids = set(pd.to_numeric(reference_df[column], errors='coerce').dropna().astype(int).unique())
        missing = rental_ids - known_ids
        if missing:
            logger.error(f"Referential integrity issue - {column} values in rentals but not in {label} table: {sorted(missing)}")
            issues.append(('referential_integrity', column, missing))
        else:
            logger.info(f"All {column} references are valid!")

    logger.info(f"Data quality analysis complete. Total issues found: {len(issues)}")
    return issues

def clean_customers_data(customers_df):

    logger.info("Starting customers data cleaning")

    customers_df = _blank_to_nan(customers_df)

    # remove completely empty rows
    original_count = len(customers_df)
    customers_df = customers_df.dropna(how='all')
    removed = original_count - len(customers_df)
    if removed > 0:
        logger.info(f"Removed {removed} completely empty rows from customers data")

    # remove rows missing any required field
    before_nan_removal = len(customers_df)
    customers_df = customers_df.dropna(subset=['customer_id', 'name', 'email', 'phone']).copy()
    removed_nan = before_nan_removal - len(customers_df)
    if removed_nan > 0:
        logger.info(f"Removed {removed_nan} rows with missing customer_id, name, email or phone")

    customers_df['name'] = customers_df['name'].astype(str).str.strip()
    customers_df['email'] = customers_df['email'].astype(str).str.strip().str.lower()
    customers_df['phone'] = customers_df['phone'].astype(str).str.strip()
    customers_df['customer_id'] = customers_df['customer_id'].astype(int)

    # email, phone and id must be unique - keep the first occurrence
    for column in ['customer_id', 'email', 'phone']:
        duplicated = customers_df.duplicated(subset=[column], keep='first')
        if duplicated.any():
            for _, row in customers_df[duplicated].iterrows():
                logger.warning(f"Removed duplicate {column} for customer {row['customer_id']}: {row[column]}")
            customers_df = customers_df[~duplicated]

    customers_df = customers_df.sort_values('customer_id').reset_index(drop=True)
    logger.info(f"Customers cleaning complete. {len(customers_df)} valid customer records")

    return customers_df

def clean_movies_data(movies_df):

    logger.info("Starting movies data cleaning")

    movies_df = _blank_to_nan(movies_df)

    original_count = len(movies_df)
    movies_df = movies_df.dropna(how='all')
    removed = original_count - len(movies_df)
    if removed > 0:
        logger.info(f"Removed {removed} completely empty rows from movies data")

    before_nan_removal = len(movies_df)
    movies_df = movies_df.dropna(subset=['movie_id', 'title']).copy()
    removed_nan = before_nan_removal - len(movies_df)
    if removed_nan > 0:
        logger.info(f"Removed {removed_nan} rows with missing movie_id or title")

    movies_df['movie_id'] = movies_df['movie_id'].astype(int)
    movies_df['title'] = movies_df['title'].astype(str).str.strip()
    movies_df['genre'] = movies_df['genre'].where(movies_df['genre'].isna(), movies_df['genre'].astype(str).str.strip())
    movies_df['release_year'] = pd.to_numeric(movies_df['release_year'], errors='coerce').astype('Int64')

    duplicated = movies_df.duplicated(subset=['movie_id'], keep='first')
    if duplicated.any():
        logger.warning(f"Removed {duplicated.sum()} duplicate movie_id rows")
        movies_df = movies_df[~duplicated]

    movies_df = movies_df.sort_values('movie_id').reset_index(drop=True)
    logger.info(f"Movies cleaning complete. {len(movies_df)} valid movie records")

    return movies_df

def clean_rentals_data(rentals_df, customers_df, movies_df, rental_window=RENTAL_WINDOW_DAYS):

    logger.info(f"Starting rentals data cleaning (rental window: {rental_window} days)")

    rentals_df = _blank_to_nan(rentals_df)

    original_count = len(rentals_df)
    rentals_df = rentals_df.dropna(how='all')
    removed = original_count - len(rentals_df)
    if removed > 0:
        logger.info(f"Removed {removed} completely empty rows from rentals data")

    rentals_df = rentals_df.dropna(subset=['rental_id']).copy()
    rentals_df['rental_id'] = rentals_df['rental_id'].astype(int)

    rentals_df['rental_date'] = pd.to_datetime(rentals_df['rental_date'], format=DATE_FORMAT, errors='coerce')
    before_date_removal = len(rentals_df)
    rentals_df = rentals_df.dropna(subset=['rental_date']).copy()
    removed_dates = before_date_removal - len(rentals_df)
    if removed_dates > 0:
        logger.info(f"Removed {removed_dates} rows with missing or unparseable rental_date")

    raw_returns = rentals_df['return_date']
    rentals_df['return_date'] = pd.to_datetime(raw_returns, format=DATE_FORMAT, errors='coerce')
    unparsed_return = (raw_returns.notna() & rentals_df['return_date'].isna()).sum()
    if unparsed_return > 0:
        logger.warning(f"{unparsed_return} return dates could not be parsed - treated as not returned")

    returned_early = rentals_df['return_date'] < rentals_df['rental_date']
    for _, row in rentals_df[returned_early].iterrows():
        logger.warning(f"Cleared return_date before rental_date in rental {row['rental_id']}: "
                       f"{row['return_date'].date()} < {row['rental_date'].date()}")
    rentals_df.loc[returned_early, 'return_date'] = pd.NaT

    # unknown references are nulled, the same thing the schema does when a customer/movie is deleted
    for column, reference_df in [('customer_id', customers_df), ('movie_id', movies_df)]:
        rentals_df[column] = pd.to_numeric(rentals_df[column], errors='coerce').astype('Int64')
        unknown = rentals_df[column].notna() & ~rentals_df[column].isin(reference_df[column])
        if unknown.any():
            unknown_ids = sorted({int(x) for x in rentals_df.loc[unknown, column]})
            logger.warning(f"Cleared {unknown.sum()} unknown {column} references: {unknown_ids}")
            rentals_df.loc[unknown, column] = pd.NA

    duplicated = rentals_df.duplicated(subset=['rental_id'], keep='first')
    if duplicated.any():
        logger.warning(f"Removed {duplicated.sum()} duplicate rental_id rows")
        rentals_df = rentals_df[~duplicated].copy()

    rentals_df['rental_days'] = (rentals_df['return_date'] - rentals_df['rental_date']).dt.days
    rentals_df['is_late'] = rentals_df['rental_days'] > rental_window

    late_count = rentals_df['is_late'].sum()
    logger.info(f"Rentals cleaning complete. Found {late_count} late returns out of {len(rentals_df)} records")

    return rentals_df.reset_index(drop=True)

def _optional_int(value):
    return int(value) if pd.notna(value) else None

def save_to_database(customers_df, movies_df, rentals_df, db_url=Config.DATABASE_URL):
    """saves cleaned data to the database using SQLAlchemy, returns the number of late returns logged"""

    logger.info(f"Starting database save to {db_url}")

    engine = create_database(db_url)
    session = get_session(engine)

    try:
        # delete existing data
        deleted_logs = session.query(LateReturnLog).delete()
        deleted_rentals = session.query(Rental).delete()
        deleted_customers = session.query(Customer).delete()
        deleted_movies = session.query(Movie).delete()
        logger.info(f"Cleared existing data: {deleted_customers} customers, {deleted_movies} movies, "
                    f"{deleted_rentals} rentals, {deleted_logs} late return log entries")

        for _, row in customers_df.iterrows():
            customer = Customer(
                customer_id=int(row['customer_id']),
                name=row['name'],
                email=row['email'],
                phone=row['phone']
            )
            session.add(customer)

        for _, row in movies_df.iterrows():
            movie = Movie(
                movie_id=int(row['movie_id']),
                title=row['title'],
                genre=row['genre'] if pd.notna(row['genre']) else None,
                release_year=_optional_int(row['release_year'])
            )
            session.add(movie)
        session.flush()
        logger.info(f"Inserted {len(customers_df)} customers and {len(movies_df)} movies into database")

        # Insert rentals - the late return trigger fills late_return_log
        for _, row in rentals_df.iterrows():
            rental = Rental(
                rental_id=int(row['rental_id']),
                customer_id=_optional_int(row['customer_id']),
                movie_id=_optional_int(row['movie_id']),
                rental_date=row['rental_date'].date(),
                return_date=row['return_date'].date() if pd.notna(row['return_date']) else None
            )
            session.add(rental)
        session.flush()
        logger.info(f"Inserted {len(rentals_df)} rentals into database")

        late_count = session.query(LateReturnLog).count()
        logger.info(f"Late return log holds {late_count} entries")

        # one transaction - a failure anywhere above leaves the previous data in place
        session.commit()
        logger.info(f"Database save completed successfully: {db_url}")
        return late_count

    except Exception as e:
        session.rollback()
        logger.error(f"Database error: {e}", exc_info=True)
        raise
    finally:
        session.close()

def main():
    args = parse_arguments()

    logger.info("=" * 60)
    logger.info("Movie Rentals Data Loading & Validation Started")
    logger.info("=" * 60)
    logger.info("Loading data from:")
    logger.info(f"  Customers: {args.customers_input}")
    logger.info(f"  Movies: {args.movies_input}")
    logger.info(f"  Rentals: {args.rentals_input}")

    customers_df, movies_df, rentals_df = load_data(args.customers_input, args.movies_input, args.rentals_input)
    logger.info(f"Data loaded successfully: {len(customers_df)} customers, {len(movies_df)} movies, "
                f"{len(rentals_df)} rentals")

    analyse_data_quality(customers_df, movies_df, rentals_df)

    customers_df = clean_customers_data(customers_df)
    movies_df = clean_movies_data(movies_df)
    rentals_df = clean_rentals_data(rentals_df, customers_df, movies_df)

    if args.dry_run:
        logger.info("Dry run - skipping database save")
    else:
        save_to_database(customers_df, movies_df, rentals_df, args.db_url)

    logger.info("=" * 60)
    logger.info("Movie Rentals Data Loading & Validation Complete")
    logger.info("=" * 60)

if __name__ == "__main__":
    main()
