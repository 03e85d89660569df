
from sqlalchemy import (
    create_engine, event, CheckConstraint, Column, Integer, String, Date, DateTime, ForeignKey, DDL, func
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship

from config import Config, RENTAL_WINDOW_DAYS

Base = declarative_base()

class Customer(Base):
    """customer table - stores rental customers and their contact details"""
    __tablename__ = 'customers'

    customer_id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(30), nullable=False, unique=True)

    rentals = relationship('Rental', back_populates='customer', passive_deletes=True)

    def __repr__(self):
        return f"<Customer(id={self.customer_id}, name='{self.name}', email='{self.email}')>"


class Movie(Base):
    """movie table - stores the movie catalog"""
    __tablename__ = 'movies'

    movie_id = Column(Integer, primary_key=True)
    title = Column(String(500), nullable=False)
    genre = Column(String(100), nullable=True)
    release_year = Column(Integer, nullable=True)

    rentals = relationship('Rental', back_populates='movie', passive_deletes=True)

    def __repr__(self):
        return f"<Movie(id={self.movie_id}, title='{self.title}', genre='{self.genre}')>"


class Rental(Base):
    """rental table - one row per checkout, return_date stays NULL until the movie comes back"""
    __tablename__ = 'rentals'

    rental_id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey('customers.customer_id', ondelete='SET NULL'), nullable=True)
    movie_id = Column(Integer, ForeignKey('movies.movie_id', ondelete='SET NULL'), nullable=True)

    rental_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)

    customer = relationship('Customer', back_populates='rentals')
    movie = relationship('Movie', back_populates='rentals')
    late_returns = relationship('LateReturnLog', back_populates='rental', passive_deletes=True)

    def __repr__(self):
        return (f"<Rental(id={self.rental_id}, customer_id={self.customer_id}, movie_id={self.movie_id}, "
                f"rental_date={self.rental_date}, return_date={self.return_date})>")


class LateReturnLog(Base):
    """late return log - append-only, rows are written by the late return trigger, never by the application"""
    __tablename__ = 'late_return_log'
    __table_args__ = (
        CheckConstraint('days_late > 0', name='ck_late_return_log_days_late'),
    )

    log_id = Column(Integer, primary_key=True)
    rental_id = Column(Integer, ForeignKey('rentals.rental_id', ondelete='SET NULL'), nullable=True)
    customer_id = Column(Integer, ForeignKey('customers.customer_id', ondelete='SET NULL'), nullable=True)
    movie_id = Column(Integer, ForeignKey('movies.movie_id', ondelete='SET NULL'), nullable=True)

    # server side default so rows inserted by the trigger get a timestamp too
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    days_late = Column(Integer, nullable=False)

    rental = relationship('Rental', back_populates='late_returns')
    customer = relationship('Customer')
    movie = relationship('Movie')

    def __repr__(self):
        return f"<LateReturnLog(id={self.log_id}, rental_id={self.rental_id}, days_late={self.days_late})>"


# Late return trigger.
# Fires after a rental is inserted, or after an UPDATE that writes return_date or rental_date,
# and only when return_date is set. ON DELETE SET NULL only rewrites customer_id/movie_id
# so removing a customer or movie never re-fires it.
SQLITE_LATE_RETURN_DAYS = "CAST(julianday(NEW.return_date) - julianday(NEW.rental_date) AS INTEGER)"

sqlite_insert_trigger = DDL(f"""
CREATE TRIGGER IF NOT EXISTS trg_rentals_late_return_insert
AFTER INSERT ON rentals
FOR EACH ROW
WHEN NEW.return_date IS NOT NULL AND {SQLITE_LATE_RETURN_DAYS} > {RENTAL_WINDOW_DAYS}
BEGIN
    INSERT INTO late_return_log (rental_id, customer_id, movie_id, days_late)
    VALUES (NEW.rental_id, NEW.customer_id, NEW.movie_id, {SQLITE_LATE_RETURN_DAYS});
END
""")

sqlite_update_trigger = DDL(f"""
CREATE TRIGGER IF NOT EXISTS trg_rentals_late_return_update
AFTER UPDATE OF return_date, rental_date ON rentals
FOR EACH ROW
WHEN NEW.return_date IS NOT NULL AND {SQLITE_LATE_RETURN_DAYS} > {RENTAL_WINDOW_DAYS}
BEGIN
    INSERT INTO late_return_log (rental_id, customer_id, movie_id, days_late)
    VALUES (NEW.rental_id, NEW.customer_id, NEW.movie_id, {SQLITE_LATE_RETURN_DAYS});
END
""")

postgres_trigger_function = DDL(f"""
CREATE OR REPLACE FUNCTION log_late_return() RETURNS TRIGGER AS $$
DECLARE
    rental_days INTEGER;
BEGIN
    rental_days := NEW.return_date - NEW.rental_date;
    IF rental_days > {RENTAL_WINDOW_DAYS} THEN
        INSERT INTO late_return_log (rental_id, customer_id, movie_id, days_late)
        VALUES (NEW.rental_id, NEW.customer_id, NEW.movie_id, rental_days);
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql
""")

postgres_trigger = DDL("""
CREATE TRIGGER trg_rentals_late_return
AFTER INSERT OR UPDATE OF return_date, rental_date ON rentals
FOR EACH ROW
WHEN (NEW.return_date IS NOT NULL)
EXECUTE FUNCTION log_late_return()
""")

postgres_drop_trigger_function = DDL("DROP FUNCTION IF EXISTS log_late_return()")

# late_return_log is created after rentals, so the trigger can reference both tables
event.listen(LateReturnLog.__table__, 'after_create', sqlite_insert_trigger.execute_if(dialect='sqlite'))
event.listen(LateReturnLog.__table__, 'after_create', sqlite_update_trigger.execute_if(dialect='sqlite'))
event.listen(LateReturnLog.__table__, 'after_create', postgres_trigger_function.execute_if(dialect='postgresql'))
event.listen(LateReturnLog.__table__, 'after_create', postgres_trigger.execute_if(dialect='postgresql'))
event.listen(Rental.__table__, 'after_drop', postgres_drop_trigger_function.execute_if(dialect='postgresql'))


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE SET NULL unless this is switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_database(db_url=Config.DATABASE_URL):
    engine = create_engine(db_url, echo=False)
    if engine.dialect.name == 'sqlite':
        event.listen(engine, 'connect', _enable_sqlite_foreign_keys)
    Base.metadata.create_all(engine)
    return engine


def get_session(engine):
    Session = sessionmaker(bind=engine)
    return Session()


if __name__ == "__main__":
    engine = create_database()
    print(f"Database created successfully: {engine.url}")
    print("\nTables created:")
    for table in Base.metadata.tables.keys():
        print(f"  - {table}")
