"""
Movie Rentals Dashboard
Displays rental analytics, the late return log and the data loading log using Streamlit
"""

import streamlit as st
import pandas as pd
import re
from pathlib import Path

from config import Config, RENTAL_WINDOW_DAYS
from database_models import create_database, get_session
from rental_queries import (
    get_rental_summary,
    get_customer_rental_ranking,
    get_longest_average_rental_movie,
    get_multi_month_customers,
    get_most_rented_genre,
    get_late_returns,
)

st.set_page_config(
    page_title="Movie Rentals - Analytics Dashboard",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.title("🎬 Movie Rentals - Analytics Dashboard")
st.markdown("---")

# Helper functions
@st.cache_resource
def get_engine(db_url):
    return create_database(db_url)

@st.cache_data
def load_reports(db_url, year, min_months):
    session = get_session(get_engine(db_url))
    try:
        return {
            'summary': get_rental_summary(session),
            'customer_ranking': get_customer_rental_ranking(session),
            'longest_average_rental': get_longest_average_rental_movie(session),
            'multi_month_customers': get_multi_month_customers(session, year, min_months),
            'most_rented_genre': get_most_rented_genre(session),
            'late_returns': get_late_returns(session),
        }
    finally:
        session.close()

def read_log_file(log_path=Config.LOG_FILE):
    if Path(log_path).exists():
        with open(log_path, 'r') as f:
            return f.readlines()
    return None

def parse_log_for_metrics(logs):
    metrics = {
        'empty_rows_removed': 0,
        'nan_rows_removed': 0,
        'duplicates_removed': 0,
        'references_cleared': 0,
        'late_returns_logged': 0,
    }

    for line in logs:
    # regex over the loader's log lines, totals go into the metrics dictionary
        if "Removed" in line and "empty rows" in line:
            match = re.search(r'Removed (\d+)', line)
            if match:
                metrics['empty_rows_removed'] += int(match.group(1))

        if "Removed" in line and "rows with missing" in line:
            match = re.search(r'Removed (\d+)', line)
            if match:
                metrics['nan_rows_removed'] += int(match.group(1))

        if "Removed duplicate" in line:
            metrics['duplicates_removed'] += 1

        if "Cleared" in line and "unknown" in line:
            match = re.search(r'Cleared (\d+)', line)
            if match:
                metrics['references_cleared'] += int(match.group(1))

        if "Late return log holds" in line:
            match = re.search(r'holds (\d+) entries', line)
            if match:
                metrics['late_returns_logged'] = int(match.group(1))

    return metrics

# sidebar
st.sidebar.header("Report Settings")
db_url = st.sidebar.text_input("Database URL", value=Config.DATABASE_URL)
year = st.sidebar.number_input("Report year", min_value=1900, max_value=2100, value=Config.REPORT_YEAR, step=1)
min_months = st.sidebar.slider("Minimum distinct months", min_value=2, max_value=12, value=2)

reports = load_reports(db_url, int(year), min_months)
summary = reports['summary']

if summary['rentals'] == 0:
    st.error("No rentals found in the database. Please load the data first:")
    st.code("python load_rental_data.py", language="bash")
else:
    # Section 1: Summary
    st.header("📊 Rental Summary")

    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Customers", summary['customers'])
    col2.metric("Movies", summary['movies'])
    col3.metric("Rentals", summary['rentals'])
    col4.metric("Outstanding", summary['outstanding_rentals'])
    col5.metric(f"Late Returns (> {RENTAL_WINDOW_DAYS} days)", summary['late_returns'])

    # Section 2: Analytics
    st.markdown("---")
    st.header("📈 Rental Analytics")

    col1, col2 = st.columns(2)

    with col1:
        st.subheader("Longest Average Rental")
        movie = reports['longest_average_rental']
        if movie is None:
            st.info("No returned rentals yet.")
        else:
            st.metric(movie['title'], f"{movie['avg_rental_days']:.1f} days")

    with col2:
        st.subheader("Most Rented Genre")
        genre = reports['most_rented_genre']
        if genre is None:
            st.info("No rentals yet.")
        else:
            st.metric(genre['genre'], f"{genre['rental_count']} rentals")

    st.subheader("Customers by Number of Rentals")
    ranking = reports['customer_ranking']
    st.dataframe(ranking, use_container_width=True)
    if len(ranking) > 0:
        st.bar_chart(ranking.head(10).set_index('name')['rental_count'])

    st.subheader(f"Customers Renting in {min_months}+ Months of {int(year)}")
    multi_month = reports['multi_month_customers']
    if len(multi_month) > 0:
        st.dataframe(multi_month, use_container_width=True)
    else:
        st.info("No customers match for this year.")

    # Section 3: Late returns
    st.markdown("---")
    st.header("⏰ Late Return Log")

    late_returns = reports['late_returns']
    if len(late_returns) > 0:
        st.dataframe(late_returns, use_container_width=True)
        st.metric("Max Days Late", int(late_returns['days_late'].max()))
    else:
        st.info("✅ No late returns logged!")

    # Section 4: Loading log
    st.markdown("---")
    st.header("🔍 Data Loading Log")

    logs = read_log_file()
    if logs is None:
        st.info("No log file found yet.")
    else:
        metrics = parse_log_for_metrics(logs)

        col1, col2, col3, col4, col5 = st.columns(5)
        col1.metric("Empty Rows Removed", metrics['empty_rows_removed'])
        col2.metric("Incomplete Rows Removed", metrics['nan_rows_removed'])
        col3.metric("Duplicates Removed", metrics['duplicates_removed'])
        col4.metric("References Cleared", metrics['references_cleared'])
        col5.metric("Late Returns at Last Load", metrics['late_returns_logged'])

        tab1, tab2, tab3 = st.tabs(["Full Log", "Errors Only", "Warnings Only"])

        with tab1:
            st.text_area(
                "Full log output",
                value="".join(logs),
                height=400,
                disabled=True,
                key="full_log"
            )

        with tab2:
            error_logs = [line for line in logs if " - ERROR - " in line]
            if error_logs:
                st.text_area(
                    "Error logs",
                    value="".join(error_logs),
                    height=300,
                    disabled=True,
                    key="error_log"
                )
            else:
                st.info("✅ No errors found!")

        with tab3:
            warning_logs = [line for line in logs if " - WARNING - " in line]
            if warning_logs:
                st.text_area(
                    "Warning logs",
                    value="".join(warning_logs),
                    height=300,
                    disabled=True,
                    key="warning_log"
                )
            else:
                st.info("✅ No warnings found!")

    # Footer
    st.markdown("---")
    st.markdown(f"""
    ### 📌 About This Dashboard

    This dashboard reports on the movie rentals database. It shows:

    - **Customer Ranking:** customers ordered by their number of rentals
    - **Rental Duration:** the movie kept longest on average
    - **Late Returns:** rentals returned more than {RENTAL_WINDOW_DAYS} days after checkout, logged by the database trigger

    Reload the data with `python load_rental_data.py`, or print the same reports with `python rental_reports.py`.
    """)
