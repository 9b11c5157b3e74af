from pathlib import Path

import pandas as pd
import pytest

from divvy_segments.cleaning import clean_trips, combine_trips
from divvy_segments.loading import read_trips
from divvy_segments.schema import unify_legacy_schema

LEGACY_CSV = """\
trip_id,start_time,end_time,bikeid,tripduration,from_station_id,from_station_name,to_station_id,to_station_name,usertype,gender,birthyear
21742443,2019-01-01 00:04:37,2019-01-01 00:11:07,2167,390.0,199,Wabash Ave & Grand Ave,84,Milwaukee Ave & Grand Ave,Subscriber,Male,1989
21742444,2019-01-01 00:08:13,2019-01-01 00:15:34,4386,441.0,44,State St & Randolph St,624,Dearborn St & Van Buren St,Subscriber,Female,1990
21742445,2019-01-01 00:13:23,2019-01-01 00:10:00,1524,-203.0,15,Racine Ave & 18th St,644,Western Ave & Fillmore St,Customer,Female,1994
"""

CURRENT_CSV = """\
ride_id,rideable_type,started_at,ended_at,start_station_name,start_station_id,end_station_name,end_station_id,start_lat,start_lng,end_lat,end_lng,member_casual
EACB19130B0CDA4A,docked_bike,2020-01-21 20:06:59,2020-01-21 20:14:30,Western Ave & Leland Ave,239,Clark St & Leland Ave,326,41.9665,-87.6884,41.9671,-87.6674,member
8FED874C809DC021,docked_bike,2020-01-26 10:20:00,2020-01-26 10:30:00,Clark St & Montrose Ave,234,Southport Ave & Irving Park Rd,318,41.9616,-87.666,41.9542,-87.6644,casual
789F3C21E472CA96,docked_bike,2020-01-22 15:16:00,2020-01-22 15:16:00,Broadway & Belmont Ave,296,Wilton Ave & Belmont Ave,117,41.9401,-87.6455,41.9402,-87.6529,member
"""


@pytest.fixture
def legacy_csv(tmp_path: Path) -> Path:
    p = tmp_path / "Divvy_Trips_2019_Q1.csv"
    p.write_text(LEGACY_CSV, encoding="utf-8")
    return p


@pytest.fixture
def current_csv(tmp_path: Path) -> Path:
    p = tmp_path / "Divvy_Trips_2020_Q1.csv"
    p.write_text(CURRENT_CSV, encoding="utf-8")
    return p


@pytest.fixture
def combined(legacy_csv: Path, current_csv: Path) -> pd.DataFrame:
    legacy = unify_legacy_schema(read_trips(legacy_csv))
    current = read_trips(current_csv)
    return combine_trips(legacy, current)


@pytest.fixture
def cleaned(combined: pd.DataFrame) -> pd.DataFrame:
    df, _ = clean_trips(combined)
    return df


def _make_trips(rows):
    """Small canonical trip frame from (start, end, station, label) tuples."""
    df = pd.DataFrame(rows, columns=["started_at", "ended_at", "start_station_name", "member_casual"])
    df["started_at"] = pd.to_datetime(df["started_at"])
    df["ended_at"] = pd.to_datetime(df["ended_at"])
    return df


@pytest.fixture
def make_trips():
    return _make_trips
