"""
Pytest configuration and fixtures for tabml tests.
"""

import csv

import numpy as np
import pytest

IRIS_CENTERS = {
    "Iris-setosa": (5.0, 3.4, 1.5, 0.2),
    "Iris-versicolor": (5.9, 2.8, 4.3, 1.3),
    "Iris-virginica": (6.6, 3.0, 5.6, 2.0),
}

POSITIVE_WORDS = ["great", "delicious", "amazing", "wonderful", "fantastic", "love"]
NEGATIVE_WORDS = ["bad", "terrible", "awful", "horrible", "disgusting", "hate"]
FOODS = ["steak", "pizza", "pasta", "burger", "salad", "soup", "lasagne", "meal"]

ISSUE_AREAS = {
    "area-System.Net": [
        ("WebSockets connection drops", "The websocket communication closes after a minute"),
        ("HttpClient is slow", "Http requests over sockets take seconds on my machine"),
        ("Socket timeout on Linux", "Socket connections time out when the network is busy"),
        ("SignalR websockets hang", "SignalR uses websockets and the communication hangs"),
    ],
    "area-System.Data": [
        ("Entity Framework query fails", "EF throws when querying the database table"),
        ("SqlClient connection leak", "Database connections from SqlClient are never closed"),
        ("EF migrations crash", "Entity Framework migrations crash against the sql database"),
        ("DataReader returns nulls", "The database reader returns null for every sql column"),
    ],
    "area-System.IO": [
        ("File.Copy loses data", "Copying a file to another path truncates the stream"),
        ("FileStream flush missing", "Writing to a file stream does not flush to disk"),
        ("Path.Combine wrong on Windows", "Directory path separators are wrong for files"),
        ("Pipe stream blocks", "Reading from a pipe stream blocks the file handle"),
    ],
}


@pytest.fixture
def iris_file(tmp_path):
    """Comma-separated iris measurements without a header."""
    rng = np.random.RandomState(7)
    path = tmp_path / "iris.data"
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        for species, center in IRIS_CENTERS.items():
            for _ in range(20):
                values = np.round(np.asarray(center) + rng.normal(0, 0.12, 4), 1)
                writer.writerow([*values.tolist(), species])
    return path


def _taxi_rows(rng, n):
    rows = []
    for _ in range(n):
        vendor = rng.choice(["VTS", "CMT"])
        rate_code = rng.choice(["1", "1", "1", "2"])
        passengers = int(rng.randint(1, 5))
        trip_time = int(rng.randint(120, 2400))
        distance = round(float(rng.uniform(0.3, 12.0)), 2)
        payment = rng.choice(["CRD", "CSH"])
        fare = 2.5 + 2.4 * distance + 0.004 * trip_time
        if rate_code == "2":
            fare += 30.0
        fare = round(fare + float(rng.normal(0, 0.3)), 2)
        rows.append(
            {
                "vendor_id": vendor,
                "rate_code": rate_code,
                "passenger_count": passengers,
                "trip_time_in_secs": trip_time,
                "trip_distance": distance,
                "payment_type": payment,
                "fare_amount": fare,
            }
        )
    return rows


def _write_taxi(path, rows):
    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0]))
        writer.writeheader()
        writer.writerows(rows)
    return path


@pytest.fixture
def taxi_files(tmp_path):
    """Train and test taxi trip CSVs with a header row."""
    rng = np.random.RandomState(11)
    train = _write_taxi(tmp_path / "taxi-fare-train.csv", _taxi_rows(rng, 300))
    test = _write_taxi(tmp_path / "taxi-fare-test.csv", _taxi_rows(rng, 60))
    return train, test


@pytest.fixture
def yelp_file(tmp_path):
    """Tab-separated review sentences with a 0/1 label, no header."""
    path = tmp_path / "yelp_labelled.txt"
    lines = []
    for i in range(40):
        food = FOODS[i % len(FOODS)]
        good = POSITIVE_WORDS[i % len(POSITIVE_WORDS)]
        bad = NEGATIVE_WORDS[i % len(NEGATIVE_WORDS)]
        lines.append(f"The {food} was {good} and I will be back.\t1")
        lines.append(f"The {food} was {bad}, never again.\t0")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _write_issues(path, copies):
    with open(path, "w", newline="", encoding="utf-8") as f:
        f.write("ID\tArea\tTitle\tDescription\n")
        n = 0
        for _ in range(copies):
            for area, issues in ISSUE_AREAS.items():
                for title, description in issues:
                    n += 1
                    f.write(f"{n}\t{area}\t{title}\t{description}\n")
    return path


@pytest.fixture
def issues_files(tmp_path):
    """Train and test GitHub issue TSVs with a header row."""
    train = _write_issues(tmp_path / "issues_train.tsv", copies=3)
    test = _write_issues(tmp_path / "issues_test.tsv", copies=1)
    return train, test


@pytest.fixture
def session():
    from src.config.settings import Settings
    from src.ml.session import PipelineSession

    return PipelineSession(seed=0, settings=Settings())
