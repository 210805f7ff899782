#!/usr/bin/env python3
"""
Listing Seed Script

Loads properties from a CSV export and either inserts them into the
configured backend or writes them to a JSON seed file for the in-memory
backend.

Usage:
    python -m scripts.seed_listings --data-path ./data/properties.csv
    python -m scripts.seed_listings --data-path ./data/properties.csv --output ./marketplace/data/seed.json

Options:
    --data-path: Path to the CSV file (required)
    --sample-size: Number of records to sample (optional, for testing)
    --output: Write a JSON seed file instead of inserting
"""

import sys
import json
import argparse
import logging
from pathlib import Path
from typing import Optional, List, Dict, Any

import pandas as pd
from tqdm import tqdm

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from marketplace.config import get_settings
from marketplace.exceptions import BackendError
from marketplace.services.backend_client import create_backend
from marketplace.utils.helpers import slugify

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["title", "operation", "type", "location", "price"]
NUMERIC_COLUMNS = ["bedrooms", "bathrooms", "area", "latitude", "longitude"]


def load_and_clean_data(
    data_path: str,
    sample_size: Optional[int] = None
) -> pd.DataFrame:
    """
    Load and clean a property CSV.

    Args:
        data_path: Path to CSV file
        sample_size: Optional sample size for testing

    Returns:
        Cleaned DataFrame
    """
    logger.info(f"Loading data from {data_path}...")

    df = pd.read_csv(data_path, dtype={"price": str}, low_memory=False)
    logger.info(f"Loaded {len(df)} records")

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    # Drop rows with missing critical values
    initial_count = len(df)
    df = df.dropna(subset=REQUIRED_COLUMNS)
    logger.info(f"Dropped {initial_count - len(df)} rows with missing critical values")

    for col in NUMERIC_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")

    for col in ("bedrooms", "bathrooms", "area"):
        if col in df.columns:
            df[col] = df[col].fillna(0)

    # Slugs must be unique
    if "slug" not in df.columns:
        df["slug"] = df["title"].map(slugify)
    df = df[df["slug"] != ""]
    before = len(df)
    df = df.drop_duplicates(subset=["slug"])
    logger.info(f"Dropped {before - len(df)} duplicate slugs")

    if sample_size and sample_size < len(df):
        df = df.sample(n=sample_size, random_state=42)
        logger.info(f"Sampled {sample_size} records")

    return df


def to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Convert rows to backend records, splitting '|' separated image lists."""
    records = []
    for row in df.to_dict(orient="records"):
        record = {k: v for k, v in row.items() if not pd.isna(v)}
        for col in ("images", "amenities"):
            if isinstance(record.get(col), str):
                record[col] = [part.strip() for part in record[col].split("|") if part.strip()]
        for col in ("bedrooms", "bathrooms"):
            if col in record:
                record[col] = int(record[col])
        records.append(record)
    return records


def write_seed(records: List[Dict[str, Any]], output: Path):
    """Merge the properties into a seed file, keeping its other tables."""
    seed: Dict[str, Any] = {}
    if output.exists():
        seed = json.loads(output.read_text(encoding="utf-8"))
    for i, record in enumerate(records, 1):
        record.setdefault("id", i)
    seed["properties"] = records
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(seed, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info(f"Wrote {len(records)} properties to {output}")


def insert_records(records: List[Dict[str, Any]]) -> int:
    """Insert records into the configured backend; returns the number inserted."""
    backend = create_backend(get_settings())
    inserted = 0
    for record in tqdm(records, desc="Inserting properties"):
        try:
            backend.insert("properties", record)
            inserted += 1
        except BackendError as e:
            logger.error(f"Failed to insert '{record.get('slug')}': {e}")
    return inserted


def main():
    parser = argparse.ArgumentParser(description="Seed property listings")
    parser.add_argument("--data-path", required=True, help="Path to the properties CSV")
    parser.add_argument("--sample-size", type=int, default=None, help="Number of records to sample")
    parser.add_argument("--output", default=None, help="Write a JSON seed file instead of inserting")

    args = parser.parse_args()

    df = load_and_clean_data(args.data_path, args.sample_size)
    records = to_records(df)

    if args.output:
        write_seed(records, Path(args.output))
    else:
        inserted = insert_records(records)
        logger.info(f"Inserted {inserted}/{len(records)} properties")


if __name__ == "__main__":
    main()
