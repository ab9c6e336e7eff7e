"""
Retrieve and parse the weight-lifting exercise CSV files.

Both files are downloaded once into a local data directory and read from there
on later runs. Local paths are accepted in place of URLs.
"""
import logging
import os
from typing import Optional, Tuple

import httpx
import pandas as pd

logger = logging.getLogger(__name__)

TRAINING_URL = "https://d396qusza40orc.cloudfront.net/predmachlearn/pml-training.csv"
EVALUATION_URL = "https://d396qusza40orc.cloudfront.net/predmachlearn/pml-testing.csv"
DATA_DIR = "data"

# Spreadsheet artifacts in the summary columns count as missing
NA_VALUES = ["NA", "", "#DIV/0!"]


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def fetch_dataset(
    url: str,
    data_dir: str = DATA_DIR,
    client: Optional[httpx.Client] = None,
    overwrite: bool = False,
) -> str:
    """Download a CSV into data_dir unless it is already there.

    Args:
        url: Source URL.
        data_dir: Cache directory.
        client: Optional httpx.Client (a fresh one is used otherwise).
        overwrite: Re-download even if the file exists.

    Returns:
        Local path of the file.

    Raises:
        httpx.HTTPError: If the download fails.
    """
    os.makedirs(data_dir, exist_ok=True)
    filename = url.rstrip("/").rsplit("/", 1)[-1] or "dataset.csv"
    path = os.path.join(data_dir, filename)
    if os.path.exists(path) and not overwrite:
        logger.info("Using cached %s", path)
        return path

    own_client = client is None
    if own_client:
        client = httpx.Client(follow_redirects=True)
    tmp_path = path + ".part"
    try:
        logger.info("Downloading %s", url)
        with client.stream("GET", url, timeout=60) as resp:
            resp.raise_for_status()
            with open(tmp_path, "wb") as f:
                for chunk in resp.iter_bytes():
                    f.write(chunk)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    finally:
        if own_client:
            client.close()

    logger.info("Saved %s (%d bytes)", path, os.path.getsize(path))
    return path


def load_table(path: str) -> pd.DataFrame:
    """Parse one CSV into a DataFrame.

    The unnamed leading row-number column is named "X".
    """
    frame = pd.read_csv(path, na_values=NA_VALUES, keep_default_na=True, low_memory=False)
    frame = frame.rename(columns={c: "X" for c in frame.columns if str(c).startswith("Unnamed: 0")})
    logger.info("Loaded %s: %d rows x %d columns", path, len(frame), len(frame.columns))
    return frame


def load_datasets(
    training: str = TRAINING_URL,
    evaluation: str = EVALUATION_URL,
    data_dir: str = DATA_DIR,
    client: Optional[httpx.Client] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Load the labeled corpus and the unlabeled evaluation table.

    Args:
        training: URL or local path of the labeled CSV.
        evaluation: URL or local path of the unlabeled CSV.
        data_dir: Cache directory for downloads.
        client: Optional httpx.Client shared by both downloads.

    Returns:
        (labeled, unlabeled) DataFrames.
    """
    paths = []
    for location in (training, evaluation):
        if _is_url(location):
            location = fetch_dataset(location, data_dir=data_dir, client=client)
        elif not os.path.exists(location):
            raise FileNotFoundError(f"Dataset not found: {location}")
        paths.append(location)
    return load_table(paths[0]), load_table(paths[1])
