import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
import pandas as pd
import requests
from tenacity import Retrying, stop_after_attempt, wait_exponential

# --- Catalog Service Constants ---
API_URL = "http://localhost:5000/api/stars"
TABLE_NAME = "Earth"
PER_PAGE = 1
MAG_CUTOFF = 9
STAR_COLUMNS = ['GaiaID', 'ra', 'dec']

# --- Render-space Radii ---
STAR_RADIUS = 450.0
SKYBOX_RADIUS = 500.0


# --- Coordinate Mapping ---
def radec_to_unit_vector(ra, dec):
    """Maps right ascension/declination in degrees onto the unit sphere (y is the celestial pole)."""
    ra_rad, dec_rad = np.deg2rad(ra), np.deg2rad(dec)
    x = np.cos(dec_rad) * np.cos(ra_rad); z = np.cos(dec_rad) * np.sin(ra_rad); y = np.sin(dec_rad)
    return x, y, z


def radec_to_position(ra, dec, radius=STAR_RADIUS):
    x, y, z = radec_to_unit_vector(ra, dec)
    return x * radius, y * radius, z * radius


def records_to_frame(records) -> pd.DataFrame:
    """Decodes one page of star records. Missing coordinates come through as NaN, missing ids as None."""
    rows = [r if isinstance(r, dict) else {} for r in records]
    frame = pd.DataFrame(rows)
    for col in STAR_COLUMNS:
        if col not in frame.columns:
            frame[col] = np.nan
    # ids are taken from the raw rows, pandas would widen large integer ids to float
    frame['GaiaID'] = pd.Series([r.get('GaiaID') for r in rows], index=frame.index, dtype=object)
    frame['ra'] = pd.to_numeric(frame['ra'], errors='coerce')
    frame['dec'] = pd.to_numeric(frame['dec'], errors='coerce')
    return frame


# --- Paging Types ---
@dataclass
class PaginationState:
    current_page: int = 1
    total_pages: int = 1


@dataclass
class StarPage:
    records: object = None
    pagination: object = None
    error: Optional[str] = None

    @property
    def ok(self):
        return self.error is None


def parse_total_pages(pagination) -> int:
    """Reads `total_pages` from a pagination block, treating anything unusable as a single page."""
    if not isinstance(pagination, dict): return 1
    total = pagination.get('total_pages')
    if isinstance(total, bool): return 1
    if isinstance(total, float) and total.is_integer(): total = int(total)
    if isinstance(total, str) and total.strip().isdigit(): total = int(total)
    if not isinstance(total, int) or total < 1: return 1
    return total


# --- Data Fetching ---
class StarCatalogClient:
    def __init__(self, api_url=API_URL, max_attempts=1, timeout=None):
        self.api_url = api_url
        self.max_attempts = max_attempts
        self.timeout = timeout

    def _get_json(self, params):
        retrying = Retrying(stop=stop_after_attempt(self.max_attempts),
                            wait=wait_exponential(multiplier=1, min=2, max=10), reraise=True)
        for attempt in retrying:
            with attempt:
                response = requests.get(self.api_url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

    def fetch_page(self, table, page=1, per_page=10, mag_cutoff=10) -> StarPage:
        """Fetches one page of stars. Failures are logged and returned as an error page, never raised."""
        params = {'table': table, 'page': page, 'per_page': per_page}
        if mag_cutoff is not None:
            params['mag_cutoff'] = mag_cutoff
        try:
            payload = self._get_json(params)
        except (requests.RequestException, ValueError) as e:
            logging.error(f"Error fetching stars (table={table}, page={page}): {e}")
            return StarPage(error='Error fetching stars')
        if not isinstance(payload, dict):
            logging.error(f"Unexpected payload type for page {page}: {type(payload).__name__}")
            return StarPage(error='Error fetching stars')
        return StarPage(records=payload.get('data'), pagination=payload.get('pagination'))

    def load_all(self, table, per_page=10, mag_cutoff=MAG_CUTOFF,
                 on_page: Optional[Callable[[pd.DataFrame], object]] = None) -> PaginationState:
        """
        Walks the catalog page by page until the reported total is exhausted.
        Each page is handed to `on_page` before the next one is requested.
        """
        state = PaginationState()
        logging.info(f"Loading stars from table '{table}' ({per_page} per page, mag cutoff {mag_cutoff})...")
        while state.current_page <= state.total_pages:
            page = self.fetch_page(table, state.current_page, per_page, mag_cutoff)
            if not isinstance(page.records, list):
                logging.error(f"Invalid star data format on page {state.current_page}, stopping.")
                break
            state.total_pages = parse_total_pages(page.pagination)
            frame = records_to_frame(page.records)
            if on_page is not None:
                on_page(frame)
            logging.info(f"Loaded page {state.current_page}/{state.total_pages} ({len(frame)} stars).")
            state.current_page += 1
        return state
