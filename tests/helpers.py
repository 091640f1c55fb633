import requests


class FakeResponse:
    def __init__(self, payload=None, status=200, bad_json=False):
        self.payload = payload
        self.status_code = status
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


def make_records(page, count=10):
    return [{'GaiaID': f"gaia-{page}-{i}", 'ra': (page * 37 + i * 11) % 360, 'dec': (i * 7) % 80 - 40, 'phot_g_mean_mag': 8.5}
            for i in range(count)]


class FakeStarService:
    """Stands in for `requests.get`, serving pages from a dict keyed by page number."""
    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def __call__(self, url, params=None, timeout=None):
        self.calls.append(dict(params or {}))
        response = self.pages[params['page']]
        if isinstance(response, Exception):
            raise response
        return response
