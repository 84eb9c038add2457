"""
Tests for order feed loading.
"""

import json

import pytest
import requests

from rdash import data_loader
from rdash.data_loader import (
    DataLoadError,
    FeedParseError,
    FeedStructureError,
    FeedTransportError,
    fetch_orders,
    load_orders,
    read_orders_file,
)

from conftest import make_raw_order


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload=None, status_code=200, reason="OK", text=None):
        self.payload = payload
        self.status_code = status_code
        self.reason = reason
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self.text is not None:
            return json.loads(self.text)
        return self.payload


@pytest.fixture
def fake_get(monkeypatch):
    """Patch requests.get to return a configurable response."""
    calls = []

    def install(response=None, error=None):
        def _get(url, timeout=None):
            calls.append((url, timeout))
            if error is not None:
                raise error
            return response

        monkeypatch.setattr(data_loader.requests, "get", _get)
        return calls

    return install


class TestFetchOrders:
    """Test cases for loading over HTTP."""

    def test_successful_fetch(self, fake_get):
        """Test that a valid feed yields orders and a report."""
        calls = fake_get(FakeResponse([make_raw_order("1"), make_raw_order("2")]))

        loaded = fetch_orders("https://example.com/orders.json", timeout=5)

        assert len(loaded) == 2
        assert loaded.report.valid_records == 2
        assert loaded.report.invalid_records == 0
        assert loaded.report.source == "https://example.com/orders.json"
        assert calls == [("https://example.com/orders.json", 5)]

    def test_no_timeout_by_default(self, fake_get):
        """Test that requests wait indefinitely unless configured."""
        calls = fake_get(FakeResponse([make_raw_order()]))
        fetch_orders("https://example.com/orders.json")
        assert calls[0][1] is None

    def test_network_failure(self, fake_get):
        """Test that connection errors become transport errors."""
        fake_get(error=requests.ConnectionError("boom"))

        with pytest.raises(FeedTransportError, match="Network request failed"):
            fetch_orders("https://example.com/orders.json")

    def test_http_error_status(self, fake_get):
        """Test that non-2xx responses become transport errors with the status."""
        fake_get(FakeResponse(status_code=404, reason="Not Found"))

        with pytest.raises(FeedTransportError, match="Failed to fetch data: 404 Not Found"):
            fetch_orders("https://example.com/orders.json")

    def test_invalid_json(self, fake_get):
        """Test that a non-JSON body is a parse error."""
        fake_get(FakeResponse(text="<html>nope</html>"))

        with pytest.raises(FeedParseError, match="not valid JSON"):
            fetch_orders("https://example.com/orders.json")

    def test_not_an_array(self, fake_get):
        """Test that a JSON object body is a structural error."""
        fake_get(FakeResponse({"orders": []}))

        with pytest.raises(FeedStructureError):
            fetch_orders("https://example.com/orders.json")

    def test_errors_share_base_class(self):
        """Test that every fatal load error is a DataLoadError."""
        for error in (FeedTransportError, FeedParseError, FeedStructureError):
            assert issubclass(error, DataLoadError)


class TestReadOrdersFile:
    """Test cases for loading from a local file."""

    def test_read_file(self, tmp_path):
        """Test that a JSON file loads like the HTTP feed."""
        path = tmp_path / "orders.json"
        path.write_text(json.dumps([make_raw_order("1"), {"bad": True}]), encoding="utf-8")

        loaded = read_orders_file(str(path))

        assert len(loaded) == 1
        assert loaded.report.total_records == 2
        assert loaded.report.invalid_records == 1

    def test_missing_file(self, tmp_path):
        """Test that a missing file is a transport error."""
        with pytest.raises(FeedTransportError):
            read_orders_file(str(tmp_path / "missing.json"))

    def test_invalid_file(self, tmp_path):
        """Test that a malformed file is a parse error."""
        path = tmp_path / "orders.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(FeedParseError):
            read_orders_file(str(path))


class TestLoadOrders:
    """Test cases for source dispatch."""

    def test_url_dispatch(self, fake_get):
        """Test that http(s) sources are fetched."""
        calls = fake_get(FakeResponse([make_raw_order()]))
        load_orders("http://localhost/orders.json")
        assert len(calls) == 1

    def test_path_dispatch(self, tmp_path, fake_get):
        """Test that other sources are read from disk."""
        calls = fake_get(FakeResponse([]))
        path = tmp_path / "orders.json"
        path.write_text(json.dumps([make_raw_order()]), encoding="utf-8")

        loaded = load_orders(str(path))

        assert len(loaded) == 1
        assert calls == []
