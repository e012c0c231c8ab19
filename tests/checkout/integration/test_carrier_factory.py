import pytest

from checkout.shipping.carrier import get_carrier, reset_carrier, set_carrier
from checkout.shipping.carrier.fake_adapter import FakeCarrier
from checkout.shipping.carrier.http_adapter import HttpCarrier


@pytest.fixture(autouse=True)
def _reset_carrier():
    reset_carrier()
    yield
    reset_carrier()


def test_fake_by_default(monkeypatch):
    monkeypatch.delenv("CARRIER_ADAPTER", raising=False)
    carrier = get_carrier()
    assert isinstance(carrier, FakeCarrier)
    assert get_carrier() is carrier


def test_http_adapter_from_environment(monkeypatch):
    monkeypatch.setenv("CARRIER_ADAPTER", "http")
    monkeypatch.setenv("CARRIER_API_URL", "https://carrier.example.com/")
    monkeypatch.setenv("CARRIER_API_KEY", "secret")
    carrier = get_carrier()
    assert isinstance(carrier, HttpCarrier)
    assert carrier.base_url == "https://carrier.example.com"
    assert carrier.api_key == "secret"


def test_http_adapter_needs_url(monkeypatch):
    monkeypatch.setenv("CARRIER_ADAPTER", "http")
    monkeypatch.delenv("CARRIER_API_URL", raising=False)
    with pytest.raises(ValueError):
        get_carrier()


def test_unknown_adapter(monkeypatch):
    monkeypatch.setenv("CARRIER_ADAPTER", "pigeon")
    with pytest.raises(ValueError):
        get_carrier()


def test_override():
    carrier = FakeCarrier()
    set_carrier(carrier)
    assert get_carrier() is carrier
