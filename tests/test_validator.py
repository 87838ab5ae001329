import pytest

from pinvid.errors import InvalidInput, UnsupportedDomain
from pinvid.validator import normalize_pin_url, validate_pin_url


@pytest.mark.parametrize(
    "url",
    [
        "https://pinterest.com/pin/123/",
        "https://www.pinterest.com/pin/123456789/",
        "https://uk.pinterest.co.uk/pin/42/",
        "https://www.pinterest.de/pin/42/",
        "https://pin.it/abc",
        "https://pin.it/",
    ],
)
def test_accepts_pinterest_pins(url):
    parsed = validate_pin_url(url)
    assert parsed.hostname


@pytest.mark.parametrize(
    "url",
    [
        "https://notpinterest.com/pin/123",
        "https://pinterest.example.com/pin/123",
        "https://example.com/pin/123",
        "https://pin.it.evil.com/abc",
    ],
)
def test_rejects_other_domains(url):
    with pytest.raises(UnsupportedDomain):
        validate_pin_url(url)


def test_unsupported_domain_is_invalid_input():
    with pytest.raises(InvalidInput) as exc_info:
        validate_pin_url("https://notpinterest.com/pin/123")

    assert exc_info.value.status_code == 400


def test_main_domain_requires_pin_path():
    with pytest.raises(InvalidInput, match="specific public pin"):
        validate_pin_url("https://www.pinterest.com/someone/boards/")


@pytest.mark.parametrize("url", ["", "   ", "not a url", "ftp://pinterest.com/pin/1/", "https://"])
def test_rejects_unparsable_input(url):
    with pytest.raises(InvalidInput):
        validate_pin_url(url)


def test_normalize_lowercases_host_and_drops_fragment():
    normalized = normalize_pin_url("HTTPS://WWW.Pinterest.COM/pin/123/?utm=x#frag")

    assert normalized == "https://www.pinterest.com/pin/123/?utm=x"


def test_normalize_short_link_gets_root_path():
    assert normalize_pin_url("https://pin.it") == "https://pin.it/"
