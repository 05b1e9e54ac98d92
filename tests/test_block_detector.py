import pytest

from flight_scraper.block_detector import BlockDetector

from conftest import CAPTCHA_HTML, RESULTS_HTML, UNUSUAL_TRAFFIC_HTML


@pytest.fixture
def detector():
    return BlockDetector()


def test_normal_results_page_is_clean(detector):
    check = detector.detect(RESULTS_HTML, "https://www.google.com/travel/flights?q=x")
    assert not check.blocked
    assert check.reason is None


def test_captcha_iframe(detector):
    check = detector.detect(CAPTCHA_HTML)
    assert check.blocked
    assert "CAPTCHA" in check.reason


def test_challenge_titled_iframe(detector):
    html = '<html><body><iframe src="https://example.com/x" title="Challenge Content"></iframe></body></html>'
    assert detector.detect(html).blocked


@pytest.mark.parametrize(
    "text",
    [
        "Our systems have detected unusual traffic from your computer network.",
        "Hemos detectado tráfico inusual procedente de tu red.",
        "Sorry, automated queries are not allowed.",
        "Before you continue to Google",
    ],
)
def test_block_phrases_any_case(detector, text):
    check = detector.detect(f"<html><body><p>{text.upper()}</p></body></html>")
    assert check.blocked
    assert check.reason.startswith("Block pattern")


def test_block_redirect_url(detector):
    check = detector.detect("<html><body></body></html>", "https://www.google.com/sorry/index?continue=x")
    assert check.blocked
    assert "Redirect to block page" in check.reason


def test_iframe_wins_over_phrase(detector):
    html = CAPTCHA_HTML.replace("</body>", "<p>unusual traffic</p></body>")
    assert "CAPTCHA" in detector.detect(html).reason


def test_phrase_page_reason_names_pattern(detector):
    assert "unusual traffic" in detector.detect(UNUSUAL_TRAFFIC_HTML).reason
