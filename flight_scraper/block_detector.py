"""Challenge / block page detection

Observation only: a detected challenge ends the search. Nothing here ever
submits, solves or waits out a challenge.
"""

import re
from typing import List, NamedTuple, Optional, Pattern, Sequence, Tuple

from bs4 import BeautifulSoup

CHALLENGE_IFRAME_MARKERS = ("recaptcha", "captcha", "challenge")

BLOCK_PHRASES: List[Pattern] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"unusual traffic",
        r"tráfico inusual",
        r"automated queries",
        r"consultas automatizadas",
        r"sorry.*are not allowed",
        r"before you continue",
        r"please verify",
        r"por favor verifica",
        r"we're sorry",
        r"lo sentimos",
        r"trafic inhabituel",
        r"ungewöhnlichen datenverkehr",
    )
]

BLOCK_URL_MARKERS = (
    "google.com/sorry",
    "/sorry/index",
    "/recaptcha",
    "accounts.google.com/servicelogin",
)


class BlockCheck(NamedTuple):
    blocked: bool
    reason: Optional[str] = None


CLEAN = BlockCheck(blocked=False)


class BlockDetector:
    """Classify a fetched page as challenged/blocked or normal"""

    def __init__(
        self,
        phrases: Sequence[Pattern] = BLOCK_PHRASES,
        url_markers: Tuple[str, ...] = BLOCK_URL_MARKERS,
    ):
        self.phrases = list(phrases)
        self.url_markers = tuple(m.lower() for m in url_markers)

    def detect(self, html: str, url: str = "") -> BlockCheck:
        """First match wins: challenge iframe, block phrase, block redirect"""
        soup = BeautifulSoup(html or "", "lxml")

        iframe = self._challenge_iframe(soup)
        if iframe:
            return BlockCheck(True, f"CAPTCHA detected ({iframe})")

        text = soup.get_text(" ", strip=True)
        for pattern in self.phrases:
            if pattern.search(text) or pattern.search(html or ""):
                return BlockCheck(True, f"Block pattern: {pattern.pattern}")

        url_lower = (url or "").lower()
        for marker in self.url_markers:
            if marker in url_lower:
                return BlockCheck(True, f"Redirect to block page: {url}")

        return CLEAN

    @staticmethod
    def _challenge_iframe(soup: BeautifulSoup) -> Optional[str]:
        for iframe in soup.find_all("iframe"):
            src = (iframe.get("src") or "").lower()
            for marker in CHALLENGE_IFRAME_MARKERS:
                if marker in src:
                    return f"{marker} iframe"
            if (iframe.get("title") or "").strip().lower() == "challenge content":
                return "challenge iframe"
        return None
