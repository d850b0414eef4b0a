"""Vision analyzer that asks a local vision-language server (Moondream Station compatible) for tags.

Set ARTLENS_VISION_ENDPOINT (or `analyzer_endpoint` in config) to override the default
endpoint (default: http://localhost:2020/v1).

Uses a persistent requests.Session with connection pooling so concurrent per-image calls
share sockets instead of opening one connection per question.
"""

import base64
import os
from io import BytesIO

import requests

from artlens.ai.schema import ImageTagSet, ModelCard
from artlens.ai.vision_base import BaseVisionAnalyzer

DEFAULT_ENDPOINT = "http://localhost:2020/v1"
ENDPOINT_ENV = "ARTLENS_VISION_ENDPOINT"
# The query endpoint returns free text only; used when it does not report a confidence.
DEFAULT_CONFIDENCE = 0.7
REQUEST_TIMEOUT_SECONDS = 60

KEYWORDS_QUESTION = "Provide a comma-separated list of single-word keywords describing this artwork."
COLORS_QUESTION = "List the dominant colors of this artwork as a comma-separated list of color names."
STYLE_QUESTION = "Name the art style of this image in one or two words."
MOOD_QUESTION = "Describe the mood of this artwork in one word."


def _parse_list(answer: str) -> list[str]:
    """Parse comma-separated values with order-preserving deduplication."""
    return list(dict.fromkeys(t.strip().strip(".").lower() for t in answer.split(",") if t.strip().strip(".")))


def _parse_label(answer: str) -> str:
    """First line of a short free-text answer, lower-cased, without trailing punctuation."""
    line = answer.strip().splitlines()[0] if answer.strip() else ""
    return line.strip().rstrip(".").lower()


def _answer_text(data: dict) -> str:
    ans = data.get("answer") if isinstance(data, dict) else None
    return ans if isinstance(ans, str) else ("".join(ans) if ans else "")


class StationVisionAnalyzer(BaseVisionAnalyzer):
    """Vision analyzer that calls a separate vision-language server over HTTP.

    No model code runs in this process; every question is a POST to `{endpoint}/query`.
    """

    def __init__(self, endpoint: str | None = None) -> None:
        from PIL import Image

        self._Image = Image
        endpoint = (endpoint or os.environ.get(ENDPOINT_ENV, DEFAULT_ENDPOINT)).strip() or DEFAULT_ENDPOINT
        self._endpoint = endpoint.rstrip("/")
        self._session = requests.Session()
        adapter = requests.adapters.HTTPAdapter(pool_connections=10, pool_maxsize=20)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    def get_model_card(self) -> ModelCard:
        return ModelCard(name="vision-station", version="local")

    def _encode_image(self, image_bytes: bytes) -> str:
        """Re-encode uploaded bytes as a JPEG base64 data URL. Raises if the bytes are not an image."""
        with self._Image.open(BytesIO(image_bytes)) as img:
            image = img.convert("RGB") if img.mode != "RGB" else img.copy()
        buffered = BytesIO()
        image.save(buffered, format="JPEG", quality=90)
        b64 = base64.b64encode(buffered.getvalue()).decode()
        return f"data:image/jpeg;base64,{b64}"

    def _post(self, path: str, json_payload: dict) -> dict:
        """POST JSON to the endpoint and return the parsed response."""
        url = f"{self._endpoint}/{path.lstrip('/')}"
        resp = self._session.post(
            url,
            json=json_payload,
            headers={"Content-Type": "application/json"},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        return resp.json()

    def _query(self, image_url: str, question: str) -> dict:
        payload = {
            "image_url": image_url,
            "question": question,
            "reasoning": False,
            "stream": False,
        }
        return self._post("query", payload)

    def analyze_image(self, image_bytes: bytes) -> ImageTagSet:
        image_url = self._encode_image(image_bytes)

        keywords_out = self._query(image_url, KEYWORDS_QUESTION)
        keywords = _parse_list(_answer_text(keywords_out))
        colors = _parse_list(_answer_text(self._query(image_url, COLORS_QUESTION)))
        style = _parse_label(_answer_text(self._query(image_url, STYLE_QUESTION)))
        mood = _parse_label(_answer_text(self._query(image_url, MOOD_QUESTION)))

        reported = keywords_out.get("confidence") if isinstance(keywords_out, dict) else None
        if isinstance(reported, (int, float)):
            confidence = min(max(float(reported), 0.0), 1.0)
        else:
            confidence = DEFAULT_CONFIDENCE if keywords else 0.0

        return ImageTagSet(
            keywords=keywords,
            colors=colors,
            style=style,
            mood=mood,
            confidence=confidence,
        )
