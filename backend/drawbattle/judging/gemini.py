from __future__ import annotations

import logging

from google import genai
from google.genai import types

from ..utils.images import decode_image_data_url


logger = logging.getLogger(__name__)

_SAFETY_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


def build_instructions(prompt: str, player_ids: list[str]) -> str:
    ids = ", ".join(f'"{pid}"' for pid in player_ids)
    return (
        f'Based only on how well each drawing represents the prompt "{prompt}", '
        "score every drawing. Respond with a JSON object of the form "
        '{"scores": {"<player id>": <integer>}, "comments": {"<player id>": "<comment>"}}. '
        f"Include exactly these player ids: {ids}. "
        "Scores must be non-negative integers that add up to exactly 100. "
        "Each comment is one short, friendly sentence about that drawing."
    )


class GeminiVisionClient:
    def __init__(self, api_key: str, model: str, timeout_sec: int = 30) -> None:
        self.model = model
        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=timeout_sec * 1000),
        )
        self._config = types.GenerateContentConfig(
            temperature=0.4,
            top_p=1,
            top_k=32,
            max_output_tokens=4096,
            response_mime_type="application/json",
            safety_settings=[
                types.SafetySetting(
                    category=category,
                    threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
                )
                for category in _SAFETY_CATEGORIES
            ],
        )

    def build_contents(self, prompt: str, submissions: dict[str, str]) -> list:
        contents: list = [
            f'Game prompt: "{prompt}". The following images are drawings submitted by '
            "different players. Each drawing is preceded by its player id."
        ]
        for player_id, data_url in submissions.items():
            mime_type, data = decode_image_data_url(data_url)
            contents.append(f"Player ID: {player_id}")
            contents.append(types.Part.from_bytes(data=data, mime_type=mime_type))
        contents.append(build_instructions(prompt, list(submissions.keys())))
        return contents

    def request_judgment(self, prompt: str, submissions: dict[str, str]) -> str:
        response = self._client.models.generate_content(
            model=self.model,
            contents=self.build_contents(prompt, submissions),
            config=self._config,
        )
        text = response.text or ""
        logger.debug("gemini response: %s", text)
        return text
