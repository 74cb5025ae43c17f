from __future__ import annotations

import json
from typing import Any

from ..domain.exceptions import AIError, AIErrorKind


class JsonExtractor:
    """Domain service for extracting a JSON object from LLM responses.

    Handles objects wrapped in markdown fences or surrounding prose.
    """

    def extract(self, text: str) -> dict[str, Any]:
        """Extract the outermost JSON object from text.

        Raises:
            AIError: MALFORMED_RESPONSE if no JSON object can be parsed
        """
        start = text.find('{')
        end = text.rfind('}')

        if start == -1 or end == -1 or end <= start:
            raise AIError(AIErrorKind.MALFORMED_RESPONSE, "No JSON object in response")

        try:
            parsed = json.loads(text[start:end + 1])
        except json.JSONDecodeError as e:
            raise AIError(AIErrorKind.MALFORMED_RESPONSE, f"Invalid JSON in response: {e}") from e

        if not isinstance(parsed, dict):
            raise AIError(AIErrorKind.MALFORMED_RESPONSE, "Response JSON is not an object")
        return parsed
