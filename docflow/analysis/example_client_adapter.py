"""Example analysis client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseAnalysisClient and register the provider in AnalysisFactory.
"""

import json
from typing import ClassVar

from docflow.analysis.client_base import BaseAnalysisClient


class ExampleClientAdapter(BaseAnalysisClient):
    """Adapter that answers every task with a fixed, valid response.

    No network calls. Useful for local development and tests.
    """

    DEFAULT_RESPONSES: ClassVar[dict[str, str]] = {
        "classification": json.dumps({"label": "Other", "confidence": 50}),
        "structured_fields": json.dumps({}),
        "sentiment": "Neutral",
        "summary": "No summary is available from the example provider.",
        "comparison": "0",
        "question": "The information is not available in the document.",
    }

    def create_chat_completion(
        self,
        *,
        task: str,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object] | None = None,
    ) -> str:
        _ = model, temperature, system_prompt, user_prompt, json_schema
        return self.DEFAULT_RESPONSES.get(task, "")
