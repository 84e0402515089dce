import json
import re
from typing import Any, Dict, Optional

import httpx
from loguru import logger


class OllamaService:
    """Service for interacting with Ollama API"""

    def __init__(
        self,
        host: str = "http://localhost:11434",
        timeout: float = 300,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = host.rstrip("/")
        self.timeout = timeout
        # Injected in tests (httpx.MockTransport)
        self.transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport)

    async def check_health(self) -> bool:
        """Check if Ollama is accessible"""
        try:
            async with self._client(5.0) as client:
                response = await client.get(f"{self.base_url}/api/tags")
                return response.status_code == 200
        except Exception as e:
            logger.error(f"Ollama health check failed: {e}")
            return False

    async def generate(
        self,
        prompt: str,
        model: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.3,
        format: Optional[str] = "json",
    ) -> Optional[Dict[str, Any]]:
        """
        Generate completion from Ollama

        Args:
            prompt: User prompt
            model: Model name (e.g., 'llama3.1')
            system_prompt: Optional system prompt
            temperature: Sampling temperature
            format: Response format ('json' or None)

        Returns:
            Response dict or None if error. With format='json', "response"
            holds the parsed JSON, or the raw text when it could not be parsed.
        """
        try:
            payload = {
                "model": model,
                "prompt": prompt,
                "stream": False,
                "options": {
                    "temperature": temperature
                }
            }

            if system_prompt:
                payload["system"] = system_prompt

            if format:
                payload["format"] = format

            async with self._client(self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/api/generate",
                    json=payload
                )

                if response.status_code != 200:
                    logger.error(f"Ollama API error: {response.status_code} - {response.text}")
                    return None

                result = response.json()

                if format == "json":
                    raw = result.get("response", "")
                    try:
                        result["response"] = json.loads(raw)
                    except (json.JSONDecodeError, TypeError):
                        # LLMs sometimes wrap JSON in markdown fences or add trailing text
                        cleaned = self._extract_json(raw if isinstance(raw, str) else "")
                        if cleaned is not None:
                            result["response"] = cleaned
                        else:
                            # Left as text for the caller's heuristic parsing
                            logger.warning(f"Failed to parse JSON response: {str(raw)[:500]}")

                return result

        except Exception as e:
            logger.error(f"Error calling Ollama: {e}")
            return None

    @staticmethod
    def _extract_json(text: str):
        """Try to extract valid JSON from a string that may contain extra text.

        Handles common LLM issues: markdown fences, leading/trailing text,
        arrays inside objects, etc.
        """
        # Strip markdown code fences
        text = re.sub(r'^```(?:json)?\s*', '', text.strip())
        text = re.sub(r'\s*```$', '', text.strip())

        # Try parsing the cleaned text directly
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass

        # Try to find the first { or [ and last } or ]
        for start_char, end_char in [('{', '}'), ('[', ']')]:
            start = text.find(start_char)
            end = text.rfind(end_char)
            if start != -1 and end != -1 and end > start:
                try:
                    return json.loads(text[start:end + 1])
                except json.JSONDecodeError:
                    continue

        return None
